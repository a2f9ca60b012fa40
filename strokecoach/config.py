import os


class Settings:
    PROJECT_NAME: str = "strokecoach"
    DEBUG: bool = os.environ.get("STROKECOACH_DEBUG", "") == "1"
    LOG_DIR: str = os.environ.get("LOG_DIR", "log")
    LOG_FILE: str = "strokecoach.log"
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
    DB_PATH: str = os.environ.get(
        "STROKECOACH_DB_PATH",
        os.path.join(os.path.dirname(__file__), "storage", "strokecoach.db"),
    )

    # OpenAI-compatible provider (OpenRouter by default)
    PROVIDER_API_URL: str = os.environ.get("PROVIDER_API_URL", "https://openrouter.ai/api/v1")
    PROVIDER_SERVER_URL: str = os.environ.get("PROVIDER_SERVER_URL", "https://openrouter.ai/api")
    PROVIDER_APP_TITLE: str = "StrokeCoach"
    API_KEY_ENV: str = "OPENROUTER_API_KEY"

    CATALOG_LIMIT: int = 8

    PSEUDO_SCORE_MIN: int = 60
    PSEUDO_SCORE_MAX: int = 99
    DEFAULT_FEEDBACK_DELAY_MS: int = 1000
    QA_LOG_LIMIT: int = 50


settings = Settings()
