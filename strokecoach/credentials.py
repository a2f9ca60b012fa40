import logging
import os
from typing import Optional

from strokecoach.config import settings

logger = logging.getLogger(__name__)


class CredentialStore:
    """Provider API key holder. Callers only rely on present / absent."""

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = (api_key or "").strip() or None

    @classmethod
    def from_env(cls) -> "CredentialStore":
        return cls(os.environ.get(settings.API_KEY_ENV, ""))

    def get(self) -> Optional[str]:
        return self._api_key

    def set(self, api_key: str) -> bool:
        api_key = (api_key or "").strip()
        if not api_key:
            return False
        self._api_key = api_key
        logger.info("Provider API key configured")
        return True

    def clear(self) -> None:
        self._api_key = None
        logger.info("Provider API key cleared")

    def has_credential(self) -> bool:
        return bool(self._api_key)
