import logging
from typing import Optional

from pydantic import ValidationError

import strokecoach.storage.sqlite_store as memory
from strokecoach.models import AISettingsSnapshot, Level

logger = logging.getLogger(__name__)

LEVELS = ("beginner", "intermediate", "advanced")


class SettingsContext:
    """
    User-editable configuration. Changes only go through the update actions;
    readers take an immutable snapshot.
    """

    def __init__(self, user_id: Optional[str] = None, *, store=memory, persist: bool = True):
        self.user_id = user_id
        self._store = store
        self._persist = persist and user_id is not None
        self._ai = AISettingsSnapshot()
        self.language = "english"
        self.level: Level = "beginner"
        if self._persist:
            self._load()

    def _load(self) -> None:
        saved = self._store.get_ai_settings(self.user_id)
        if not saved:
            return
        try:
            self._ai = AISettingsSnapshot(**saved["ai"])
        except ValidationError as e:
            logger.warning("Ignoring invalid saved AI settings for %s: %s", self.user_id, e)
        self.language = saved.get("language") or self.language
        if saved.get("level") in LEVELS:
            self.level = saved["level"]

    def _save(self) -> None:
        if self._persist:
            self._store.save_ai_settings(self.user_id, self._ai, language=self.language, level=self.level)

    def snapshot(self) -> AISettingsSnapshot:
        return self._ai

    def update_ai_settings(self, **changes) -> AISettingsSnapshot:
        unknown = set(changes) - set(AISettingsSnapshot.model_fields)
        if unknown:
            raise ValueError(f"Unknown AI settings: {', '.join(sorted(unknown))}")
        self._ai = AISettingsSnapshot(**{**self._ai.model_dump(), **changes})
        self._save()
        return self._ai

    def set_language(self, language: str) -> None:
        self.language = language
        self._save()

    def set_level(self, level: str) -> None:
        if level not in LEVELS:
            raise ValueError(f"level must be one of {LEVELS}")
        self.level = level
        self._save()

    def reset(self) -> AISettingsSnapshot:
        self._ai = AISettingsSnapshot()
        self.language = "english"
        self.level = "beginner"
        self._save()
        return self._ai
