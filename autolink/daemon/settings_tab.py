"""Settings form: field descriptions for the host and validated writes."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from loguru import logger

from .config import Settings, SettingsManager


@dataclass(frozen=True)
class SettingField:
    """One row of the settings form."""
    key: str
    name: str
    description: str
    kind: str  # toggle|number|percent
    value: Any = None


_FIELDS = [
    ("min_trigger_length", "Minimum characters",
     "Minimum number of characters before suggestions appear", "number"),
    ("max_suggestions", "Maximum suggestions",
     "Maximum number of suggestions to show in the dropdown", "number"),
    ("case_sensitive", "Case sensitive",
     "Match note titles with case sensitivity", "toggle"),
    ("match_start", "Match at start",
     "Only match note titles that start with the typed text", "toggle"),
    ("include_aliases", "Include aliases",
     "Show note aliases from front matter in suggestions", "toggle"),
    ("show_path", "Show file path",
     "Display the file path below each suggestion", "toggle"),
    ("enable_usage_ranking", "Enable usage-based ranking",
     "Rank suggestions by how often you select them", "toggle"),
    ("enable_recency_boost", "Boost recently used notes",
     "Blend how recently a note was selected into its rank", "toggle"),
    ("recency_weight", "Recency weight",
     "Share of the usage score that comes from recency (0-100)", "percent"),
    ("decay_threshold_days", "Decay after days",
     "Days without selection after which a note's usage score starts to fade", "number"),
    ("enable_newness_boost", "Boost new notes",
     "Temporarily rank recently created notes higher", "toggle"),
    ("newness_boost_days", "Newness window (days)",
     "How many days a new note keeps its boost", "number"),
    ("newness_boost_strength", "Newness boost strength",
     "Extra multiplier for a note created today (0.0-2.0)", "number"),
]

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


def parse_value(raw: str, current: Any) -> Any:
    """Parse text input according to the type of the current value."""
    text = raw.strip()
    if isinstance(current, bool):
        lowered = text.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"Not a boolean: {raw!r}")
    if isinstance(current, int):
        return int(text)
    if isinstance(current, float):
        return float(text)
    return text


class SettingsTab:
    """Describes the settings form and applies edits through the manager."""

    def __init__(self, manager: SettingsManager):
        self.manager = manager

    def describe(self) -> List[SettingField]:
        settings = self.manager.current
        return [
            SettingField(key, name, description, kind, getattr(settings, key))
            for key, name, description, kind in _FIELDS
        ]

    def set(self, key: str, raw: str) -> bool:
        """Apply a text edit; invalid input is ignored and the prior value kept."""
        name = Settings.field_name(key)
        if name is None:
            logger.warning(f"Unknown setting: {key}")
            return False
        try:
            value = parse_value(raw, getattr(self.manager.current, name))
        except ValueError as e:
            logger.warning(f"Ignoring setting {key}: {e}")
            return False
        return self.manager.update(**{name: value})

    def as_dict(self) -> Dict[str, Any]:
        return self.manager.current.model_dump()

    def get(self, key: str) -> Optional[Any]:
        name = Settings.field_name(key)
        return getattr(self.manager.current, name) if name else None
