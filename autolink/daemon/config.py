"""Configuration management for autolink.

Two layers live here:

- ``Settings``: the user-tunable suggestion settings. They are persisted
  together with usage statistics in the data blob (camelCase keys) and are
  validated at this boundary so scoring never sees out-of-range values.
- ``Config``: where the vault lives and how the service logs, loaded from
  a YAML file.
"""

from pathlib import Path
from typing import Optional, Dict, Any, Callable
import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel


class Settings(BaseModel):
    """Suggestion settings. Immutable: updates produce a new instance."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    min_trigger_length: int = 2
    max_suggestions: int = 10
    case_sensitive: bool = False
    match_start: bool = False
    include_aliases: bool = True
    show_path: bool = False
    enable_usage_ranking: bool = True

    enable_recency_boost: bool = True
    recency_weight: float = 30.0  # percent of the base score taken from recency
    decay_threshold_days: int = 90

    enable_newness_boost: bool = True
    newness_boost_days: int = 7
    newness_boost_strength: float = 0.5

    @field_validator('min_trigger_length', 'max_suggestions', 'decay_threshold_days', 'newness_boost_days')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator('recency_weight')
    @classmethod
    def validate_weight(cls, v: float) -> float:
        if not 0 <= v <= 100:
            raise ValueError("recency_weight must be between 0 and 100")
        return v

    @field_validator('newness_boost_strength')
    @classmethod
    def validate_strength(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("newness_boost_strength must be between 0.0 and 2.0")
        return v

    @classmethod
    def field_name(cls, key: str) -> Optional[str]:
        """Resolve a field name or its camelCase alias to the field name."""
        if key in cls.model_fields:
            return key
        for name in cls.model_fields:
            if to_camel(name) == key:
                return name
        return None

    @classmethod
    def from_persisted(cls, data: Any) -> "Settings":
        """
        Build settings from a persisted mapping.

        Missing fields take their defaults; invalid values are dropped
        field by field instead of failing the whole load.
        """
        if not isinstance(data, dict):
            return cls()

        accepted: Dict[str, Any] = {}
        for key, value in data.items():
            name = cls.field_name(key)
            if name is None:
                continue
            try:
                cls.model_validate({**accepted, name: value})
            except ValidationError:
                logger.warning(f"Ignoring invalid persisted setting {key}={value!r}")
                continue
            accepted[name] = value
        return cls.model_validate(accepted)

    def to_persisted(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class SettingsManager:
    """
    Holds the current settings and applies validated updates.

    A query reads ``current`` once and works with that instance, so an
    update never changes settings in the middle of a ranking pass.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        on_change: Optional[Callable[[], None]] = None
    ):
        self._settings = settings or Settings()
        self._on_change = on_change

    @property
    def current(self) -> Settings:
        return self._settings

    def replace(self, settings: Settings) -> None:
        """Swap in settings loaded from storage without triggering a save."""
        self._settings = settings

    def set_on_change(self, callback: Optional[Callable[[], None]]) -> None:
        self._on_change = callback

    def update(self, **changes: Any) -> bool:
        """
        Apply changes if they all validate.

        Returns False (and keeps the prior values) when any key is unknown
        or any value is out of range.
        """
        normalized: Dict[str, Any] = {}
        for key, value in changes.items():
            name = Settings.field_name(key)
            if name is None:
                logger.warning(f"Unknown setting: {key}")
                return False
            normalized[name] = value

        try:
            updated = Settings.model_validate({**self._settings.model_dump(), **normalized})
        except ValidationError as e:
            logger.warning(f"Rejected settings update {normalized}: {e.errors()[0]['msg']}")
            return False

        self._settings = updated
        logger.debug(f"Settings updated: {normalized}")
        if self._on_change:
            self._on_change()
        return True


class Config(BaseModel):
    """Main configuration for the autolink service."""

    vault_path: Path
    data_dir: Optional[Path] = None
    extension: str = ".md"
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @field_validator('vault_path')
    @classmethod
    def validate_vault_path(cls, v: Path) -> Path:
        if isinstance(v, str):
            v = Path(v)
        v = v.expanduser().resolve()
        if not v.exists():
            logger.warning(f"Vault path does not exist, will create: {v}")
            v.mkdir(parents=True, exist_ok=True)
        return v

    @field_validator('extension')
    @classmethod
    def validate_extension(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("extension must not be empty")
        return v if v.startswith(".") else f".{v}"

    @property
    def data_path(self) -> Path:
        """File holding persisted settings and usage statistics."""
        data_dir = self.data_dir or (self.vault_path / ".autolink")
        return data_dir / "data.json"

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file."""
        if config_path is None:
            # Try default locations
            candidates = [
                Path("autolink.yaml"),
                Path.home() / ".config" / "autolink" / "config.yaml",
                Path("/etc/autolink/config.yaml"),
            ]
            for candidate in candidates:
                if candidate.exists():
                    config_path = candidate
                    break
            else:
                raise FileNotFoundError(
                    f"No config file found. Searched: {[str(c) for c in candidates]}"
                )

        logger.info(f"Loading config from: {config_path}")
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False)
