"""Configuration management for contact deduplication."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError
from .models import MergeStrategy


class MatchingConfig(BaseModel):
    """Weights and thresholds used by the matcher and group builder."""

    name_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    email_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    phone_weight: float = Field(default=0.2, ge=0.0, le=1.0)
    organization_weight: float = Field(default=0.1, ge=0.0, le=1.0)

    # Pairs below this are never reported, whatever the strategy
    minimum_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    conservative_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    default_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    contact_info_override: float = Field(default=0.8, ge=0.0, le=1.0)

    name_containment_confidence: float = Field(default=0.85, ge=0.0, le=1.0)
    fuzzy_name_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    phonetic_name_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    phonetic_penalty: float = Field(default=0.9, ge=0.0, le=1.0)
    organization_containment_confidence: float = Field(default=0.8, ge=0.0, le=1.0)

    max_workers: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def check_thresholds(self):
        """Phonetic matching only applies below the fuzzy threshold."""
        if self.phonetic_name_threshold > self.fuzzy_name_threshold:
            raise ValueError(
                "phonetic_name_threshold must not exceed fuzzy_name_threshold"
            )
        return self

    def threshold_for(self, strategy: MergeStrategy) -> float:
        """Grouping threshold for a merge strategy."""
        if MergeStrategy.parse(strategy) == MergeStrategy.CONSERVATIVE:
            return self.conservative_threshold
        return self.default_threshold


class LoggingConfig(BaseModel):
    """Logging configuration."""

    format: str = "json"
    level: str = "INFO"
    log_file: Optional[str] = None

    @field_validator("format")
    def known_format(cls, v):
        if v not in ("json", "text"):
            raise ValueError("format must be 'json' or 'text'")
        return v

    @field_validator("level")
    def known_level(cls, v):
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {v}")
        return v


class Config(BaseModel):
    """Top-level configuration."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    default_strategy: MergeStrategy = MergeStrategy.CONSERVATIVE

    @field_validator("default_strategy", mode="before")
    def parse_strategy(cls, v):
        return MergeStrategy.parse(v)


class ConfigManager:
    """Manages configuration loading and validation."""

    DEFAULT_CONFIG = {
        "matching": MatchingConfig().model_dump(),
        "logging": {"format": "json", "level": "INFO", "log_file": None},
        "default_strategy": MergeStrategy.CONSERVATIVE.value,
    }

    ENV_OVERRIDES = {
        "CONTACTSCRUB_MIN_CONFIDENCE": ("matching", "minimum_confidence", float),
        "CONTACTSCRUB_CONSERVATIVE_THRESHOLD": ("matching", "conservative_threshold", float),
        "CONTACTSCRUB_DEFAULT_THRESHOLD": ("matching", "default_threshold", float),
        "CONTACTSCRUB_MAX_WORKERS": ("matching", "max_workers", int),
        "CONTACTSCRUB_LOG_LEVEL": ("logging", "level", str),
        "CONTACTSCRUB_LOG_FORMAT": ("logging", "format", str),
        "CONTACTSCRUB_LOG_FILE": ("logging", "log_file", str),
    }

    def __init__(self, config_path: Optional[str] = None, load_env_file: bool = True):
        """Initialize config manager.

        Args:
            config_path: Path to a JSON config file. If None, uses defaults + env vars
            load_env_file: Whether to read a .env file before applying env overrides
        """
        self.config_path = Path(config_path) if config_path else None
        self.load_env_file = load_env_file
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load configuration from file and environment."""
        if self._config:
            return self._config

        config_dict = self._deep_merge({}, self.DEFAULT_CONFIG)

        if self.config_path:
            if not self.config_path.exists():
                raise ConfigurationError(f"Config file not found: {self.config_path}")
            try:
                with open(self.config_path, "r") as f:
                    file_config = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(
                    f"Config file is not valid JSON: {e}", cause=e
                ) from e
            config_dict = self._deep_merge(config_dict, file_config)

        if self.load_env_file:
            load_dotenv()
        config_dict = self._apply_env_overrides(config_dict)

        try:
            self._config = Config(**config_dict)
        except PydanticValidationError as e:
            first = e.errors()[0]
            raise ConfigurationError(
                first["msg"],
                setting=".".join(str(p) for p in first["loc"]),
                cause=e,
            ) from e
        return self._config

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            elif isinstance(value, dict):
                result[key] = self._deep_merge({}, value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides."""
        for env_key, (section, setting, cast) in self.ENV_OVERRIDES.items():
            raw = os.getenv(env_key)
            if raw is None or raw == "":
                continue
            try:
                config.setdefault(section, {})[setting] = cast(raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"{env_key}={raw!r} is not a valid {cast.__name__}",
                    setting=f"{section}.{setting}",
                    cause=e,
                ) from e

        strategy = os.getenv("CONTACTSCRUB_STRATEGY")
        if strategy:
            config["default_strategy"] = MergeStrategy.parse(strategy).value

        return config

    def save_template(self, path: str):
        """Save a configuration template file."""
        template = self._deep_merge({}, self.DEFAULT_CONFIG)

        with open(path, "w") as f:
            json.dump(template, f, indent=2)


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration using ConfigManager."""
    return ConfigManager(config_path).load()
