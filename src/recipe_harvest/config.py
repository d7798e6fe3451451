"""Configuration management for recipe_harvest.

Settings are layered (later overrides earlier):

1. Default values
2. User config file (~/.config/recipe-harvest/config.toml)
3. Project config file (.recipe-harvest.toml or an explicit path)
4. Environment variables (RECIPE_HARVEST_*)

API keys are never part of the configuration file. They are read from
``OPENAI_API_KEY`` and ``GROK_API_KEY`` when the provider clients are built.

Example:
    >>> config = HarvestConfig.load()
    >>> config.update(ingredient_provider="grok")
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import ConfigurationError

VALID_PROVIDERS = ("openai", "grok")


@dataclass
class HarvestConfig:
    """Configuration for the harvesting pipeline.

    Attributes:
        Storage:
            database_path: SQLite file holding source URLs and recipes
            queue_path: SQLite file backing the task queues
            immediate: Run tasks inline with in-memory queue storage

        Fetching:
            request_timeout: Page download timeout in seconds
            verify_tls: Verify TLS certificates of recipe sites
            politeness_delay_min: Lower bound of the random pause (seconds)
            politeness_delay_max: Upper bound of the random pause (seconds)

        Tasks:
            task_max_attempts: Total attempts per task, first run included
            task_retry_delay: Fixed delay between attempts in seconds
            step_claim_ttl: Seconds after which an unfinished step claim is stale

        Providers:
            ingredient_provider: "openai" or "grok" (grok falls back to openai)
            openai_model / openai_base_url: OpenAI settings
            grok_model / grok_base_url / grok_temperature: Grok settings
            ingredients_timeout / steps_timeout: API call timeouts in seconds
    """

    # Storage settings
    database_path: Path = field(default_factory=lambda: Path("recipes.db"))
    queue_path: Path = field(default_factory=lambda: Path("queue.db"))
    immediate: bool = False

    # Fetch settings
    request_timeout: float = 30.0
    verify_tls: bool = False
    politeness_delay_min: int = 1
    politeness_delay_max: int = 3

    # Task settings
    task_max_attempts: int = 3
    task_retry_delay: int = 60
    step_claim_ttl: int = 21600

    # Provider settings
    ingredient_provider: str = "openai"
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str | None = None
    grok_model: str = "grok-2-1212"
    grok_base_url: str = "https://api.x.ai/v1"
    grok_temperature: float = 0.3
    ingredients_timeout: float = 30.0
    steps_timeout: float = 60.0

    # Output settings
    debug_mode: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If any configuration value is invalid
        """
        if self.ingredient_provider not in VALID_PROVIDERS:
            raise ConfigurationError(
                f"Invalid ingredient provider: {self.ingredient_provider}",
                ingredient_provider=self.ingredient_provider,
                valid_providers=", ".join(VALID_PROVIDERS),
            )

        if self.request_timeout <= 0:
            raise ConfigurationError(
                "request_timeout must be positive",
                request_timeout=self.request_timeout,
            )

        if self.ingredients_timeout <= 0 or self.steps_timeout <= 0:
            raise ConfigurationError(
                "API timeouts must be positive",
                ingredients_timeout=self.ingredients_timeout,
                steps_timeout=self.steps_timeout,
            )

        if self.politeness_delay_min < 0 or self.politeness_delay_max < self.politeness_delay_min:
            raise ConfigurationError(
                "politeness delay must satisfy 0 <= min <= max",
                politeness_delay_min=self.politeness_delay_min,
                politeness_delay_max=self.politeness_delay_max,
            )

        if self.task_max_attempts < 1:
            raise ConfigurationError(
                "task_max_attempts must be at least 1",
                task_max_attempts=self.task_max_attempts,
            )

        if self.task_retry_delay < 0:
            raise ConfigurationError(
                "task_retry_delay must be non-negative",
                task_retry_delay=self.task_retry_delay,
            )

        if self.step_claim_ttl <= 0:
            raise ConfigurationError(
                "step_claim_ttl must be positive",
                step_claim_ttl=self.step_claim_ttl,
            )

        if not 0.0 <= self.grok_temperature <= 2.0:
            raise ConfigurationError(
                "grok_temperature must be between 0.0 and 2.0",
                grok_temperature=self.grok_temperature,
            )

        # Paths may arrive as str from TOML or the environment
        if not isinstance(self.database_path, Path):
            self.database_path = Path(self.database_path)
        if not isinstance(self.queue_path, Path):
            self.queue_path = Path(self.queue_path)

    @property
    def delay_range(self) -> tuple[int, int]:
        """Politeness pause bounds as a (min, max) tuple."""
        return (self.politeness_delay_min, self.politeness_delay_max)

    @classmethod
    def load(
        cls,
        config_path: str | Path | None = None,
        load_user_config: bool = True,
        load_env: bool = True,
    ) -> "HarvestConfig":
        """Load configuration from file(s) and environment variables.

        Args:
            config_path: Path to project config file (optional)
            load_user_config: Whether to load the user config file
            load_env: Whether to load RECIPE_HARVEST_* environment variables

        Returns:
            Loaded and validated configuration

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_dict: dict[str, Any] = {}

        if load_user_config:
            user_config_path = Path.home() / ".config" / "recipe-harvest" / "config.toml"
            if user_config_path.exists():
                config_dict.update(cls._load_toml(user_config_path))

        if config_path:
            project_path = Path(config_path)
            if project_path.exists():
                config_dict.update(cls._load_toml(project_path))
        else:
            default_path = Path(".recipe-harvest.toml")
            if default_path.exists():
                config_dict.update(cls._load_toml(default_path))

        if load_env:
            config_dict.update(cls._load_env())

        unknown = set(config_dict) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(
                "Unknown configuration keys",
                keys=", ".join(sorted(unknown)),
            )

        return cls(**config_dict)

    @staticmethod
    def _load_toml(path: Path) -> dict[str, Any]:
        """Load configuration from a TOML file.

        A ``[recipe-harvest]`` table is used when present, otherwise the
        top-level keys.

        Raises:
            ConfigurationError: If the TOML file is invalid
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if "recipe-harvest" in data:
                return data["recipe-harvest"]
            return data

        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigurationError(
                f"Failed to load configuration from {path}",
                path=str(path),
                error=str(e),
            ) from e

    @staticmethod
    def _load_env() -> dict[str, Any]:
        """Load configuration from environment variables.

        Variables use the RECIPE_HARVEST_ prefix and uppercase snake_case:
        - RECIPE_HARVEST_INGREDIENT_PROVIDER=grok
        - RECIPE_HARVEST_TASK_RETRY_DELAY=30
        - RECIPE_HARVEST_IMMEDIATE=true

        Returns:
            Dictionary of configuration values from environment
        """
        config: dict[str, Any] = {}
        prefix = "RECIPE_HARVEST_"

        for key, value in os.environ.items():
            if not key.startswith(prefix):
                continue

            config_key = key[len(prefix) :].lower()

            if value.lower() in ("true", "yes"):
                config[config_key] = True
            elif value.lower() in ("false", "no"):
                config[config_key] = False
            elif value.isdigit():
                config[config_key] = int(value)
            elif value.replace(".", "", 1).isdigit():
                config[config_key] = float(value)
            else:
                config[config_key] = value

        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary with Paths as strings."""
        result: dict[str, Any] = {}
        for key, value in self.__dict__.items():
            if isinstance(value, Path):
                result[key] = str(value)
            else:
                result[key] = value
        return result

    def update(self, **kwargs: Any) -> None:
        """Update configuration values.

        Raises:
            ConfigurationError: If a key is unknown or a value is invalid

        Example:
            >>> config = HarvestConfig()
            >>> config.update(ingredient_provider="grok", task_retry_delay=30)
        """
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ConfigurationError(
                    f"Unknown configuration key: {key}",
                    key=key,
                    valid_keys=", ".join(self.__dataclass_fields__.keys()),
                )

        self._validate()
