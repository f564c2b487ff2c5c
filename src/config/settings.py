"""
Configuration management for cloud spend monitoring.

Uses dynaconf for flexible configuration with YAML files and environment overrides.
"""

import logging
from pathlib import Path
from typing import Any

from dynaconf import Dynaconf, Validator
from dynaconf.validator import ValidationError

logger = logging.getLogger(__name__)

# Get the project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"

PROVIDERS = ("aws", "azure", "gcp")

VALIDATORS = [
    Validator("storage.path", must_exist=True),
    # Cloud provider validation - only validate when providers are actually enabled
    Validator("clouds.aws.region", must_exist=True, when=Validator("clouds.aws.enabled", eq=True)),
    Validator("clouds.azure.subscription_id", must_exist=True, when=Validator("clouds.azure.enabled", eq=True)),
    Validator("clouds.gcp.project_id", must_exist=True, when=Validator("clouds.gcp.enabled", eq=True)),
    Validator("forecast.lookback_months", gte=2),
    Validator("default_provider", is_in=PROVIDERS, when=Validator("default_provider", must_exist=True)),
]


def build_settings(settings_files: list[str] | None = None) -> Dynaconf:
    """
    Create a dynaconf settings object.

    Args:
        settings_files: YAML files to load, later files overriding earlier ones.
            Defaults to the files under ``config/``.
    """
    if settings_files is None:
        settings_files = [
            str(CONFIG_DIR / "config.yaml"),  # Base configuration
            str(CONFIG_DIR / "free_tier_limits.yaml"),  # Free-tier allowances and budget presets
            str(CONFIG_DIR / "config.local.yaml"),  # Local overrides (git-ignored)
            str(CONFIG_DIR / ".secrets.yaml"),  # Secrets file (git-ignored)
        ]

    settings_obj = Dynaconf(
        envvar_prefix="CLOUDSPEND",
        settings_files=settings_files,
        environments=False,
        load_dotenv=True,
        merge_enabled=True,
        envvar_separator="__",  # Support nested config via CLOUDSPEND_CLOUDS__AWS__REGION=us-east-1
    )
    # Checked by CloudConfig._validate_config, not on load
    settings_obj.validators.register(*VALIDATORS)
    return settings_obj


settings = build_settings()


class CloudConfig:
    """Configuration wrapper for cloud provider and storage settings."""

    def __init__(self, settings_obj: Dynaconf | None = None):
        self.settings = settings_obj if settings_obj is not None else settings
        self._validate_config()

    def _validate_config(self):
        """Validate the configuration on initialization."""
        try:
            self.settings.validators.validate()
        except ValidationError as e:
            # Providers are often configured after the first run
            logger.warning(f"Configuration validation warning: {e}")
            logger.warning("Some providers may not be properly configured yet")

    def get(self, key: str, default: Any = None) -> Any:
        """Read a dotted settings key."""
        return self.settings.get(key, default)

    def set(self, key: str, value: Any):
        """Override a dotted settings key for this process."""
        self.settings.set(key, value)

    @property
    def storage(self) -> dict[str, Any]:
        """Storage configuration settings."""
        return self.settings.get("storage", {})

    @property
    def database_path(self) -> Path:
        """Path of the SQLite cost database."""
        return Path(self.storage.get("path", "~/.cloud-spend/costs.db")).expanduser()

    @property
    def database_timeout(self) -> float:
        """Seconds SQLite waits on a locked database."""
        return float(self.storage.get("timeout", 5.0))

    @property
    def aws(self) -> dict[str, Any]:
        """AWS configuration settings."""
        return self.settings.get("clouds.aws", {})

    @property
    def azure(self) -> dict[str, Any]:
        """Azure configuration settings."""
        return self.settings.get("clouds.azure", {})

    @property
    def gcp(self) -> dict[str, Any]:
        """GCP configuration settings."""
        return self.settings.get("clouds.gcp", {})

    @property
    def enabled_providers(self) -> list[str]:
        """List of enabled cloud providers."""
        return [name for name in PROVIDERS if self.get_provider_config(name).get("enabled", False)]

    @property
    def default_provider(self) -> str:
        """Provider used for ingestion and remote forecasts."""
        configured = self.settings.get("default_provider")
        if configured:
            return configured
        enabled = self.enabled_providers
        return enabled[0] if enabled else "azure"

    @property
    def currency(self) -> str:
        """Currency reported when a period holds no costs."""
        return self.settings.get("currency", "USD")

    @property
    def forecast(self) -> dict[str, Any]:
        """Forecast configuration."""
        return self.settings.get("forecast", {})

    @property
    def lookback_months(self) -> int:
        """Months of history fitted by the local forecast."""
        return int(self.forecast.get("lookback_months", 6))

    @property
    def free_tier(self) -> dict[str, Any]:
        """Free-tier allowances and budget presets."""
        return self.settings.get("free_tier", {})

    def get_provider_config(self, provider: str) -> dict[str, Any]:
        """Get configuration for a specific cloud provider."""
        provider_configs = {
            "aws": self.aws,
            "azure": self.azure,
            "gcp": self.gcp,
        }
        # Environment overrides can arrive upper-cased
        return {str(key).lower(): value for key, value in provider_configs.get(provider, {}).items()}

    def is_provider_enabled(self, provider: str) -> bool:
        """Check if a specific cloud provider is enabled."""
        return provider in self.enabled_providers


# Global configuration instance
config = CloudConfig()


def get_config() -> CloudConfig:
    """Get the global configuration instance."""
    return config


def reload_config():
    """Reload configuration from files."""
    global config
    settings.reload()
    config = CloudConfig()
    return config
