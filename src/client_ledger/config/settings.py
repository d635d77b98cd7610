import os
from dataclasses import dataclass, fields
from decimal import Decimal
from pathlib import Path
import json
from typing import Dict, Any, Optional

# Package defaults (bundled with code)
PACKAGE_CONFIG_DIR = Path(__file__).parent / "defaults"

# User configs (relative to the working directory, gitignored)
USER_CONFIG_DIR = Path("config")

# Environment variables that win over both config files
ENV_OVERRIDES = {
    "database_path": "CLIENT_LEDGER_DB",
    "output_dir": "CLIENT_LEDGER_OUTPUT",
    "pin": "CLIENT_LEDGER_PIN",
    "log_level": "CLIENT_LEDGER_LOG_LEVEL",
}

class ConfigLoader:
    """Load configuration with user overrides"""

    @staticmethod
    def load_config(config_name: str) -> Dict[str, Any]:
        """
        Load config with fallback: user config -> default config

        Args:
            config_name: Name of the config file (e.g., 'settings.json')

        Raises:
            FileNotFoundError: If no config file was found

        Returns:
            Parsed JSON configuration
        """
        user_config_path = USER_CONFIG_DIR / config_name
        if user_config_path.exists():
            with open(user_config_path) as f:
                return json.load(f)

        default_config_path = PACKAGE_CONFIG_DIR / config_name
        if default_config_path.exists():
            with open(default_config_path) as f:
                return json.load(f)

        raise FileNotFoundError(
            f"Config file '{config_name}' not found in:\n"
            f" - {user_config_path}\n"
            f" - {default_config_path}"
        )

    @staticmethod
    def load_settings() -> "Settings":
        """Load application settings from settings.json and the environment"""
        return Settings.from_dict(ConfigLoader.load_config('settings.json'))


@dataclass(frozen=True)
class Settings:
    """Application settings. Every field has a usable default."""
    brand: str = "Dinix"
    company_name: str = "Dinix General Trading"
    kes_per_usd: Decimal = Decimal("130") # ranking only, never displayed
    pin: str = "2580"
    output_dir: Path = Path("exports")
    database_path: Path = Path("data/ledger.db")
    log_level: str = "INFO"

    @classmethod
    def from_dict(
        cls,
        config: Dict[str, Any],
        environ: Optional[Dict[str, str]] = None,
    ) -> "Settings":
        """
        Build settings from a config dict, then apply environment overrides.

        Unknown keys are ignored so older config files keep working.
        """
        if environ is None:
            environ = dict(os.environ)

        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in config.items() if k in known}

        for name, variable in ENV_OVERRIDES.items():
            if environ.get(variable):
                values[name] = environ[variable]

        if "kes_per_usd" in values:
            values["kes_per_usd"] = Decimal(str(values["kes_per_usd"]))
        for name in ("output_dir", "database_path"):
            if name in values:
                values[name] = Path(values[name])
        if "pin" in values:
            values["pin"] = str(values["pin"])

        return cls(**values)
