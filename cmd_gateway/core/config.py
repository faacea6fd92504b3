# cmd_gateway/core/config.py

import yaml
from pathlib import Path
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Any, Dict, FrozenSet, List

# Define the root directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent.parent

DEFAULT_ALLOWED_EXTENSIONS = [".exe", ".bat", ".sh", ""]
FORBIDDEN_ARG_CHARS = "<>|&;$"


def yaml_config_settings_source() -> Dict[str, Any]:
    """
    A settings source that loads variables from a YAML file.
    """
    config_file = BASE_DIR / "config" / "settings.yaml"
    if config_file.exists():
        with open(config_file, "r") as f:
            return yaml.safe_load(f) or {}
    return {}


class ExecutionPolicy(BaseModel):
    """
    The immutable rules applied to every command.

    Built once at startup from Settings and handed to the CommandGate, which
    passes it down to the validator, the path resolver and the executor.
    """
    model_config = ConfigDict(frozen=True)

    command_root: Path = Path("./cmd")
    timeout: float = 30.0
    max_args: int = 10
    max_arg_length: int = 100
    allowed_extensions: FrozenSet[str] = frozenset(DEFAULT_ALLOWED_EXTENSIONS)
    forbidden_chars: str = FORBIDDEN_ARG_CHARS

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @field_validator("max_args", "max_arg_length")
    @classmethod
    def _non_negative_limit(cls, value: int) -> int:
        if value < 0:
            raise ValueError("limits must not be negative")
        return value


class Settings(BaseSettings):
    """
    Main application settings class.
    It inherits from pydantic_settings.BaseSettings, which allows it to automatically
    read settings from environment variables and other sources.
    """
    # --- General Settings ---
    project_name: str = "Command Gateway"
    log_level: str = "INFO"
    debug: bool = False

    # --- Server ---
    host: str = "0.0.0.0"
    port: int = 3000
    ws_path: str = "/ws"
    # Browser origins allowed to open the socket. "*" allows any origin.
    # Clients that send no Origin header (CLIs, scripts) are always accepted.
    allowed_origins: List[str] = []

    # --- Execution Policy ---
    command_root: str = "./cmd"
    command_timeout: float = 30.0
    max_args: int = 10
    max_arg_length: int = 100
    allowed_extensions: List[str] = DEFAULT_ALLOWED_EXTENSIONS

    model_config = SettingsConfigDict(
        # Environment variables are case-insensitive
        case_sensitive=False,
        # Specify the file to read environment variables from (for local development)
        env_file=BASE_DIR / ".env",
        env_file_encoding='utf-8'
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """
        Define the priority of settings sources.
        1. init_settings (arguments passed to the constructor)
        2. env_settings (Environment variables)
        3. dotenv_settings (.env file)
        4. yaml_config_settings_source (our custom YAML file loader)
        5. file_secret_settings (Docker secrets)
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            yaml_config_settings_source,
            file_secret_settings,
        )

    def execution_policy(self) -> ExecutionPolicy:
        """Freezes the execution-related settings into an ExecutionPolicy."""
        return ExecutionPolicy(
            command_root=Path(self.command_root),
            timeout=self.command_timeout,
            max_args=self.max_args,
            max_arg_length=self.max_arg_length,
            allowed_extensions=frozenset(self.allowed_extensions),
        )


# Create a single, reusable instance of the settings
settings = Settings()
