from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from studypals.domain.constants import DEFAULT_SESSION_HISTORY_LIMIT

CONFIG_FILES = [
    Path.home() / ".config/studypals/config.toml",
    Path.home() / ".studypals.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for studypals.
    Supports loading from:
    1. Environment variables (STUDYPALS_*)
    2. Config file (~/.config/studypals/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="STUDYPALS_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/studypals")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/studypals/logs")

    # Analytics
    session_history_limit: int = Field(default=DEFAULT_SESSION_HISTORY_LIMIT, ge=1)

    # Server
    server_host: str = "127.0.0.1"
    server_port: int = 8777

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Use the first config file that exists
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        # Earlier sources take precedence
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/studypals/config.toml (if exists)
    3. Environment variables (STUDYPALS_*)
    4. cli_overrides (passed from Typer), None values ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
