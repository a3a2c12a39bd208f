from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from flashmaster.domain.constants import (
    BACKUPS_DIR_NAME,
    DEFAULT_MAX_BACKUPS,
    MIN_BACKUPS,
    STORE_FILE_NAME,
)


def default_data_dir() -> Path:
    return Path.home() / ".local/share/flashmaster"


class AppConfig(BaseSettings):
    """
    Configuration model for flashmaster.
    Supports loading from:
    1. Environment variables (FLASHMASTER_*)
    2. Config file (~/.config/flashmaster/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="FLASHMASTER_",
        extra="ignore",
    )

    # Storage
    backend: Literal["json", "memory"] = "json"
    data_dir: Path = Field(default_factory=default_data_dir)
    store_path: Path | None = None
    backups_dir: Path | None = None
    max_backups: int = DEFAULT_MAX_BACKUPS

    # Logging
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

        # First existing config file wins; init (CLI) > env > file
        toml_file = next((f for f in _config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_data_dir(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("store_path", "backups_dir", mode="before")
    @classmethod
    def resolve_optional_path(cls, v: Any) -> Path | None:
        if v:
            return Path(v).expanduser().resolve()
        return None

    @field_validator("max_backups", mode="after")
    @classmethod
    def floor_max_backups(cls, v: int) -> int:
        return max(v, MIN_BACKUPS)


def _config_files() -> list[Path]:
    # Evaluated per call so a patched HOME is honoured
    return [
        Path.home() / ".config/flashmaster/config.toml",
        Path.home() / ".flashmaster.toml",
    ]


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/flashmaster/config.toml (if exists)
    3. Environment variables (FLASHMASTER_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    config = AppConfig(**overrides)

    if config.store_path is None:
        config.store_path = config.data_dir / STORE_FILE_NAME

    if config.backups_dir is None:
        config.backups_dir = config.store_path.parent / BACKUPS_DIR_NAME

    return config
