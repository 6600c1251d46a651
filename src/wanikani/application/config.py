from pathlib import Path
from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from wanikani.domain.constants import (
    API_REVISION,
    RATE_LIMIT_WINDOW,
    REQUEST_TIMEOUT,
    URL_BASE,
)


class ClientSettings(BaseSettings):
    """
    Configuration for the WaniKani client.
    Supports loading from:
    1. Environment variables (WANIKANI_*)
    2. Config file (~/.config/wanikani/config.toml)
    3. Explicit overrides
    """

    model_config = SettingsConfigDict(
        env_prefix="WANIKANI_",
        extra="ignore",
    )

    api_token: SecretStr | None = None
    base_url: str = URL_BASE
    revision: str = API_REVISION

    # HTTP
    request_timeout: float = Field(default=REQUEST_TIMEOUT, gt=0)
    rate_limit_window: int = Field(default=RATE_LIMIT_WINDOW, gt=0)

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

        # First existing file wins
        toml_file = next((f for f in _config_files() if f.exists()), None)

        # Earlier sources take priority
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v


def _config_files() -> list[Path]:
    # Resolved per call so a patched HOME is honoured.
    return [
        Path.home() / ".config/wanikani/config.toml",
        Path.home() / ".wanikani.toml",
    ]


def resolve_settings(overrides: dict[str, Any] | None = None) -> ClientSettings:
    """
    Multi-layered configuration resolution.
    1. Defaults in ClientSettings
    2. ~/.config/wanikani/config.toml or ~/.wanikani.toml (if exists)
    3. Environment variables (WANIKANI_*)
    4. overrides (None values are ignored)
    """
    cleaned = {k: v for k, v in (overrides or {}).items() if v is not None}
    return ClientSettings(**cleaned)
