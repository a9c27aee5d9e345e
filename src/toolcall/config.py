"""Configuration: frozen ProviderConfig resolved from settings sources.

Resolution follows the precedence ``defaults < TOML file < env < overrides``.
The resolved ``ProviderConfig`` is a read-only snapshot; ``invoke`` never
reads configuration ambiently mid-call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import os
from pathlib import Path
import tomllib
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from toolcall.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

ENV_PREFIX = "TOOLCALL_"
CONFIG_TABLE = "toolcall"
DEFAULT_CONFIG_FILE = Path("~/.config/toolcall.toml")


class ProviderKind(str, Enum):
    """Supported provider wire protocols."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class AuthHeaderStyle(str, Enum):
    """How the API key is attached to outbound requests."""

    API_KEY_HEADER = "x-api-key"
    BEARER = "bearer"


@dataclass(frozen=True)
class _ProviderDefaults:
    endpoint_url: str
    model: str
    auth_header_style: AuthHeaderStyle
    api_key_env: str


_PROVIDER_DEFAULTS: dict[ProviderKind, _ProviderDefaults] = {
    ProviderKind.ANTHROPIC: _ProviderDefaults(
        endpoint_url="https://api.anthropic.com/v1/messages",
        model="claude-3-haiku-20240307",
        auth_header_style=AuthHeaderStyle.API_KEY_HEADER,
        api_key_env="ANTHROPIC_API_KEY",
    ),
    ProviderKind.OPENAI: _ProviderDefaults(
        endpoint_url="https://api.openai.com/v1/chat/completions",
        model="gpt-4o-mini",
        auth_header_style=AuthHeaderStyle.BEARER,
        api_key_env="OPENAI_API_KEY",
    ),
}

DEFAULT_MAX_TOKENS = 2048
DEFAULT_SYSTEM_PREAMBLE = (
    "You are a helpful assistant. Use the supplied tools to assist the user."
)
DEFAULT_HTTP_TIMEOUT_S = 60.0


def api_key_env_var(provider: ProviderKind | str) -> str:
    """Return the conventional API key environment variable for *provider*."""
    try:
        kind = ProviderKind(provider)
    except ValueError:
        return f"{ENV_PREFIX}API_KEY"
    return _PROVIDER_DEFAULTS[kind].api_key_env


@dataclass(frozen=True)
class ProviderConfig:
    """Immutable snapshot of which backend to call and how.

    Unset endpoint, model, and auth style fall back to the provider's
    defaults. An empty API key is allowed here; ``invoke`` reports it as a
    precondition failure before dialing out.

    Example:
        config = ProviderConfig(provider="openai", api_key="sk-...")
    """

    provider: ProviderKind
    api_key: str | None = None
    model: str | None = None
    endpoint_url: str | None = None
    auth_header_style: AuthHeaderStyle | None = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    system_preamble: str = DEFAULT_SYSTEM_PREAMBLE
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT_S

    def __post_init__(self) -> None:
        """Normalize enums and fill provider defaults."""
        try:
            kind = ProviderKind(self.provider)
        except ValueError:
            raise ConfigurationError(
                f"Unknown provider: {self.provider!r}",
                hint="Supported providers: 'anthropic', 'openai'",
            ) from None
        object.__setattr__(self, "provider", kind)
        defaults = _PROVIDER_DEFAULTS[kind]

        if self.auth_header_style is None:
            style = defaults.auth_header_style
        else:
            try:
                style = AuthHeaderStyle(self.auth_header_style)
            except ValueError:
                raise ConfigurationError(
                    f"Unknown auth_header_style: {self.auth_header_style!r}",
                    hint="Use 'x-api-key' or 'bearer'.",
                ) from None
        object.__setattr__(self, "auth_header_style", style)

        if not self.model:
            object.__setattr__(self, "model", defaults.model)
        if not self.endpoint_url:
            object.__setattr__(self, "endpoint_url", defaults.endpoint_url)
        if self.api_key is not None:
            object.__setattr__(self, "api_key", self.api_key.strip() or None)

        if self.max_tokens < 1:
            raise ConfigurationError(
                f"max_tokens must be ≥ 1, got {self.max_tokens}",
                hint="This caps the length of the provider's reply.",
            )
        if self.http_timeout_s <= 0:
            raise ConfigurationError(
                f"http_timeout_s must be > 0, got {self.http_timeout_s}",
                hint="This bounds a single HTTP attempt, in seconds.",
            )

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"ProviderConfig(provider={self.provider.value!r}, model={self.model!r}, "
            f"endpoint_url={self.endpoint_url!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None})"
        )

    __repr__ = __str__


# --- Schema (Pydantic wall) ---


def _parse_provider(value: Any) -> ProviderKind | None:
    """Map a stored provider name to a kind; blank means Anthropic, unknown is None."""
    if isinstance(value, ProviderKind):
        return value
    name = str(value or "").strip().lower()
    if not name:
        return ProviderKind.ANTHROPIC
    try:
        return ProviderKind(name)
    except ValueError:
        return None


class Settings(BaseModel):
    """Validated settings gathered from files, environment, and overrides."""

    provider: ProviderKind = Field(default=ProviderKind.ANTHROPIC)
    api_key: SecretStr | None = Field(default=None)
    model: str | None = Field(default=None)
    endpoint_url: str | None = Field(default=None)
    auth_header_style: AuthHeaderStyle | None = Field(default=None)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=1)
    system_preamble: str = Field(default=DEFAULT_SYSTEM_PREAMBLE)
    http_timeout_s: float = Field(default=DEFAULT_HTTP_TIMEOUT_S, gt=0)

    model_config = {"extra": "ignore"}

    @field_validator("provider", mode="before")
    @classmethod
    def normalize_provider(cls, v: Any) -> Any:
        """Fall back to Anthropic when the stored provider name is unknown."""
        kind = _parse_provider(v)
        if kind is None:
            logger.error("Invalid AI provider %r selected. Defaulting to anthropic.", v)
            return ProviderKind.ANTHROPIC
        return kind

    @field_validator("api_key", mode="before")
    @classmethod
    def normalize_api_key(cls, v: Any) -> Any:
        """Trim whitespace and map empty keys to None."""
        if isinstance(v, SecretStr):
            v = v.get_secret_value()
        if isinstance(v, str):
            s = v.strip()
            return SecretStr(s) if s else None
        return v

    @field_validator("model", "endpoint_url", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v

    def to_provider_config(self) -> ProviderConfig:
        return ProviderConfig(
            provider=self.provider,
            api_key=self.api_key.get_secret_value() if self.api_key else None,
            model=self.model,
            endpoint_url=self.endpoint_url,
            auth_header_style=self.auth_header_style,
            max_tokens=self.max_tokens,
            system_preamble=self.system_preamble,
            http_timeout_s=self.http_timeout_s,
        )


# --- Loaders ---

_DOTENV_LOADED: bool = False


def _try_load_dotenv() -> None:
    """Load a .env file once; existing environment variables win."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    _DOTENV_LOADED = True
    from dotenv import load_dotenv

    load_dotenv()


def load_env() -> dict[str, Any]:
    """Read ``TOOLCALL_*`` variables into a settings mapping."""
    config: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            config[field_name] = value
    return config


def get_config_file_path() -> Path:
    raw = os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")
    path = Path(raw) if raw else DEFAULT_CONFIG_FILE
    return path.expanduser()


def load_file(path: Path | None = None) -> dict[str, Any]:
    """Read the ``[toolcall]`` table from a TOML file.

    A missing file yields an empty mapping; an unreadable one is a
    configuration error.
    """
    target = path if path is not None else get_config_file_path()
    if not target.is_file():
        return {}
    try:
        with target.open("rb") as fh:
            data = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(
            f"Could not read config file {target}: {e}",
            hint="Fix the TOML syntax or unset TOOLCALL_CONFIG_FILE.",
        ) from e
    table = data.get(CONFIG_TABLE, {})
    return dict(table) if isinstance(table, dict) else {}


def resolve_provider_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    config_file: Path | None = None,
) -> ProviderConfig:
    """Resolve a ``ProviderConfig`` from all configuration sources.

    Args:
        overrides: Programmatic values; highest precedence.
        config_file: Explicit TOML path; defaults to ``TOOLCALL_CONFIG_FILE``
            or ``~/.config/toolcall.toml``.

    Returns:
        A frozen ``ProviderConfig``. The API key may be unset.

    Raises:
        ConfigurationError: If the merged settings fail validation.
    """
    _try_load_dotenv()

    file_values = load_file(config_file)
    env_values = load_env()
    override_values = {k: v for k, v in (overrides or {}).items() if v is not None}

    merged: dict[str, Any] = {}
    merged.update(file_values)
    merged.update(env_values)
    merged.update(override_values)

    # A key stored in the file belongs to the provider named in that file.
    if "api_key" in file_values and not ("api_key" in env_values or "api_key" in override_values):
        file_provider = _parse_provider(file_values.get("provider")) or ProviderKind.ANTHROPIC
        active_provider = _parse_provider(merged.get("provider")) or ProviderKind.ANTHROPIC
        if active_provider is not file_provider:
            logger.info(
                "Ignoring config file api_key for %s; active provider is %s",
                file_provider.value,
                active_provider.value,
            )
            merged.pop("api_key")

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        err = e.errors()[0]
        loc = ".".join(str(p) for p in err.get("loc", ()))
        msg = str(err.get("msg", "")).removeprefix("Value error, ")
        raise ConfigurationError(
            f"Configuration validation failed: {loc}: {msg}"
        ) from e

    # Accept the provider's conventional key variable as a convenience.
    if settings.api_key is None:
        fallback = os.environ.get(api_key_env_var(settings.provider), "").strip()
        if fallback:
            settings = settings.model_copy(update={"api_key": SecretStr(fallback)})

    return settings.to_provider_config()
