import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from envcrypt.errors import ConfigError

# --- Server Config ---
DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_LOG_LEVEL = "INFO"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got '{value}'")


def _parse_port(name: str, value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        port = int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{value}'") from None
    if not 0 < port < 65536:
        raise ConfigError(f"{name} out of range: {port}")
    return port


@dataclass(frozen=True)
class Settings:
    config_path: str = DEFAULT_CONFIG_PATH
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL
    cache_keys: bool = False
    validate_keys: bool = False
    cors_origins: Tuple[str, ...] = field(default_factory=lambda: ("*",))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ENVCRYPT_* environment variables."""
        env = os.environ if environ is None else environ
        origins = env.get("ENVCRYPT_CORS_ORIGINS", "*")
        return cls(
            config_path=env.get("ENVCRYPT_CONFIG", DEFAULT_CONFIG_PATH),
            host=env.get("ENVCRYPT_HOST", DEFAULT_HOST),
            port=_parse_port("ENVCRYPT_PORT", env.get("ENVCRYPT_PORT"), DEFAULT_PORT),
            log_level=env.get("ENVCRYPT_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
            cache_keys=_parse_bool("ENVCRYPT_CACHE_KEYS", env.get("ENVCRYPT_CACHE_KEYS"), False),
            validate_keys=_parse_bool("ENVCRYPT_VALIDATE_KEYS", env.get("ENVCRYPT_VALIDATE_KEYS"), False),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) or ("*",),
        )
