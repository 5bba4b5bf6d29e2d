import json
import logging
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from envcrypt.errors import ConfigError, Err
from envcrypt.rsa_utils import load_public_key

logger = logging.getLogger(__name__)


# --- Models ---
class EnvironmentEntry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1)
    public_key: str = Field(..., alias="publicKey")


class AppConfig(BaseModel):
    environments: List[EnvironmentEntry] = Field(default_factory=list)


class EnvironmentRegistry:
    """Read-only mapping from environment name to base64 DER public key.

    Built once at startup and shared by every request; nothing mutates it
    afterwards, so concurrent reads need no locking.
    """

    def __init__(self, entries: Iterable[EnvironmentEntry]):
        self._entries: Tuple[EnvironmentEntry, ...] = tuple(entries)

    def __len__(self):
        return len(self._entries)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(entry.name for entry in self._entries)

    def resolve(self, name: str) -> Optional[str]:
        """Return the public key of the first entry named exactly ``name``, or None."""
        if not name:
            return None
        for entry in self._entries:
            if entry.name == name:
                return entry.public_key or None
        return None


def load_registry(path: str) -> EnvironmentRegistry:
    try:
        with open(path, "r") as f:
            raw = json.load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse configuration file {path}: {e}") from e

    try:
        app_config = AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    seen = set()
    for entry in app_config.environments:
        if entry.name in seen:
            logger.warning(f"[CONFIG] Duplicate environment '{entry.name}' in {path}; the first entry wins")
        seen.add(entry.name)

    registry = EnvironmentRegistry(app_config.environments)
    logger.info(f"[CONFIG] Loaded {len(registry)} environment(s) from {path}: {', '.join(registry.names)}")
    return registry


def validate_registry(registry: EnvironmentRegistry) -> None:
    """Parse every configured key up front and fail if any is unusable."""
    failures = []
    for name in dict.fromkeys(registry.names):
        public_key_b64 = registry.resolve(name)
        if public_key_b64 is None:
            failures.append(f"{name}: empty public key")
            continue
        loaded = load_public_key(public_key_b64)
        if isinstance(loaded, Err):
            failures.append(f"{name}: {loaded.reason.message}")

    if failures:
        raise ConfigError("Unusable environment keys: " + "; ".join(failures))
    logger.info(f"[CONFIG] Validated public keys for {len(registry)} environment(s)")
