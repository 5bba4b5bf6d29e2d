import logging
from typing import Optional

from envcrypt.cache import ParsedKeyCache
from envcrypt.errors import EncryptionError, Err, Result
from envcrypt.registry import EnvironmentRegistry
from envcrypt.rsa_utils import encrypt_api_key, encrypt_with_key

logger = logging.getLogger(__name__)


class EncryptionService:
    """Resolves an environment and encrypts an API key under its public key."""

    def __init__(self, registry: EnvironmentRegistry, cache: Optional[ParsedKeyCache] = None):
        self.registry = registry
        self.cache = cache

    def encrypt(self, env: str, api_key: str) -> Result[str]:
        public_key_b64 = self.registry.resolve(env)
        if public_key_b64 is None:
            logger.warning(f"[ENCRYPT] Unknown environment {env!r}")
            return Err(EncryptionError.UNKNOWN_ENVIRONMENT)

        if self.cache is None:
            result = encrypt_api_key(public_key_b64, api_key)
        else:
            loaded = self.cache.get_or_load(env, public_key_b64)
            result = loaded if isinstance(loaded, Err) else encrypt_with_key(loaded.value, api_key)

        if isinstance(result, Err):
            if result.reason.is_misconfiguration:
                logger.error(f"[ENCRYPT] Environment {env!r} has an unusable public key: {result.reason.message}")
            else:
                logger.warning(f"[ENCRYPT] Encryption for environment {env!r} failed: {result.reason.message}")
        else:
            logger.debug(f"[ENCRYPT] Issued session key for environment {env!r}")
        return result
