import threading
import logging
from typing import Dict

from cryptography.hazmat.primitives.asymmetric import rsa

from envcrypt.errors import Err, Ok, Result
from envcrypt.rsa_utils import load_public_key

logger = logging.getLogger(__name__)


class ParsedKeyCache:
    """Parsed RSA public keys keyed by environment name.

    Only successful parses are stored, so a broken key keeps failing the
    same way it would without the cache.
    """

    def __init__(self):
        self._keys: Dict[str, rsa.RSAPublicKey] = {}
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._keys)

    def __contains__(self, name):
        with self._lock:
            return name in self._keys

    def get_or_load(self, name: str, public_key_b64: str) -> Result[rsa.RSAPublicKey]:
        with self._lock:
            cached = self._keys.get(name)
        if cached is not None:
            return Ok(cached)

        loaded = load_public_key(public_key_b64)
        if isinstance(loaded, Err):
            return loaded

        with self._lock:
            # another request may have parsed it first; keep one object
            key = self._keys.setdefault(name, loaded.value)
        logger.debug(f"[CACHE] Cached public key for environment '{name}'")
        return Ok(key)

    def clear(self):
        with self._lock:
            self._keys.clear()
