import base64
import binascii
import logging

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from envcrypt.errors import EncryptionError, Err, Ok, Result

logger = logging.getLogger(__name__)

# PKCS#1 v1.5 needs at least 8 random padding bytes plus 3 framing bytes
PKCS1V15_OVERHEAD = 11


def generate_rsa_keys(key_size=2048):
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size
    )
    public_key = private_key.public_key()
    return private_key, public_key


def public_key_to_b64(public_key) -> str:
    """Encode a public key the way environments are configured: base64 of the DER SubjectPublicKeyInfo."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return base64.b64encode(der).decode("ascii")


def max_plaintext_length(public_key: rsa.RSAPublicKey) -> int:
    return (public_key.key_size + 7) // 8 - PKCS1V15_OVERHEAD


def load_public_key(public_key_b64: str) -> Result[rsa.RSAPublicKey]:
    """Decode, parse and type-check a configured public key.

    Returns ``Ok(RSAPublicKey)`` or ``Err`` with DECODE_ERROR, PARSE_ERROR
    or KEY_TYPE_ERROR.
    """
    # line-wrapped keys are accepted, any other stray character is not
    unwrapped = public_key_b64.replace("\r", "").replace("\n", "")
    try:
        der = base64.b64decode(unwrapped, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.error(f"[RSA] Error decoding base64-encoded public key: {e}")
        return Err(EncryptionError.DECODE_ERROR)

    try:
        public_key = serialization.load_der_public_key(der)
    except (ValueError, UnsupportedAlgorithm) as e:
        logger.error(f"[RSA] Error parsing public key: {e}")
        return Err(EncryptionError.PARSE_ERROR)

    if not isinstance(public_key, rsa.RSAPublicKey):
        logger.error(f"[RSA] Expected an RSA public key, got {type(public_key).__name__}")
        return Err(EncryptionError.KEY_TYPE_ERROR)

    return Ok(public_key)


def _utf8(text: str) -> bytes:
    # lone surrogates from JSON "\udXXX" escapes become U+FFFD
    return text.encode("utf-16", "surrogatepass").decode("utf-16", "replace").encode("utf-8")


def encrypt_with_key(public_key: rsa.RSAPublicKey, plaintext: str) -> Result[str]:
    message = _utf8(plaintext)
    limit = max_plaintext_length(public_key)
    if len(message) > limit:
        logger.warning(f"[RSA] Plaintext of {len(message)} bytes exceeds the {limit} byte limit of a {public_key.key_size}-bit key")
        return Err(EncryptionError.PLAINTEXT_TOO_LARGE)

    try:
        ciphertext = public_key.encrypt(message, padding.PKCS1v15())
    except Exception as e:
        logger.exception(f"[RSA] Error encrypting access token: {e}")
        return Err(EncryptionError.ENCRYPTION_FAILURE)

    return Ok(base64.b64encode(ciphertext).decode("ascii"))


def encrypt_api_key(public_key_b64: str, plaintext: str) -> Result[str]:
    """Encrypt ``plaintext`` with RSA PKCS#1 v1.5 under a base64 DER public key.

    The key is parsed on every call. Padding bytes come from the OS CSPRNG,
    so two calls with the same input give different ciphertexts.
    """
    loaded = load_public_key(public_key_b64)
    if isinstance(loaded, Err):
        return loaded
    return encrypt_with_key(loaded.value, plaintext)


def rsa_decrypt(private_key, ciphertext_b64: str) -> str:
    ciphertext = base64.b64decode(ciphertext_b64)
    return private_key.decrypt(ciphertext, padding.PKCS1v15()).decode("utf-8")
