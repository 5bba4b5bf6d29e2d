from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ConfigError(Exception):
    """Raised when the service configuration cannot be loaded."""


class EncryptionError(Enum):
    UNKNOWN_ENVIRONMENT = ("Invalid environment", 400)
    DECODE_ERROR = ("Error decoding base64-encoded public key", 500)
    PARSE_ERROR = ("Error parsing public key", 500)
    KEY_TYPE_ERROR = ("Error converting to RSA public key", 500)
    PLAINTEXT_TOO_LARGE = ("API key too large for environment public key", 400)
    ENCRYPTION_FAILURE = ("Error encrypting access token", 500)

    def __init__(self, message: str, status_code: int):
        self.message = message
        self.status_code = status_code

    @property
    def is_misconfiguration(self) -> bool:
        return self in (
            EncryptionError.DECODE_ERROR,
            EncryptionError.PARSE_ERROR,
            EncryptionError.KEY_TYPE_ERROR,
        )


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    reason: EncryptionError


Result = Union[Ok[T], Err]
