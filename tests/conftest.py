import base64
import json

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, ed25519
from fastapi.testclient import TestClient

from envcrypt.config import Settings
from envcrypt.main import create_app
from envcrypt.registry import EnvironmentEntry, EnvironmentRegistry
from envcrypt.rsa_utils import generate_rsa_keys, public_key_to_b64


@pytest.fixture(scope="session")
def rsa_keypair():
    return generate_rsa_keys(2048)


@pytest.fixture(scope="session")
def prod_key_b64(rsa_keypair):
    return public_key_to_b64(rsa_keypair[1])


@pytest.fixture(scope="session")
def ec_key_b64():
    return public_key_to_b64(ec.generate_private_key(ec.SECP256R1()).public_key())


@pytest.fixture(scope="session")
def ed25519_key_b64():
    return public_key_to_b64(ed25519.Ed25519PrivateKey.generate().public_key())


@pytest.fixture
def registry(prod_key_b64, ec_key_b64):
    return EnvironmentRegistry([
        EnvironmentEntry(name="prod", publicKey=prod_key_b64),
        EnvironmentEntry(name="broken", publicKey="not base64!!"),
        EnvironmentEntry(name="garbled", publicKey=base64.b64encode(b"definitely not a key").decode()),
        EnvironmentEntry(name="ec", publicKey=ec_key_b64),
        EnvironmentEntry(name="empty", publicKey=""),
    ])


@pytest.fixture
def client(registry):
    return TestClient(create_app(registry=registry, settings=Settings()))


@pytest.fixture
def write_config(tmp_path):
    def _write(content):
        path = tmp_path / "config.json"
        if isinstance(content, str):
            path.write_text(content)
        else:
            path.write_text(json.dumps(content))
        return str(path)
    return _write


class FailingKey:
    """Stands in for an RSA key whose encrypt primitive blows up."""

    key_size = 2048

    def encrypt(self, message, padding):
        raise RuntimeError("entropy source unavailable")


@pytest.fixture
def failing_key():
    return FailingKey()


@pytest.fixture
def failing_key_loader(monkeypatch):
    from envcrypt import cache, rsa_utils
    from envcrypt.errors import Ok

    def _load(public_key_b64):
        return Ok(FailingKey())

    monkeypatch.setattr(rsa_utils, "load_public_key", _load)
    monkeypatch.setattr(cache, "load_public_key", _load)
