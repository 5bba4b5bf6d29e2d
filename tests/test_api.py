"""HTTP tests for the encryption endpoint."""

import base64

import pytest
from fastapi.testclient import TestClient

from envcrypt.config import Settings
from envcrypt.errors import ConfigError
from envcrypt.main import create_app
from envcrypt.rsa_utils import rsa_decrypt


def test_encrypt_prod(client, rsa_keypair):
    response = client.post("/encrypt", json={"env": "prod", "apiKey": "secret123"})
    assert response.status_code == 200
    session_key = response.json()["sessionKey"]
    assert len(session_key) == 344
    assert len(base64.b64decode(session_key)) == 256
    assert rsa_decrypt(rsa_keypair[0], session_key) == "secret123"


def test_unknown_environment(client):
    response = client.post("/encrypt", json={"env": "staging", "apiKey": "x"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid environment"}


def test_missing_env_is_unknown_environment(client):
    response = client.post("/encrypt", json={"apiKey": "x"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid environment"}


@pytest.mark.parametrize("env, status, message", [
    ("broken", 500, "Error decoding base64-encoded public key"),
    ("garbled", 500, "Error parsing public key"),
    ("ec", 500, "Error converting to RSA public key"),
])
def test_misconfigured_environment(client, env, status, message):
    response = client.post("/encrypt", json={"env": env, "apiKey": "x"})
    assert response.status_code == status
    assert response.json() == {"error": message}


def test_api_key_too_large(client):
    response = client.post("/encrypt", json={"env": "prod", "apiKey": "a" * 300})
    assert response.status_code == 400
    assert response.json() == {"error": "API key too large for environment public key"}


@pytest.mark.parametrize("body", ["{not json", '"just a string"', '{"env": 1, "apiKey": "x"}'])
def test_invalid_request_body(client, body):
    response = client.post("/encrypt", content=body, headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_lone_surrogate_in_api_key(client, rsa_keypair):
    response = client.post(
        "/encrypt",
        content='{"env": "prod", "apiKey": "a\\ud800b"}',
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 200
    assert rsa_decrypt(rsa_keypair[0], response.json()["sessionKey"]) == "a\ufffdb"


def test_encryption_failure(client, failing_key_loader):
    response = client.post("/encrypt", json={"env": "prod", "apiKey": "x"})
    assert response.status_code == 500
    assert response.json() == {"error": "Error encrypting access token"}


def test_encrypt_requires_post(client):
    assert client.get("/encrypt").status_code == 405


def test_hello(client):
    response = client.get("/hello")
    assert response.status_code == 200
    assert response.text == "Hello, World!"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "environments": 5}


def test_registry_loaded_on_startup(write_config, prod_key_b64):
    path = write_config({"environments": [{"name": "prod", "publicKey": prod_key_b64}]})
    app = create_app(settings=Settings(config_path=path, cache_keys=True))
    with TestClient(app) as client:
        response = client.post("/encrypt", json={"env": "prod", "apiKey": "secret123"})
        assert response.status_code == 200
        assert client.get("/health").json()["environments"] == 1


def test_bad_config_aborts_startup(write_config):
    app = create_app(settings=Settings(config_path=write_config("{not json")))
    with pytest.raises(ConfigError):
        with TestClient(app):
            pass


def test_eager_validation_aborts_startup(write_config, ec_key_b64):
    path = write_config({"environments": [{"name": "ec", "publicKey": ec_key_b64}]})
    app = create_app(settings=Settings(config_path=path, validate_keys=True))
    with pytest.raises(ConfigError, match="ec: Error converting to RSA public key"):
        with TestClient(app):
            pass
