"""Shared test fixtures for pushmfa."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import jwt
import pytest

from pushmfa.core.settings import SimulatorSettings
from pushmfa.crypto.keys import generate_key_bundle, parse_key_bundle
from pushmfa.crypto.token_signer import TokenSigner
from pushmfa.crypto.types import KeyBundle

IAM_URL = "https://iam.example.com/realms/demo"


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for test settings."""
    monkeypatch.setenv("PUSHMFA_DEFAULT_IAM_URL", IAM_URL)


@pytest.fixture(scope="session")
def raw_bundle() -> dict[str, dict[str, str]]:
    """A freshly generated JWK bundle, shared across the session."""
    return generate_key_bundle()


@pytest.fixture
def keys(raw_bundle: dict[str, dict[str, str]]) -> KeyBundle:
    return parse_key_bundle(raw_bundle)


@pytest.fixture
def signer(keys: KeyBundle) -> TokenSigner:
    return TokenSigner(keys)


@pytest.fixture
def settings() -> SimulatorSettings:
    return SimulatorSettings()


@pytest.fixture
def key_file(tmp_path: Path, raw_bundle: dict[str, dict[str, str]]) -> Path:
    """The bundle written to a JSON file."""
    path = tmp_path / "rsa-jwk.json"
    path.write_text(json.dumps(raw_bundle), encoding="utf-8")
    return path


@pytest.fixture
def issue_token(keys: KeyBundle) -> Callable[[dict[str, Any]], str]:
    """Sign an arbitrary payload the way an issuer would."""

    def _issue(payload: dict[str, Any]) -> str:
        return jwt.encode(payload, keys.private_key, algorithm="RS256")

    return _issue

