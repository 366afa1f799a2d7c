"""RSA device key bundle loading, caching, and generation."""

import asyncio
import base64
import json
import logging
from pathlib import Path
from typing import Any

import httpx
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from jwt.algorithms import RSAAlgorithm
from jwt.exceptions import InvalidKeyError

from pushmfa.core.errors import KeyLoadError
from pushmfa.crypto.types import KeyBundle

logger = logging.getLogger(__name__)

RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537
SIGNING_ALGORITHM = "RS256"

_PRIVATE_JWK_MEMBERS = frozenset({"d", "p", "q", "dp", "dq", "qi", "oth"})


def _int_to_base64url(value: int) -> str:
    """Encode an integer as base64url without padding."""
    byte_length = (value.bit_length() + 7) // 8
    raw = value.to_bytes(byte_length, byteorder="big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def generate_key_bundle() -> dict[str, dict[str, str]]:
    """Generate a new RSA-2048 device key pair as a JWK bundle."""
    private_key = rsa.generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT,
        key_size=RSA_KEY_SIZE,
    )
    numbers = private_key.private_numbers()
    public = {
        "kty": "RSA",
        "alg": SIGNING_ALGORITHM,
        "use": "sig",
        "n": _int_to_base64url(numbers.public_numbers.n),
        "e": _int_to_base64url(numbers.public_numbers.e),
    }
    private = {
        **public,
        "d": _int_to_base64url(numbers.d),
        "p": _int_to_base64url(numbers.p),
        "q": _int_to_base64url(numbers.q),
        "dp": _int_to_base64url(numbers.dmp1),
        "dq": _int_to_base64url(numbers.dmq1),
        "qi": _int_to_base64url(numbers.iqmp),
    }
    return {"public": public, "private": private}


def _import_jwk(jwk: Any, half: str) -> RSAPublicKey | RSAPrivateKey:
    if not isinstance(jwk, dict):
        raise KeyLoadError(f"Key bundle '{half}' entry is not a JWK object")
    if jwk.get("kty") != "RSA":
        raise KeyLoadError(f"Key bundle '{half}' key is not an RSA key")
    alg = jwk.get("alg")
    if alg is not None and alg != SIGNING_ALGORITHM:
        raise KeyLoadError(f"Key bundle '{half}' key is for {alg}, not RS256")
    try:
        return RSAAlgorithm.from_jwk(jwk)
    except (InvalidKeyError, ValueError, TypeError, KeyError) as exc:
        raise KeyLoadError(f"Failed to import '{half}' JWK: {exc}") from exc


def parse_key_bundle(raw: Any) -> KeyBundle:
    """Import a ``{"public": JWK, "private": JWK}`` bundle."""
    if not isinstance(raw, dict):
        raise KeyLoadError("Key bundle is not a JSON object")
    missing = [half for half in ("public", "private") if half not in raw]
    if missing:
        raise KeyLoadError(f"Key bundle is missing {', '.join(missing)}")

    public_key = _import_jwk(raw["public"], "public")
    private_key = _import_jwk(raw["private"], "private")
    if not isinstance(public_key, RSAPublicKey):
        raise KeyLoadError("Key bundle 'public' entry holds private key material")
    if not isinstance(private_key, RSAPrivateKey):
        raise KeyLoadError("Key bundle 'private' entry is not a private key")
    if private_key.public_key().public_numbers() != public_key.public_numbers():
        raise KeyLoadError("Key bundle public and private keys do not match")

    public_jwk = {
        name: value
        for name, value in raw["public"].items()
        if name not in _PRIVATE_JWK_MEMBERS
    }
    return KeyBundle(
        public_key=public_key, private_key=private_key, public_jwk=public_jwk
    )


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


class KeyProvider:
    """Loads the device key bundle from a file path or an HTTP(S) URL.

    Every ``load()`` reads the source again. Wrap the provider in a
    :class:`KeyCache` to reuse the first bundle.
    """

    def __init__(self, source: str, client: httpx.AsyncClient | None = None) -> None:
        self._source = source
        self._client = client

    @property
    def source(self) -> str:
        return self._source

    async def load(self) -> KeyBundle:
        """Read and import the key bundle, raising KeyLoadError on any failure."""
        logger.info("Loading device key bundle from %s", self._source)
        try:
            if _is_url(self._source):
                text = await self._fetch()
            else:
                text = await asyncio.to_thread(self._read_file)
            try:
                raw = json.loads(text)
            except json.JSONDecodeError as exc:
                raise KeyLoadError(f"Key bundle is not valid JSON: {exc}") from exc
            return parse_key_bundle(raw)
        except KeyLoadError as exc:
            logger.warning("Key bundle from %s rejected: %s", self._source, exc)
            raise

    def _read_file(self) -> str:
        try:
            return Path(self._source).read_text(encoding="utf-8")
        except OSError as exc:
            raise KeyLoadError(f"Could not read key bundle: {exc}") from exc

    async def _fetch(self) -> str:
        headers = {"Cache-Control": "no-store"}
        try:
            if self._client is not None:
                response = await self._client.get(self._source, headers=headers)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(self._source, headers=headers)
        except httpx.HTTPError as exc:
            raise KeyLoadError(f"Could not load key bundle: {exc}") from exc
        if response.is_error:
            raise KeyLoadError(f"Could not load key bundle: {response.status_code}")
        return response.text


class KeyCache:
    """Memoises the first bundle a provider loads successfully."""

    def __init__(self, provider: KeyProvider) -> None:
        self._provider = provider
        self._bundle: KeyBundle | None = None

    async def get(self) -> KeyBundle:
        """Return the cached bundle, loading it on first use."""
        if self._bundle is None:
            self._bundle = await self._provider.load()
        return self._bundle

    def invalidate(self) -> None:
        """Drop the cached bundle so the next get() reloads it."""
        self._bundle = None
