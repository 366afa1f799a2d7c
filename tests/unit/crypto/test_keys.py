"""Tests for key bundle generation, import, loading, and caching."""

import json
import threading
from pathlib import Path

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from pushmfa.core.errors import KeyLoadError
from pushmfa.crypto.keys import (
    KeyCache,
    KeyProvider,
    generate_key_bundle,
    parse_key_bundle,
)

KEY_URL = "https://device.example.com/keys/rsa-jwk.json"


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestGenerateKeyBundle:
    """Tests for JWK bundle generation."""

    def test_has_both_halves(self, raw_bundle: dict) -> None:
        assert raw_bundle["public"]["kty"] == "RSA"
        assert raw_bundle["public"]["alg"] == "RS256"
        assert "d" in raw_bundle["private"]
        assert "d" not in raw_bundle["public"]

    def test_modulus_is_2048_bits(self, raw_bundle: dict) -> None:
        assert len(raw_bundle["public"]["n"]) > 300

    def test_different_calls_produce_different_keys(self) -> None:
        b1 = generate_key_bundle()
        b2 = generate_key_bundle()
        assert b1["public"]["n"] != b2["public"]["n"]


class TestParseKeyBundle:
    """Tests for importing a JWK bundle."""

    def test_imports_rsa_pair(self, raw_bundle: dict) -> None:
        keys = parse_key_bundle(raw_bundle)
        assert isinstance(keys.public_key, RSAPublicKey)
        assert isinstance(keys.private_key, RSAPrivateKey)
        assert keys.public_jwk["n"] == raw_bundle["public"]["n"]

    def test_private_material_in_public_half_rejected(self, raw_bundle: dict) -> None:
        leaky = {"public": dict(raw_bundle["private"]), "private": raw_bundle["private"]}
        with pytest.raises(KeyLoadError, match="private key material"):
            parse_key_bundle(leaky)

    @pytest.mark.parametrize("missing", ["public", "private"])
    def test_missing_half_rejected(self, raw_bundle: dict, missing: str) -> None:
        bundle = {k: v for k, v in raw_bundle.items() if k != missing}
        with pytest.raises(KeyLoadError, match=missing):
            parse_key_bundle(bundle)

    def test_not_an_object_rejected(self) -> None:
        with pytest.raises(KeyLoadError):
            parse_key_bundle(["public", "private"])

    def test_wrong_key_type_rejected(self, raw_bundle: dict) -> None:
        bundle = {**raw_bundle, "public": {"kty": "EC", "crv": "P-256"}}
        with pytest.raises(KeyLoadError, match="not an RSA key"):
            parse_key_bundle(bundle)

    def test_wrong_algorithm_rejected(self, raw_bundle: dict) -> None:
        bundle = {**raw_bundle, "private": {**raw_bundle["private"], "alg": "PS512"}}
        with pytest.raises(KeyLoadError, match="PS512"):
            parse_key_bundle(bundle)

    def test_incomplete_jwk_rejected(self, raw_bundle: dict) -> None:
        bundle = {**raw_bundle, "public": {"kty": "RSA", "e": "AQAB"}}
        with pytest.raises(KeyLoadError, match="import"):
            parse_key_bundle(bundle)

    def test_public_half_as_private_rejected(self, raw_bundle: dict) -> None:
        bundle = {**raw_bundle, "private": raw_bundle["public"]}
        with pytest.raises(KeyLoadError, match="not a private key"):
            parse_key_bundle(bundle)

    def test_mismatched_halves_rejected(self, raw_bundle: dict) -> None:
        other = generate_key_bundle()
        bundle = {"public": other["public"], "private": raw_bundle["private"]}
        with pytest.raises(KeyLoadError, match="do not match"):
            parse_key_bundle(bundle)


class TestKeyProviderFile:
    """Tests for loading from the filesystem."""

    async def test_loads_from_file(self, key_file: Path, raw_bundle: dict) -> None:
        keys = await KeyProvider(str(key_file)).load()
        assert keys.public_jwk["n"] == raw_bundle["public"]["n"]

    async def test_file_read_off_event_loop_thread(
        self, key_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        threads: list[int] = []
        original = KeyProvider._read_file

        def _recording_read(self: KeyProvider) -> str:
            threads.append(threading.get_ident())
            return original(self)

        monkeypatch.setattr(KeyProvider, "_read_file", _recording_read)
        await KeyProvider(str(key_file)).load()
        assert threads
        assert threads[0] != threading.get_ident()

    async def test_missing_file_rejected(self, tmp_path: Path) -> None:
        provider = KeyProvider(str(tmp_path / "absent.json"))
        with pytest.raises(KeyLoadError, match="Could not read"):
            await provider.load()

    async def test_invalid_json_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(KeyLoadError, match="not valid JSON"):
            await KeyProvider(str(path)).load()


class TestKeyProviderUrl:
    """Tests for loading over HTTP."""

    async def test_loads_from_url(self, raw_bundle: dict) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=raw_bundle)

        async with _mock_client(handler) as client:
            keys = await KeyProvider(KEY_URL, client=client).load()
        assert keys.public_jwk["e"] == raw_bundle["public"]["e"]
        assert seen[0].headers["Cache-Control"] == "no-store"

    async def test_error_status_rejected(self) -> None:
        async with _mock_client(lambda _r: httpx.Response(404)) as client:
            with pytest.raises(KeyLoadError, match="404"):
                await KeyProvider(KEY_URL, client=client).load()

    async def test_unreachable_source_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with _mock_client(handler) as client:
            with pytest.raises(KeyLoadError, match="refused"):
                await KeyProvider(KEY_URL, client=client).load()


class TestKeyCache:
    """Tests for the explicit key cache."""

    async def test_loads_once(self, raw_bundle: dict) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, content=json.dumps(raw_bundle))

        async with _mock_client(handler) as client:
            cache = KeyCache(KeyProvider(KEY_URL, client=client))
            first = await cache.get()
            second = await cache.get()
        assert first is second
        assert len(calls) == 1

    async def test_invalidate_reloads(self, key_file: Path) -> None:
        cache = KeyCache(KeyProvider(str(key_file)))
        first = await cache.get()
        cache.invalidate()
        second = await cache.get()
        assert first is not second

    async def test_failure_not_cached(self, tmp_path: Path, raw_bundle: dict) -> None:
        path = tmp_path / "later.json"
        cache = KeyCache(KeyProvider(str(path)))
        with pytest.raises(KeyLoadError):
            await cache.get()
        path.write_text(json.dumps(raw_bundle), encoding="utf-8")
        keys = await cache.get()
        assert keys.public_jwk["n"] == raw_bundle["public"]["n"]
