"""Factory wiring settings, the key bundle, and the flows together."""

import asyncio

import httpx

from pushmfa.core.errors import KeyLoadError
from pushmfa.core.settings import SimulatorSettings
from pushmfa.crypto.keys import KeyCache, KeyProvider
from pushmfa.crypto.token_signer import TokenSigner
from pushmfa.flows.confirm import ConfirmLoginFlow
from pushmfa.flows.enrollment import EnrollmentFlow


class DeviceApp:
    """Signer and flows sharing one loaded key bundle."""

    def __init__(self, signer: TokenSigner, settings: SimulatorSettings) -> None:
        self.signer = signer
        self.settings = settings
        self.enrollment = EnrollmentFlow(signer, settings)
        self.confirm = ConfirmLoginFlow(signer, settings)


async def create_app(
    settings: SimulatorSettings | None = None,
    client: httpx.AsyncClient | None = None,
    key_cache: KeyCache | None = None,
) -> DeviceApp:
    """Load the device keys and build the flows."""
    settings = settings or SimulatorSettings()
    cache = key_cache or KeyCache(KeyProvider(settings.key_source, client=client))
    try:
        async with asyncio.timeout(settings.key_fetch_timeout):
            keys = await cache.get()
    except TimeoutError as exc:
        raise KeyLoadError(
            f"Timed out loading key bundle from {settings.key_source}"
        ) from exc
    return DeviceApp(TokenSigner(keys), settings)
