"""Device simulator settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

KEY_SOURCE_DEFAULT = "keys/rsa-jwk.json"
IAM_URL_DEFAULT = "http://localhost:8080/realms/demo"
KEY_FETCH_TIMEOUT_DEFAULT = 10.0


class SimulatorSettings(BaseSettings):
    """Realm, device client, and key bundle settings."""

    model_config = SettingsConfigDict(env_prefix="PUSHMFA_")

    key_source: str = KEY_SOURCE_DEFAULT
    default_iam_url: str = IAM_URL_DEFAULT
    client_id: str = "push-device-client"
    client_secret: str = "device-client-secret"
    key_fetch_timeout: float = KEY_FETCH_TIMEOUT_DEFAULT
