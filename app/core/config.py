import json
import logging
import os
import tomllib
from enum import StrEnum
from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.schemas import AppStoreConnectCredentials, AppStoreCredentials, StoreEnvironment

PROJECT_DIR = Path(__file__).parent.parent.parent
PROJECT_TOML_PATH = PROJECT_DIR / "pyproject.toml"

with open(PROJECT_TOML_PATH, "rb") as f:
    PYPROJECT_CONTENT = tomllib.load(f)["project"]


class Environment(StrEnum):
    LOCAL = "local"
    DEV = "dev"
    STG = "stg"
    PRD = "prd"


def convert_app_name(s: str) -> str:
    return " ".join(word.capitalize() for word in s.split("-"))


def expand_private_key(value: str | None, path: Path | None = None) -> str:
    """
    Resolve a PEM private key from a file path or an env value.

    Env values usually carry literal "\\n" sequences instead of newlines.
    """
    if path is not None and path.is_file():
        return path.read_text()

    return (value or "").replace("\\n", "\n")


class Settings(BaseSettings):
    """
    Application settings.

    These parameters can be configured
    with environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=False,
        extra="ignore",
    )

    # App variables
    app_name: str = PYPROJECT_CONTENT["name"]
    app_title: str = os.getenv("APP_TITLE", convert_app_name(app_name))
    app_version: str = PYPROJECT_CONTENT["version"]
    app_description: str = PYPROJECT_CONTENT["description"]

    backend_host: str = "0.0.0.0"
    backend_port: int = 3000

    cors_origins: str = "*"

    # Enable uvicorn reloading
    reload_uvicorn: bool = False

    # Current working environment
    current_environment: Environment = Environment.LOCAL
    log_level: int = logging.INFO
    log_dir: Path = Path("logs")
    debug: bool = False

    # Subscription store
    subscriptions_file: Path = PROJECT_DIR / "subscriptions.json"

    # App Store Server API credentials
    apple_issuer_id: str = ""
    apple_key_id: str = ""
    apple_bundle_id: str = ""
    apple_private_key: str = ""
    apple_private_key_path: Path | None = None
    apple_environment: StoreEnvironment = StoreEnvironment.PRODUCTION
    apple_shared_secret: str | None = None  # Legacy verifyReceipt only

    # App Store Connect API credentials (subscription groups)
    asc_issuer_id: str = ""
    asc_key_id: str = ""
    asc_private_key: str = ""
    asc_private_key_path: Path | None = None

    # Google Play Developer API
    google_application_credentials: Path | None = None
    google_client_email: str | None = None
    google_private_key: str | None = None
    google_package_name: str | None = None

    # Timeout for outbound store calls in seconds
    store_request_timeout: float = 30.0

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS origins from a comma-separated string.
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @computed_field
    @property
    def app_store_credentials(self) -> AppStoreCredentials | None:
        """
        Assemble App Store Server API credentials from settings.

        Returns None when any part is missing so the service can still start
        and serve webhooks without Apple credentials.
        """
        private_key = expand_private_key(self.apple_private_key, self.apple_private_key_path)

        if not (private_key and self.apple_key_id and self.apple_issuer_id and self.apple_bundle_id):
            return None

        return AppStoreCredentials(
            private_key=private_key,
            key_id=self.apple_key_id,
            issuer_id=self.apple_issuer_id,
            bundle_id=self.apple_bundle_id,
        )

    @computed_field
    @property
    def app_store_connect_credentials(self) -> AppStoreConnectCredentials | None:
        """
        Assemble App Store Connect API credentials from settings.
        """
        private_key = expand_private_key(self.asc_private_key, self.asc_private_key_path)

        if not (private_key and self.asc_key_id and self.asc_issuer_id):
            return None

        return AppStoreConnectCredentials(
            private_key=private_key,
            key_id=self.asc_key_id,
            issuer_id=self.asc_issuer_id,
        )

    @computed_field
    @property
    def google_service_account_info(self) -> str | None:
        """
        Service account for the Android Publisher API, as a key file path or
        a JSON document built from the client email and private key.
        """
        if self.google_application_credentials is not None:
            return str(self.google_application_credentials)

        if self.google_client_email and self.google_private_key:
            return json.dumps(
                {
                    "type": "service_account",
                    "client_email": self.google_client_email,
                    "private_key": expand_private_key(self.google_private_key),
                    "token_uri": "https://oauth2.googleapis.com/token",
                }
            )

        return None

    @computed_field
    @property
    def google_play_package_name(self) -> str:
        """
        Android package name, usually the same as the Apple bundle id.
        """
        return self.google_package_name or self.apple_bundle_id


settings = Settings()  # type: ignore
