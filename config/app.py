# Application Configuration
# Settings for the parameter resolver, read from the environment

from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.helpers.environment import env, env_bool, env_float


PROJECT_ID_ENV_VARS = (
    "PARAMETER_PROJECT_ID",
    "GOOGLE_CLOUD_PROJECT",
    "GCP_PROJECT",
    "GCLOUD_PROJECT",
    "PROJECT_ID",
)


class AppConfig(BaseModel):
    """
    Resolver configuration.

    ``project_id`` and ``credential_id`` are required before any
    resolution; the resolution service rejects empty values. The other
    fields have working defaults.
    """

    model_config = ConfigDict(frozen=True)

    app_name: str = "spartan-parameter-resolver"
    environment: str = "unknown"
    project_id: str = ""
    credential_id: str = ""
    credentials_dir: str = "./credentials"
    credential_store_path: str = "./derived_credentials.json"
    request_timeout: Optional[float] = None
    enable_connection_pooling: bool = True
    log_channel: str = "default"
    log_level: str = "INFO"


def _first_project_id() -> str:
    for key in PROJECT_ID_ENV_VARS:
        value = env(key)
        if value:
            return value
    return ""


def load_config() -> AppConfig:
    """Build the configuration from environment variables."""
    return AppConfig(
        app_name=env("APP_NAME", "spartan-parameter-resolver"),
        environment=env("APP_ENVIRONMENT", "unknown"),
        project_id=_first_project_id(),
        credential_id=env("PARAMETER_CREDENTIAL_ID", ""),
        credentials_dir=env("PARAMETER_CREDENTIALS_DIR", "./credentials"),
        credential_store_path=env(
            "PARAMETER_CREDENTIAL_STORE_PATH", "./derived_credentials.json"
        ),
        request_timeout=env_float("PARAMETER_REQUEST_TIMEOUT"),
        enable_connection_pooling=env_bool("PARAMETER_CONNECTION_POOLING", True),
        log_channel=env("LOG_CHANNEL", "default"),
        log_level=env("LOG_LEVEL", "INFO"),
    )


config = load_config()
