import os
from unittest.mock import MagicMock, Mock, patch

import pytest
from dotenv import load_dotenv
from hypothesis import HealthCheck, settings

from app.models.parameter_manager import ParameterMetadata
from app.services.known_parameters import KnownParameterRegistry
from app.services.parameter_manager import ParameterStoreClient
from tests.factories import PROJECT_ID, version_locator


load_dotenv(dotenv_path=".env_testing")


# Hypothesis global profiles: fast by default for local runs
settings.register_profile(
    "dev",
    max_examples=20,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile(
    "ci",
    max_examples=100,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


@pytest.fixture
def mock_gcp_client():
    """Raw Parameter Manager client double."""
    return MagicMock()


@pytest.fixture
def store_client(mock_gcp_client):
    """ParameterStoreClient backed by the mocked GCP client."""
    with patch("app.services.parameter_manager.get_logger"):
        return ParameterStoreClient(
            project_id=PROJECT_ID, location="global", client=mock_gcp_client
        )


@pytest.fixture
def fake_store_client():
    """
    Stand-in for ParameterStoreClient with its remote calls mocked.

    ``version_locator`` keeps the real formatting so version matching
    works the way it does against the backend.
    """
    client = Mock(spec=ParameterStoreClient)
    client.project_id = PROJECT_ID
    client.version_locator.side_effect = lambda identity, version_id: version_locator(
        identity.name, version_id, identity.location
    )
    client.get_parameter_metadata.side_effect = lambda identity, timeout=None: (
        ParameterMetadata(
            locator=f"projects/{PROJECT_ID}/locations/{identity.location}"
            f"/parameters/{identity.name}",
            format="UNFORMATTED",
        )
    )
    client.list_versions.return_value = []
    client.render_version.return_value = b""
    return client


@pytest.fixture
def registry():
    return KnownParameterRegistry()


@pytest.fixture(autouse=True)
def _setup_testing_environment(monkeypatch):
    """Setup test environment variables to override .env"""
    monkeypatch.setenv("APP_ENVIRONMENT", "test")
    monkeypatch.setenv("LOG_CHANNEL", "default")
    from app.helpers.environment import env
    env.cache_clear()
    yield
    env.cache_clear()


@pytest.fixture(autouse=True)
def _prevent_external_calls(monkeypatch, request):
    """Prevent any accidental external calls during testing"""

    # Skip socket blocking for integration tests
    if request.node.get_closest_marker("integration"):
        return

    def mock_external_call(*args, **kwargs):
        raise RuntimeError("External calls are not allowed during testing")

    monkeypatch.setattr("socket.socket", mock_external_call)
