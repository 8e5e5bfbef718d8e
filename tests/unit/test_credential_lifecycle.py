"""
Unit tests for CredentialLifecycleManager.

Covers creation, idempotent refresh, replacement of stale versions and
wrapping of registry failures.
"""

import json
import os
import threading

import pytest

from app.exceptions.parameter_manager import (
    CredentialMaterializationException,
    ErrorKind,
)
from app.models.parameter_manager import (
    DerivedCredential,
    ParameterIdentity,
    ResolvedVersion,
    StructuredValue,
    TextValue,
)
from app.services.credential_lifecycle import (
    CredentialLifecycleManager,
    FileCredentialStore,
    credential_description,
)
from tests.factories import RecordingCredentialStore, version_locator


IDENTITY = ParameterIdentity(name="db-pass")


def resolved(version, identity=IDENTITY):
    return ResolvedVersion(
        identity=identity,
        version_locator=version_locator(identity.name, version, identity.location),
        format="UNFORMATTED",
    )


@pytest.fixture
def store():
    return RecordingCredentialStore()


@pytest.fixture
def manager(store, mocker):
    mocker.patch("app.services.credential_lifecycle.get_logger")
    return CredentialLifecycleManager(store)


def test_description_format():
    assert credential_description(IDENTITY, "v2") == "db-pass : v2"


def test_creates_credential_from_text_value(manager, store):
    credential = manager.materialize(IDENTITY, resolved("v2"), TextValue(value="s3cr3t"))

    assert credential.id == "db-pass"
    assert credential.description == "db-pass : v2"
    assert credential.scope == "GLOBAL"
    assert credential.secret_value.get_secret_value() == "s3cr3t"
    assert store.list_credentials() == [credential]
    assert store.save_count == 1


def test_structured_value_uses_source_text(manager):
    value = StructuredValue(value={"u": "app"}, source='{"u": "app"}')

    credential = manager.materialize(IDENTITY, resolved("v1"), value)

    assert credential.secret_value.get_secret_value() == '{"u": "app"}'


def test_rematerializing_same_version_is_idempotent(manager, store):
    manager.materialize(IDENTITY, resolved("v2"), TextValue(value="s3cr3t"))
    manager.materialize(IDENTITY, resolved("v2"), TextValue(value="s3cr3t"))

    credentials = store.list_credentials()
    assert len(credentials) == 1
    assert credentials[0].description == "db-pass : v2"


def test_new_version_replaces_stale_credential(manager, store):
    manager.materialize(IDENTITY, resolved("v1"), TextValue(value="old"))
    manager.materialize(IDENTITY, resolved("v2"), TextValue(value="new"))

    credentials = store.list_credentials()
    assert len(credentials) == 1
    assert credentials[0].description == "db-pass : v2"
    assert credentials[0].secret_value.get_secret_value() == "new"


def test_other_parameters_are_untouched(manager, store):
    other = ParameterIdentity(name="api-key")
    manager.materialize(other, resolved("v1", other), TextValue(value="k"))

    manager.materialize(IDENTITY, resolved("v2"), TextValue(value="s"))

    assert sorted(cred.id for cred in store.list_credentials()) == ["api-key", "db-pass"]


def test_duplicate_entries_for_id_collapse_to_one(manager, store):
    for label in ("v1", "v3"):
        store.add(
            DerivedCredential(
                id="db-pass", description=f"db-pass : {label}", secret_value="x"
            )
        )

    manager.materialize(IDENTITY, resolved("v2"), TextValue(value="s"))

    assert [cred.description for cred in store.list_credentials()] == ["db-pass : v2"]


def test_store_failure_is_wrapped(manager, store, mocker):
    mocker.patch.object(store, "save", side_effect=IOError("disk full"))

    with pytest.raises(CredentialMaterializationException) as exc_info:
        manager.materialize(IDENTITY, resolved("v2"), TextValue(value="s"))

    assert "disk full" in str(exc_info.value)
    assert exc_info.value.error_kind == ErrorKind.CREDENTIAL_MATERIALIZATION


def test_concurrent_materialization_keeps_one_credential(store, mocker):
    mocker.patch("app.services.credential_lifecycle.get_logger")
    manager = CredentialLifecycleManager(store)
    barrier = threading.Barrier(8)

    def work(n):
        barrier.wait()
        manager.materialize(IDENTITY, resolved(f"v{n}"), TextValue(value=str(n)))

    threads = [threading.Thread(target=work, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store.list_credentials()) == 1
    assert store.save_count == 8


# ============================================================================
# File Store Tests
# ============================================================================


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "derived_credentials.json")


def test_file_store_starts_empty_without_file(store_path):
    assert FileCredentialStore(store_path).list_credentials() == []


def test_materialized_credential_is_readable_from_another_store(store_path, mocker):
    mocker.patch("app.services.credential_lifecycle.get_logger")
    CredentialLifecycleManager(FileCredentialStore(store_path)).materialize(
        IDENTITY, resolved("v2"), TextValue(value="s3cr3t")
    )

    credentials = FileCredentialStore(store_path).list_credentials()

    assert len(credentials) == 1
    assert credentials[0].id == "db-pass"
    assert credentials[0].description == "db-pass : v2"
    assert credentials[0].secret_value.get_secret_value() == "s3cr3t"


def test_file_store_document_layout(store_path):
    store = FileCredentialStore(store_path)
    store.add(
        DerivedCredential(id="db-pass", description="db-pass : v1", secret_value="x")
    )

    store.save()

    with open(store_path, encoding="utf-8") as handle:
        document = json.load(handle)
    assert document == {
        "credentials": [
            {
                "id": "db-pass",
                "description": "db-pass : v1",
                "scope": "GLOBAL",
                "secret_value": "x",
            }
        ]
    }


def test_locked_sequence_sees_writes_from_other_instances(store_path, mocker):
    mocker.patch("app.services.credential_lifecycle.get_logger")
    first = FileCredentialStore(store_path)
    second = FileCredentialStore(store_path)
    first.list_credentials()

    CredentialLifecycleManager(second).materialize(
        IDENTITY, resolved("v1"), TextValue(value="old")
    )
    CredentialLifecycleManager(first).materialize(
        IDENTITY, resolved("v2"), TextValue(value="new")
    )

    credentials = FileCredentialStore(store_path).list_credentials()
    assert [cred.description for cred in credentials] == ["db-pass : v2"]


def test_failed_save_keeps_previous_file(store_path, mocker):
    store = FileCredentialStore(store_path)
    store.add(
        DerivedCredential(id="db-pass", description="db-pass : v1", secret_value="x")
    )
    store.save()
    store.add(
        DerivedCredential(id="api-key", description="api-key : v1", secret_value="y")
    )
    mocker.patch(
        "app.services.credential_lifecycle.json.dump",
        side_effect=TypeError("not serializable"),
    )

    with pytest.raises(TypeError):
        store.save()

    assert os.listdir(os.path.dirname(store_path)) == ["derived_credentials.json"]
    assert [cred.id for cred in FileCredentialStore(store_path).list_credentials()] == [
        "db-pass"
    ]


def test_file_store_creates_missing_directory(tmp_path):
    path = str(tmp_path / "nested" / "derived.json")
    store = FileCredentialStore(path)

    store.save()

    assert os.path.isfile(path)
