# Credential Lifecycle
# Creates and replaces credentials derived from resolved parameters

import json
import os
import tempfile
import threading
import time
from contextlib import contextmanager
from typing import ContextManager, Iterator, List, Protocol

from pydantic import SecretStr

from app.exceptions.parameter_manager import CredentialMaterializationException
from app.helpers.logger import get_logger
from app.models.parameter_manager import (
    DecodedValue,
    DerivedCredential,
    ParameterIdentity,
    ResolvedVersion,
)


class CredentialStore(Protocol):
    """Registry that owns derived credentials."""

    def locked(self) -> ContextManager[None]:
        """Hold the registry mutex for a read-modify-write sequence."""
        ...

    def list_credentials(self) -> List[DerivedCredential]:
        ...

    def add(self, credential: DerivedCredential) -> None:
        ...

    def remove(self, credential: DerivedCredential) -> bool:
        ...

    def save(self) -> None:
        ...


class FileCredentialStore:
    """
    Credential registry persisted as a JSON document on disk.

    The file is re-read at the start of every locked sequence, so
    instances in other processes that share the path see each other's
    writes. ``save()`` writes to a temporary file in the same directory
    and swaps it into place with ``os.replace``. The temporary file is
    created by ``mkstemp`` and is readable by the owner only.
    """

    def __init__(self, path: str):
        self.path = path
        self.logger = get_logger("app.services.credential_lifecycle")
        self._credentials: List[DerivedCredential] = []
        self._loaded = False
        self._depth = 0
        self._lock = threading.RLock()

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            if self._depth == 0:
                self._load()
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1

    def _load(self) -> None:
        if not os.path.exists(self.path):
            self._credentials = []
            self._loaded = True
            return

        with open(self.path, "r", encoding="utf-8") as handle:
            data = json.load(handle)

        self._credentials = [
            DerivedCredential(
                id=item["id"],
                description=item["description"],
                secret_value=item["secret_value"],
                scope=item.get("scope", "GLOBAL"),
            )
            for item in data.get("credentials", [])
        ]
        self._loaded = True

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._load()

    def list_credentials(self) -> List[DerivedCredential]:
        with self._lock:
            self._ensure_loaded()
            return list(self._credentials)

    def add(self, credential: DerivedCredential) -> None:
        with self._lock:
            self._ensure_loaded()
            self._credentials.append(credential)

    def remove(self, credential: DerivedCredential) -> bool:
        with self._lock:
            self._ensure_loaded()
            try:
                self._credentials.remove(credential)
            except ValueError:
                return False
            return True

    def save(self) -> None:
        with self._lock:
            self._ensure_loaded()
            document = {
                "credentials": [
                    {
                        "id": cred.id,
                        "description": cred.description,
                        "scope": cred.scope,
                        "secret_value": cred.secret_value.get_secret_value(),
                    }
                    for cred in self._credentials
                ]
            }

            directory = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, indent=2)
                os.replace(tmp_path, self.path)
            except Exception:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise

            self.logger.debug(
                "Credential store saved",
                extra={
                    "credential_store_path": self.path,
                    "credential_count": len(self._credentials),
                },
            )


def credential_description(identity: ParameterIdentity, version_label: str) -> str:
    return f"{identity.name} : {version_label}"


class CredentialLifecycleManager:
    """
    Materialize resolved parameter values as credentials.

    At most one credential per parameter name survives a call: an entry
    with the same ID and description is the one being refreshed, and an
    entry with the same ID but another version description is stale, so
    both are removed before the new credential is inserted. The whole
    scan/remove/add/save sequence runs under the store's lock.
    """

    def __init__(self, store: CredentialStore):
        self.store = store
        self.logger = get_logger("app.services.credential_lifecycle")

    def materialize(
        self,
        identity: ParameterIdentity,
        resolved_version: ResolvedVersion,
        decoded_value: DecodedValue,
    ) -> DerivedCredential:
        """
        Create or replace the credential for ``identity``.

        Args:
            identity: Parameter the credential is derived from
            resolved_version: Version the value was rendered from
            decoded_value: Decoded payload; its source text becomes the secret

        Returns:
            The credential now held by the store

        Raises:
            CredentialMaterializationException: If any registry step fails
        """
        start_time = time.time()
        try:
            description = credential_description(
                identity, resolved_version.version_id
            )
            credential = DerivedCredential(
                id=identity.name,
                description=description,
                secret_value=SecretStr(decoded_value.as_secret_text()),
            )

            with self.store.locked():
                existing = [
                    cred
                    for cred in self.store.list_credentials()
                    if cred.id == identity.name
                ]
                refreshed = any(cred.description == description for cred in existing)
                for cred in existing:
                    self.store.remove(cred)
                self.store.add(credential)
                self.store.save()

        except Exception as e:
            self.logger.error(
                "Failed to materialize credential",
                extra={
                    "parameter_name": identity.name,
                    "location": identity.location,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            raise CredentialMaterializationException(
                f"Error creating credential for parameter '{identity.name}': {str(e)}"
            ) from e

        self.logger.info(
            "Credential materialized",
            extra={
                "credential_id": credential.id,
                "description": credential.description,
                "replaced_count": len(existing),
                "refreshed": refreshed,
                "operation_duration_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return credential
