# Credential Sources
# Look up service account key material by credential ID

import os
from typing import Mapping, Protocol, Union

from app.exceptions.parameter_manager import CredentialNotFoundException
from app.helpers.logger import get_logger


class CredentialSource(Protocol):
    def get_credential_bytes(self, credential_id: str) -> bytes:
        """Return key material for ``credential_id`` or raise CredentialNotFoundException."""
        ...

    def has_credential(self, credential_id: str) -> bool:
        ...


class FileCredentialSource:
    """
    Service account keys stored as ``<directory>/<credential_id>.json``.

    Credential IDs containing path separators are rejected.
    """

    def __init__(self, directory: str):
        self.directory = directory
        self.logger = get_logger("app.services.credential_source")

    def _path_for(self, credential_id: str) -> str:
        if (
            not credential_id
            or os.sep in credential_id
            or "/" in credential_id
            or credential_id in (".", "..")
        ):
            raise CredentialNotFoundException(
                f"Invalid credential ID: {credential_id!r}"
            )
        return os.path.join(self.directory, f"{credential_id}.json")

    def has_credential(self, credential_id: str) -> bool:
        try:
            return os.path.isfile(self._path_for(credential_id))
        except CredentialNotFoundException:
            return False

    def get_credential_bytes(self, credential_id: str) -> bytes:
        path = self._path_for(credential_id)
        if not os.path.isfile(path):
            self.logger.error(
                "Service account key file not found",
                extra={"credential_id": credential_id, "credentials_path": path},
            )
            raise CredentialNotFoundException(
                f"GCP service account credential not found: {credential_id}"
            )

        with open(path, "rb") as handle:
            content = handle.read()

        self.logger.debug(
            "Credential loaded from file",
            extra={"credential_id": credential_id, "credentials_path": path},
        )
        return content


class MappingCredentialSource:
    """Credentials held in memory, keyed by ID."""

    def __init__(self, credentials: Mapping[str, Union[bytes, str]]):
        self._credentials = dict(credentials)

    def has_credential(self, credential_id: str) -> bool:
        return credential_id in self._credentials

    def get_credential_bytes(self, credential_id: str) -> bytes:
        try:
            content = self._credentials[credential_id]
        except KeyError:
            raise CredentialNotFoundException(
                f"GCP service account credential not found: {credential_id}"
            ) from None
        return content.encode("utf-8") if isinstance(content, str) else content
