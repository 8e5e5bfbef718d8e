# Parameter Manager Exceptions
# Error taxonomy for parameter resolution and credential materialization

from enum import Enum


class ErrorKind(str, Enum):
    """Machine readable classification carried by every exception."""

    GENERIC = "generic"
    MISSING_CONFIGURATION = "missing_configuration"
    CLIENT_INIT = "client_init"
    CREDENTIAL_NOT_FOUND = "credential_not_found"
    NOT_FOUND = "not_found"
    EMPTY_VERSION_LIST = "empty_version_list"
    VERSION_NOT_FOUND = "version_not_found"
    DECODE = "decode"
    CREDENTIAL_MATERIALIZATION = "credential_materialization"
    INVALID_VALUE = "invalid_value"
    ACCESS_DENIED = "access_denied"
    QUOTA_EXCEEDED = "quota_exceeded"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"
    CONNECTION = "connection"


class ParameterManagerException(Exception):
    """Base exception for all parameter manager errors."""

    error_kind = ErrorKind.GENERIC

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MissingConfigurationException(ParameterManagerException):
    """Project ID or credential ID is not configured."""

    error_kind = ErrorKind.MISSING_CONFIGURATION


class ClientInitException(ParameterManagerException):
    """The Parameter Manager client could not be created."""

    error_kind = ErrorKind.CLIENT_INIT


class CredentialNotFoundException(ParameterManagerException):
    """The credential source has no entry for the requested credential ID."""

    error_kind = ErrorKind.CREDENTIAL_NOT_FOUND


class ParameterNotFoundException(ParameterManagerException):
    """The parameter itself does not exist upstream."""

    error_kind = ErrorKind.NOT_FOUND


class EmptyVersionListException(ParameterManagerException):
    """The parameter exists but has no enabled versions."""

    error_kind = ErrorKind.EMPTY_VERSION_LIST


class ParameterVersionNotFoundException(ParameterManagerException):
    """The requested version is missing or disabled."""

    error_kind = ErrorKind.VERSION_NOT_FOUND


class InvalidParameterValueException(ParameterManagerException):
    """A value or argument was rejected."""

    error_kind = ErrorKind.INVALID_VALUE


class PayloadDecodeException(InvalidParameterValueException):
    """A rendered payload does not match its declared format."""

    error_kind = ErrorKind.DECODE


class CredentialMaterializationException(ParameterManagerException):
    """
    Creating or replacing the derived credential failed.

    Callers report this as a warning; the resolved value stays usable.
    """

    error_kind = ErrorKind.CREDENTIAL_MATERIALIZATION


class ParameterAccessDeniedException(ParameterManagerException):
    error_kind = ErrorKind.ACCESS_DENIED


class ParameterQuotaExceededException(ParameterManagerException):
    error_kind = ErrorKind.QUOTA_EXCEEDED


class ParameterTimeoutException(ParameterManagerException):
    error_kind = ErrorKind.TIMEOUT


class ParameterUnavailableException(ParameterManagerException):
    error_kind = ErrorKind.UNAVAILABLE


class ParameterInternalErrorException(ParameterManagerException):
    error_kind = ErrorKind.INTERNAL


class ParameterConnectionException(ParameterManagerException):
    error_kind = ErrorKind.CONNECTION
