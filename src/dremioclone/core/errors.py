"""Error kinds raised by the replication engine.

Configuration problems are raised before anything is written to the target
cluster. Remote call failures are raised per call and handled by the replay
error policy.
"""

from __future__ import annotations


class CloneError(RuntimeError):
    """Base class for all dremio-clone errors."""


class ConfigurationError(CloneError):
    """Raised when required replay inputs (admin login/user) are missing."""


class UnexpectedEntityError(CloneError):
    """Raised for catalog entities or containers of an unknown type."""


class CredentialFileError(CloneError):
    """Raised when a credential file cannot be decrypted or parsed."""


class RemoteCallError(CloneError):
    """A cluster API call answered with an error status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"{status_code}: {message}")
