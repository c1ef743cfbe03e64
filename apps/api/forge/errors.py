"""Error taxonomy shared by the gateways and the coordinator.

Gateway failures carry an explicit ``kind`` so callers (the key-fallback
policy, the commit path, the HTTP layer) can switch on it by value.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of a gateway failure."""
    AUTH_FAILED = "auth_failed"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    NETWORK = "network"
    GENERIC = "generic"


class ForgeError(Exception):
    """Base class for all Forge errors."""


# =============================================================================
# Coordinator errors
# =============================================================================

class PlanParseError(ForgeError):
    """Model output for plan generation is not a usable plan."""


class StepBusyError(ForgeError):
    """A step is already executing."""
    
    def __init__(self, step_id: str):
        super().__init__(f"Step {step_id} is already in progress")
        self.step_id = step_id


class InvalidTransitionError(ForgeError):
    """A step status change that the state machine does not allow."""
    
    def __init__(self, step_id: str, current: str, target: str):
        super().__init__(f"Step {step_id} cannot move from {current} to {target}")
        self.step_id = step_id
        self.current = current
        self.target = target


class StepNotFoundError(ForgeError):
    """No step with the given id in the current plan."""


class EditNotFoundError(ForgeError):
    """No proposed edit staged for the given path."""


class MissingCredentialError(ForgeError):
    """A required credential is not configured."""


# =============================================================================
# Gateway errors
# =============================================================================

class GatewayError(ForgeError):
    """Failure reported by an external system."""
    
    kind: ErrorKind = ErrorKind.GENERIC
    
    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.status_code = status_code


class AuthenticationError(GatewayError):
    """Credentials were rejected."""
    kind = ErrorKind.AUTH_FAILED


class ModelUnavailableError(GatewayError):
    """The requested model identifier does not exist."""
    kind = ErrorKind.NOT_FOUND


class FileNotFoundInRepoError(GatewayError):
    """The requested repository path does not exist."""
    kind = ErrorKind.NOT_FOUND


class WriteConflictError(GatewayError):
    """The version token supplied with a write is outdated."""
    kind = ErrorKind.CONFLICT


StaleVersionError = WriteConflictError


class NetworkError(GatewayError):
    """Transport-level failure; no response was received."""
    kind = ErrorKind.NETWORK
