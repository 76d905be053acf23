"""Exceptions for infrastructure and caller faults.

Business outcomes of contract operations (validation failures, illegal
transitions, the reactivation limit, conflicts) are returned as
``OperationResult`` values and never raised.
"""


class ContractsException(Exception):
    """Root of every exception this package raises."""


class ConfigurationError(ContractsException):
    """Environment settings are missing or inconsistent."""


class ValidationError(ContractsException):
    """A caller passed an argument outside its documented domain."""


class AuthenticationError(ContractsException):
    """The bearer token is absent, malformed, expired or carries unusable claims."""


class AuthorizationError(ContractsException):
    """The acting user's role lacks a required scope or tenant."""


class InvalidTransitionError(ContractsException, ValueError):
    """A state machine was asked to take an edge its table does not contain."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current} to {target}")
