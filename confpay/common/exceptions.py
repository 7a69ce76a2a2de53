"""
Custom exceptions for the payroll session client.
"""

from __future__ import annotations


class PayrollError(Exception):
    """Base exception for session operation failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthorizationError(PayrollError):
    """Exception for failed grant acquisition."""


class AuthorizationDenied(AuthorizationError):
    """The wallet refused to sign or is unavailable."""


class AuthorizationMalformed(AuthorizationError):
    """The wallet returned a signature that cannot be used."""


class StaleOperation(PayrollError):
    """The identity or target handle moved on while the operation was in flight."""


class ExternalCallFailure(PayrollError):
    """A ledger, engine or wallet call failed."""


class InvalidInput(PayrollError, ValueError):
    """Exception for input rejected before any external call."""


class OperationNotReady(PayrollError):
    """A readiness condition of the operation is not met."""
