# ABOUTME: Structured error types for the Weave GitOps add-on
# ABOUTME: Every failure carries a kind so callers can branch on the category

"""
Structured errors for the add-on.

=============================================================================
WHY A KIND FIELD?
=============================================================================

The lifecycle hooks catch everything at their boundary and only log it, so
the error object is the only record of WHAT went wrong. A plain message is
hard to filter on; a kind is not:

    try:
        resolver.resolve("wego/ssh", repository)
    except AddOnError as e:
        if e.kind is ErrorKind.SECRET_STORE:
            ...  # store problem, maybe retry the run later
        elif e.kind is ErrorKind.INVALID_SECRET:
            ...  # someone stored the wrong JSON

The log lines emitted by the hooks include the kind too, so
`jq 'select(.kind == "missing_credentials")'` finds every run that was
misconfigured.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Top-level failure categories."""

    SECRET_STORE = "secret_store"
    INVALID_SECRET = "invalid_secret"
    MISSING_CREDENTIALS = "missing_credentials"
    DEPLOYMENT = "deployment"


class AddOnError(Exception):
    """
    Base error for every failure raised by the add-on.

    USAGE:
    ------
    raise AddOnError(
        ErrorKind.MISSING_CREDENTIALS,
        "Required details for bootstrap repository access are missing",
    )
    """

    def __init__(self, kind: ErrorKind, message: str, details: str | None = None) -> None:
        """
        Initialize add-on error.

        Args:
            kind: Failure category
            message: Human-readable description
            details: Additional context (optional)
        """
        self.kind = kind
        self.message = message
        self.details = details
        super().__init__(str(self))

    def __str__(self) -> str:
        base = f"{self.message} ({self.kind.value})"
        if self.details:
            base += f" - {self.details}"
        return base
