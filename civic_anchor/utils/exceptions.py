"""
Exception handling utilities.

Defines the anchoring error taxonomy. Components raise these internally;
the public boundary (submitter, tracker, service) converts them into
result values so callers never see them.
"""


class AnchoringError(Exception):
    """Base exception for civic event anchoring."""
    pass


class ConfigurationError(AnchoringError):
    """Anchoring disabled, read-only, or no usable signing key."""
    pass


class ConnectivityError(AnchoringError):
    """No endpoint reachable on the expected network."""
    pass


class AnchorTimeoutError(ConnectivityError):
    """Raised when a single RPC call exceeds its time bound."""
    pass


class SubmissionError(AnchoringError):
    """Encoding, signing or broadcasting failed before a hash was obtained."""
    pass


class ConfirmationTimeoutError(AnchoringError):
    """No receipt arrived within the confirmation window."""
    pass


class TransactionRevertedError(AnchoringError):
    """Receipt arrived with a failed status flag."""
    pass


class TransactionStateError(AnchoringError):
    """Illegal status transition on a ledger record."""
    pass


# Failures a later manual re-attempt may get past (creates a new record)
TRANSIENT_ERRORS = (
    ConnectivityError,
    AnchorTimeoutError,
    SubmissionError,
    ConfirmationTimeoutError,
)


def error_kind(exc: BaseException | type[BaseException]) -> str:
    """
    Name reported on results for an exception or exception class.

    Args:
        exc: Exception instance or class

    Returns:
        Class name for taxonomy errors, "SubmissionError" for anything else
    """
    cls = exc if isinstance(exc, type) else type(exc)
    if issubclass(cls, AnchoringError):
        return cls.__name__
    return SubmissionError.__name__


def is_transient(kind: str | None) -> bool:
    """Check if a reported error kind may clear up on a manual re-attempt."""
    return kind in {cls.__name__ for cls in TRANSIENT_ERRORS}
