"""
Error taxonomy for review scheduling.

Validation and authorization failures are caller-correctable and must never be
retried blindly. Persistence failures come from the storage collaborator and
may be transient; callers decide on retry policy.
"""


class CadenceError(Exception):
    """Base class for all Cadence domain errors."""


class ValidationError(CadenceError, ValueError):
    """Rating out of range or malformed identifier."""


class AuthorizationError(CadenceError):
    """
    Reviewer does not own the target card or deck.

    Interfaces surface this as "not found" so that the existence of other
    reviewers' cards is not leaked.
    """

    def __init__(self, card_id: str):
        super().__init__("Card not found or unauthorized")
        self.card_id = card_id


class PersistenceError(CadenceError):
    """The storage collaborator failed to read or write."""

    retryable = True
