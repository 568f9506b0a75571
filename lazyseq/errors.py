"""Errors raised by the sequence wrappers themselves."""


class SequenceError(Exception):
    """Base class for errors raised by a sequence wrapper."""
    pass


class SequenceConsumedError(SequenceError):
    """Raised when a wrapper is used after another operation took ownership of it."""

    def __init__(self, claimed_by: str):
        self.claimed_by = claimed_by
        super().__init__(f"sequence already consumed by {claimed_by}()")
