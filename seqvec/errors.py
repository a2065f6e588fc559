# Exceptions raised by seqvec. Resource errors (missing/unreadable corpus) are the
# built-in OSError family and are left to propagate.


class SeqVecError(Exception):
    """Base class for seqvec errors."""


class ConfigurationError(SeqVecError, ValueError):
    """Invalid model options, or pipeline pieces that do not fit together."""


class ElementNotFoundError(SeqVecError, KeyError):
    """A queried label is not part of the vocabulary."""

    def __init__(self, label: str):
        super().__init__(label)
        self.label = label

    def __str__(self) -> str:
        return f"Element not found in vocabulary: {self.label!r}"
