# microanon/core/errors.py
"""
Exceptions raised by the anonymization engine.

All of them derive from ValueError, so callers that already guard
engine calls with ``except ValueError`` keep working.
"""


class AnonymizationError(ValueError):
    """Base exception for the engine."""
    pass


class InvalidConfigurationError(AnonymizationError):
    """
    Raised when a parameter is rejected before any computation runs
    (empty quasi-identifier set, epsilon <= 0, k < 1, ...).
    """

    def __init__(self, message: str, parameter: str = "", value=None):
        self.parameter = parameter
        self.value = value
        super().__init__(message)


class UnknownColumnError(InvalidConfigurationError):
    """Raised when a referenced column is not part of the dataset."""

    def __init__(self, columns, parameter: str = "quasi_identifiers"):
        self.columns = list(columns)
        super().__init__(
            f"Columns not found in dataset: {', '.join(map(str, self.columns))}",
            parameter=parameter,
            value=self.columns,
        )
