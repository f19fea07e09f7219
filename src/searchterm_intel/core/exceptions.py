"""Custom exceptions for search term intelligence."""


class SearchTermIntelError(Exception):
    """Base exception for all search term intelligence errors."""

    pass


class ConfigurationError(SearchTermIntelError):
    """Raised when configuration is invalid."""

    pass


class AnalysisError(SearchTermIntelError):
    """Raised when analysis fails."""

    pass


class DataProviderError(SearchTermIntelError):
    """Raised when a row or keyword source cannot supply data."""

    pass


class ExecutionError(SearchTermIntelError):
    """Raised when a negative keyword write fails."""

    pass


class DuplicateNegativeKeywordError(ExecutionError):
    """Raised by a write collaborator when the negative keyword already exists."""

    pass


class InvalidTransitionError(SearchTermIntelError):
    """Raised when a suggestion is moved to a state it cannot reach."""

    def __init__(self, suggestion_id: str, current: str, target: str):
        self.suggestion_id = suggestion_id
        self.current = current
        self.target = target
        super().__init__(
            f"Suggestion {suggestion_id} cannot move from {current} to {target}"
        )
