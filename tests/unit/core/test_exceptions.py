"""Tests for the exception hierarchy."""

import pytest

from searchterm_intel.core.exceptions import (
    AnalysisError,
    ConfigurationError,
    DataProviderError,
    DuplicateNegativeKeywordError,
    ExecutionError,
    InvalidTransitionError,
    SearchTermIntelError,
)


class TestExceptions:
    """Test exception classes."""

    @pytest.mark.parametrize(
        "exc_class",
        [
            ConfigurationError,
            AnalysisError,
            DataProviderError,
            ExecutionError,
            DuplicateNegativeKeywordError,
        ],
    )
    def test_hierarchy(self, exc_class):
        """Every error derives from the package base error."""
        assert issubclass(exc_class, SearchTermIntelError)

    def test_duplicate_is_an_execution_error(self):
        with pytest.raises(ExecutionError):
            raise DuplicateNegativeKeywordError("exists")

    def test_invalid_transition_message(self):
        error = InvalidTransitionError("negative:free", "rejected", "executed")
        assert str(error) == "Suggestion negative:free cannot move from rejected to executed"
        assert error.suggestion_id == "negative:free"
        assert isinstance(error, SearchTermIntelError)
