"""Review and execution of analysis suggestions."""

from searchterm_intel.review.gateway import ReviewGateway, SuggestionLifecycle

__all__ = ["ReviewGateway", "SuggestionLifecycle"]
