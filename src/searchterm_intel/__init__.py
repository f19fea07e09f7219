"""Search-Term Intelligence Engine.

Turns search query performance rows into negative keyword, match-type
migration and traffic conflict suggestions, and executes reviewed ones.
"""

__version__ = "1.0.0"

from searchterm_intel.core.config import Settings, get_settings, setup_logging

__all__ = ["Settings", "get_settings", "setup_logging"]
