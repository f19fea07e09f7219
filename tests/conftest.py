"""Pytest configuration and shared fixtures."""

from datetime import date

import pytest

from searchterm_intel.core.config import ClassifierConfig, NgramConfig
from searchterm_intel.data_providers import InMemoryDataProvider

ACCOUNT_ID = "A100"


@pytest.fixture
def account_id():
    """Advertising account used across tests."""
    return ACCOUNT_ID


@pytest.fixture
def reference_date():
    """Fixed "today" so lookback windows are reproducible."""
    return date(2026, 3, 31)


@pytest.fixture
def provider(reference_date):
    """Empty in-memory row source and write collaborator."""
    return InMemoryDataProvider(reference_date=reference_date)


@pytest.fixture
def low_floor_ngram_config():
    """N-gram config with floors low enough for small fixtures."""
    return NgramConfig(min_frequency=2, min_spend=1.0)


@pytest.fixture
def no_common_roots_config():
    """Classifier config whose first rule never fires."""
    return ClassifierConfig(common_negative_roots=[])
