from unittest.mock import AsyncMock

import pytest

from devscreen_rules.catalog import QuestionCatalog


@pytest.fixture(scope="session")
def catalog():
    """Load the bundled question catalog once for the entire test session."""
    return QuestionCatalog().load()


@pytest.fixture
def mock_db():
    """AsyncMock standing in for AsyncSession — flush/rollback are no-ops."""
    return AsyncMock()
