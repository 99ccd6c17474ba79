import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any logging configuration a CLI test applied."""
    yield
    structlog.reset_defaults()
