import sys

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def restore_logging():
    """main() rebinds loguru to the stderr of the running test; point it back afterwards."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")
