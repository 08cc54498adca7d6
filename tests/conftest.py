import logging

import pytest


@pytest.fixture(autouse=True, scope="session")
def quiet_engine_logger():
    """Keep the engine from binding a console handler to captured streams."""
    logger = logging.getLogger("memtracker")
    handler = logging.NullHandler()
    logger.addHandler(handler)
    yield
    logger.removeHandler(handler)
