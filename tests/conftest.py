# pyright: standard
import logging
from collections.abc import Iterator

import pytest


@pytest.fixture(autouse=True)
def _reset_root_logging() -> Iterator[None]:
    """CLI invocations install a rich handler on the root logger; restore it after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
