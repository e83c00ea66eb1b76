import logging
from collections.abc import Iterator
from contextlib import contextmanager

from convstore.config import StoreConfig, open_store
from convstore.history import HistoryService

logger = logging.getLogger(__name__)


@contextmanager
def open_service(config: StoreConfig) -> Iterator[HistoryService]:
    """Opens the configured store for the duration of one command and closes it afterwards."""
    store = open_store(config)
    logger.debug("Opened %s store (timeout %s)", config.backend, config.storage_timeout)
    try:
        yield HistoryService(store)
    finally:
        store.close()
