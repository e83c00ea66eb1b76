from datetime import timedelta

from convstore.config import StoreConfig
from convstore.runtime import open_service


def sign_url(config: StoreConfig, key: str, *, method: str, ttl_seconds: int) -> None:
    with open_service(config) as service:
        url = service.store.get_signed_url(key, method, timedelta(seconds=ttl_seconds))
    print(url)
