import sys

from convstore.codec import encode_jsonl
from convstore.config import StoreConfig
from convstore.runtime import open_service


def dump(config: StoreConfig, source_id: str) -> None:
    with open_service(config) as service:
        history = service.get_history(source_id)
    _ = sys.stdout.write(encode_jsonl(history.messages).decode("utf-8"))
