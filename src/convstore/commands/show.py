from convstore.config import StoreConfig
from convstore.console import is_terminal, render_history
from convstore.runtime import open_service
from convstore.serialization import history_to_json


def show(config: StoreConfig, source_id: str, json_output: bool) -> None:
    with open_service(config) as service:
        history = service.get_history(source_id)

    if json_output:
        print(history_to_json(history).decode("utf-8"))
        return

    if history.is_empty:
        print(f"No history stored for {source_id}.")
        return

    from rich.console import Console

    Console(force_terminal=is_terminal()).print(render_history(history))
