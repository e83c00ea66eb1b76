from convstore.config import StoreConfig
from convstore.migration import legacy_key_for, migrate_legacy_history
from convstore.runtime import open_service


def migrate_legacy(config: StoreConfig, source_id: str, *, user_id: str, model: str) -> None:
    with open_service(config) as service:
        migrated = migrate_legacy_history(service, source_id, legacy_user_id=user_id, legacy_model_name=model)

    if migrated is None:
        print(f"Nothing to migrate for {source_id}.")
        return
    print(
        f"Migrated {len(migrated.messages)} message(s) from {legacy_key_for(source_id)} "
        f"to {source_id} (generation {migrated.generation})."
    )
