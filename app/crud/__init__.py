from app.crud.streak import (
    get_record,
    get_or_create_record,
    upsert_entry,
    clear_entries,
    list_entries,
    commit_record,
)

__all__ = [
    "get_record",
    "get_or_create_record",
    "upsert_entry",
    "clear_entries",
    "list_entries",
    "commit_record",
]
