"""
Shared JSON helpers for components that persist pydantic models in a substrate.
"""

from typing import Any

from pydantic import TypeAdapter, ValidationError

from insight_store.exceptions import StorageReadCorruption

from .substrate import KeyValueSubstrate


def load(substrate: KeyValueSubstrate, key: str, adapter: TypeAdapter) -> Any | None:
    """
    Reads and validates the payload under `key`.

    Returns None when the key is absent. Raises StorageReadCorruption when the
    payload is not valid JSON or doesn't match the expected shape.
    """
    raw = substrate.get(key)
    if raw is None:
        return None
    try:
        return adapter.validate_json(raw)
    except ValidationError as e:
        raise StorageReadCorruption(key, f"{e.error_count()} validation error(s)") from e


def dump(substrate: KeyValueSubstrate, key: str, adapter: TypeAdapter, value: Any) -> None:
    """Serializes `value` and writes it. Propagates StorageWriteError."""
    substrate.set(key, adapter.dump_json(value).decode("utf-8"))
