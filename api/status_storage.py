import json
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter

from api.database import Database
from api.settings import settings
from machinepool.models import Condition

_conditions_adapter = TypeAdapter(list[Condition])


def dump_conditions(conditions: list[Condition]) -> str:
    return json.dumps(_conditions_adapter.dump_python(conditions, mode="json"), indent=2)


def load_conditions(raw: str) -> list[Condition]:
    return _conditions_adapter.validate_python(json.loads(raw))


class StatusStorageBackend(ABC):

    @abstractmethod
    def save(self, pool_key: str, conditions: list[Condition]) -> None:
        """Persist the conditions of a machine pool."""
        pass

    @abstractmethod
    def get(self, pool_key: str) -> Optional[list[Condition]]:
        """Retrieve the conditions of a machine pool."""
        pass

    @abstractmethod
    def delete(self, pool_key: str) -> bool:
        """Delete the stored conditions of a machine pool."""
        pass

    def exists(self, pool_key: str) -> bool:
        """Check if conditions are stored for a machine pool."""
        return self.get(pool_key) is not None


class InMemoryStatusStorage(StatusStorageBackend):
    """Dictionary-backed storage that counts writes."""

    def __init__(self) -> None:
        self._conditions: dict[str, list[Condition]] = {}
        self.save_count = 0

    def save(self, pool_key: str, conditions: list[Condition]) -> None:
        self._conditions[pool_key] = [c.model_copy() for c in conditions]
        self.save_count += 1

    def get(self, pool_key: str) -> Optional[list[Condition]]:
        conditions = self._conditions.get(pool_key)
        if conditions is None:
            return None
        return [c.model_copy() for c in conditions]

    def delete(self, pool_key: str) -> bool:
        return self._conditions.pop(pool_key, None) is not None


class FileStatusStorage(StatusStorageBackend):
    """File-based status storage using JSON files."""

    def __init__(self, base_path: str = "status") -> None:
        """Initialize file-based storage."""
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_status_path(self, pool_key: str) -> Path:
        """Get the file path for a pool's status."""
        return self.base_path / f"{pool_key.replace('/', '__')}.json"

    def save(self, pool_key: str, conditions: list[Condition]) -> None:
        """Save a pool's conditions to a JSON file."""
        self._get_status_path(pool_key).write_text(dump_conditions(conditions))

    def get(self, pool_key: str) -> Optional[list[Condition]]:
        """Retrieve a pool's conditions from file."""
        status_path = self._get_status_path(pool_key)
        if not status_path.exists():
            return None
        return load_conditions(status_path.read_text())

    def delete(self, pool_key: str) -> bool:
        """Delete a pool's status file."""
        status_path = self._get_status_path(pool_key)
        if not status_path.exists():
            return False

        status_path.unlink()
        return True


class DatabaseStatusStorage(StatusStorageBackend):
    """SQL-backed status storage."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def save(self, pool_key: str, conditions: list[Condition]) -> None:
        self.database.upsert_pool_status(pool_key, dump_conditions(conditions))

    def get(self, pool_key: str) -> Optional[list[Condition]]:
        record = self.database.get_pool_status(pool_key)
        if record is None:
            return None
        return load_conditions(record.conditions)

    def delete(self, pool_key: str) -> bool:
        return self.database.delete_pool_status(pool_key)


def create_status_storage(backend: str = settings.status_backend) -> StatusStorageBackend:
    """Create the status storage backend selected in settings."""
    if backend == "memory":
        return InMemoryStatusStorage()
    if backend == "database":
        return DatabaseStatusStorage(Database(settings.database_url))
    if backend == "file":
        return FileStatusStorage(base_path=settings.status_storage_path)
    raise ValueError(f"Unknown status backend: {backend}")


@lru_cache
def get_status_storage() -> StatusStorageBackend:
    return create_status_storage(settings.status_backend)
