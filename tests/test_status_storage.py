import pytest

from api.database import Database
from api.status_storage import (
    DatabaseStatusStorage,
    FileStatusStorage,
    InMemoryStatusStorage,
)
from machinepool.conditions import initialize_conditions, set_condition
from machinepool.models import ConditionStatus, ConditionType, UpdatePolicy


@pytest.fixture(params=["memory", "file", "database"])
def backend(request, tmp_path):
    if request.param == "memory":
        return InMemoryStatusStorage()
    if request.param == "file":
        return FileStatusStorage(base_path=str(tmp_path / "status"))
    return DatabaseStatusStorage(Database(f"sqlite:///{tmp_path / 'status.db'}"))


def _conditions():
    conditions, _ = initialize_conditions([])
    conditions, _ = set_condition(
        conditions,
        ConditionType.INVALID_SUBNETS,
        ConditionStatus.TRUE,
        "SubnetsNotFound",
        "The subnet ID 'subnet-1' does not exist",
        UpdatePolicy.IF_REASON_OR_MESSAGE_CHANGE,
    )
    return conditions


def test_save_and_get(backend):
    conditions = _conditions()
    backend.save("default/mycluster-worker", conditions)

    stored = backend.get("default/mycluster-worker")

    assert [(c.type, c.status, c.reason, c.message) for c in stored] == [
        (c.type, c.status, c.reason, c.message) for c in conditions
    ]
    assert backend.exists("default/mycluster-worker")


def test_save_replaces_previous_conditions(backend):
    backend.save("default/mycluster-worker", _conditions())
    cleared, _ = initialize_conditions([])
    backend.save("default/mycluster-worker", cleared)

    stored = backend.get("default/mycluster-worker")
    assert all(c.status == ConditionStatus.UNKNOWN for c in stored)


def test_missing_pool(backend):
    assert backend.get("default/unknown") is None
    assert backend.exists("default/unknown") is False
    assert backend.delete("default/unknown") is False


def test_delete(backend):
    backend.save("default/mycluster-worker", _conditions())
    assert backend.delete("default/mycluster-worker") is True
    assert backend.get("default/mycluster-worker") is None
