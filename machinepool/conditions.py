"""Pure condition bookkeeping for machine pool status."""

import logging
from datetime import datetime, timezone
from typing import Optional

from machinepool.models import (
    Condition,
    ConditionStatus,
    ConditionType,
    MachinePool,
    UpdatePolicy,
)

logger = logging.getLogger(__name__)

# Reasons
REASON_INITIALIZED = "Initialized"
REASON_UNSUPPORTED_SPOT = "UnsupportedSpotMarketOptions"
REASON_CONFIGURATION_SUPPORTED = "ConfigurationSupported"
REASON_SUBNETS_NOT_FOUND = "SubnetsNotFound"
REASON_MORE_THAN_ONE_SUBNET = "MoreThanOneSubnetForZone"
REASON_INSUFFICIENT_PUBLIC_SUBNETS = "InsufficientPublicSubnets"
REASON_NO_SUBNET_FOR_ZONE = "NoSubnetForAvailabilityZone"
REASON_VALID_SUBNETS = "ValidSubnets"


def find_condition(
    conditions: list[Condition], condition_type: ConditionType
) -> Optional[Condition]:
    """Return the condition of the given type, if present."""
    for condition in conditions:
        if condition.type == condition_type:
            return condition
    return None


def _should_update(
    existing: Condition,
    status: ConditionStatus,
    reason: str,
    message: str,
    policy: UpdatePolicy,
) -> bool:
    if existing.status != status:
        return True
    if policy == UpdatePolicy.IF_REASON_OR_MESSAGE_CHANGE:
        return existing.reason != reason or existing.message != message
    return False


def set_condition(
    conditions: list[Condition],
    condition_type: ConditionType,
    status: ConditionStatus,
    reason: str,
    message: str,
    policy: UpdatePolicy,
) -> tuple[list[Condition], bool]:
    """Return a new condition list with the condition applied, and whether it changed.

    A condition that is absent is only recorded when it is True. Probe time is
    refreshed on every applied update; transition time only when status flips.
    """
    now = datetime.now(timezone.utc)
    updated = list(conditions)
    existing = find_condition(updated, condition_type)

    if existing is None:
        if status != ConditionStatus.TRUE:
            return sorted(updated, key=lambda c: c.type.value), False
        updated.append(
            Condition(
                type=condition_type,
                status=status,
                reason=reason,
                message=message,
                last_probe_time=now,
                last_transition_time=now,
            )
        )
        return sorted(updated, key=lambda c: c.type.value), True

    if not _should_update(existing, status, reason, message, policy):
        return sorted(updated, key=lambda c: c.type.value), False

    replacement = existing.model_copy(
        update={
            "status": status,
            "reason": reason,
            "message": message,
            "last_probe_time": now,
            "last_transition_time": (
                now if existing.status != status else existing.last_transition_time
            ),
        }
    )
    updated[updated.index(existing)] = replacement
    return sorted(updated, key=lambda c: c.type.value), True


def initialize_conditions(conditions: list[Condition]) -> tuple[list[Condition], bool]:
    """Add every known condition type that is missing with Unknown status."""
    updated = list(conditions)
    changed = False
    for condition_type in ConditionType:
        if find_condition(updated, condition_type) is None:
            updated.append(
                Condition(
                    type=condition_type,
                    status=ConditionStatus.UNKNOWN,
                    reason=REASON_INITIALIZED,
                    message="Condition Initialized",
                )
            )
            changed = True
    return sorted(updated, key=lambda c: c.type.value), changed


class StatusWriter:
    """Stages condition changes for one pool and persists them in a single write.

    ``storage`` is anything with a ``save(pool_key, conditions)`` method.
    """

    def __init__(self, pool: MachinePool, storage):
        self.pool = pool
        self.storage = storage
        self.pending = False

    @property
    def conditions(self) -> list[Condition]:
        return self.pool.status.conditions

    def initialize(self) -> bool:
        conditions, changed = initialize_conditions(self.conditions)
        return self._stage(conditions, changed)

    def apply(
        self,
        condition_type: ConditionType,
        status: ConditionStatus,
        reason: str,
        message: str,
        policy: UpdatePolicy = UpdatePolicy.IF_REASON_OR_MESSAGE_CHANGE,
    ) -> bool:
        """Stage a condition change. Returns whether the condition changed."""
        conditions, changed = set_condition(
            self.conditions, condition_type, status, reason, message, policy
        )
        return self._stage(conditions, changed)

    def _stage(self, conditions: list[Condition], changed: bool) -> bool:
        if changed:
            self.pool.status.conditions = conditions
            self.pending = True
        return changed

    def flush(self) -> bool:
        """Persist the pool's conditions if anything changed. Returns whether a write happened."""
        if not self.pending:
            return False
        self.storage.save(self.pool.key, self.conditions)
        self.pending = False
        logger.info("Persisted status conditions for machine pool %s", self.pool.key)
        return True
