"""Zone to subnet mapping and its validation."""

from typing import Mapping

from machinepool.conditions import (
    REASON_INSUFFICIENT_PUBLIC_SUBNETS,
    REASON_MORE_THAN_ONE_SUBNET,
)
from machinepool.errors import SubnetValidationError
from machinepool.models import Subnet


def map_subnets_by_zone(subnets: Mapping[str, Subnet]) -> tuple[dict[str, str], set[str]]:
    """Map each zone to its first subnet, collecting every subnet that shares a zone."""
    conflicting: set[str] = set()
    by_zone: dict[str, str] = {}
    for subnet in subnets.values():
        incumbent = by_zone.get(subnet.availability_zone)
        if incumbent is not None:
            conflicting.add(incumbent)
            conflicting.add(subnet.subnet_id)
            continue
        by_zone[subnet.availability_zone] = subnet.subnet_id
    return by_zone, conflicting


def validate_subnets(subnets: Mapping[str, Subnet]) -> dict[str, str]:
    """Return the zone to subnet ID mapping, requiring one subnet per zone.

    Raises SubnetValidationError naming every conflicting subnet, sorted.
    """
    by_zone, conflicting = map_subnets_by_zone(subnets)
    if conflicting:
        names = ", ".join(sorted(conflicting))
        raise SubnetValidationError(
            "more than one subnet found for some availability zones, "
            f"conflicting subnets: {names}",
            reason=REASON_MORE_THAN_ONE_SUBNET,
            conflicting_subnets=conflicting,
        )
    return by_zone


def check_public_subnet_parity(
    public_by_zone: Mapping[str, str], private_by_zone: Mapping[str, str]
) -> None:
    """Require a public subnet for every zone with a private subnet.

    Only applies when public subnets were given at all.
    """
    if not public_by_zone:
        return
    missing = sorted(set(private_by_zone) - set(public_by_zone))
    if missing or len(public_by_zone) < len(private_by_zone):
        raise SubnetValidationError(
            "insufficient public subnets for availability zones and private subnets",
            reason=REASON_INSUFFICIENT_PUBLIC_SUBNETS,
        )
