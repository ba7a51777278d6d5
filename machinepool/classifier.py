"""Public/private classification of subnets from routing and tagging."""

import logging
from typing import Optional, Sequence

from machinepool.errors import RouteTableNotFoundError
from machinepool.models import RouteTable, Subnet, Tag

logger = logging.getLogger(__name__)

# Tag on a subnet designating it for internet-facing load balancers.
TAG_SUBNET_PUBLIC_ELB = "kubernetes.io/role/elb"

INTERNET_GATEWAY_PREFIX = "igw"


def find_tag(tags: Sequence[Tag], key: str) -> tuple[str, bool]:
    """Return the value for ``key`` and whether the tag exists."""
    for tag in tags:
        if tag.key == key:
            return tag.value, True
    return "", False


def find_route_table(subnet: Subnet, route_tables: Sequence[RouteTable]) -> Optional[RouteTable]:
    """Return the route table used by ``subnet``.

    An explicit association wins; without one the subnet implicitly uses the
    VPC's main route table. First match in input order.
    """
    for table in route_tables:
        for association in table.associations:
            if association.subnet_id == subnet.subnet_id:
                return table

    for table in route_tables:
        for association in table.associations:
            if association.main:
                logger.debug(
                    "Assuming implicit use of main routing table %s for %s",
                    table.route_table_id,
                    subnet.subnet_id,
                )
                return table

    return None


def is_subnet_public(subnet: Subnet, route_tables: Sequence[RouteTable]) -> bool:
    """Return whether ``subnet`` is public.

    EC2 has no direct notion of a public subnet. A subnet is public when its
    route table routes to an internet gateway ("igw-..."), as opposed to the
    "local" route, virtual gateways ("vgw-...") or peering ("pcx-..."). Failing
    that, users may mark the subnet with the public ELB tag.
    """
    table = find_route_table(subnet, route_tables)
    if table is None:
        raise RouteTableNotFoundError(subnet.subnet_id)

    for route in table.routes:
        if (route.gateway_id or "").startswith(INTERNET_GATEWAY_PREFIX):
            return True

    value, has_tag = find_tag(subnet.tags, TAG_SUBNET_PUBLIC_ELB)
    return has_tag and value in ("", "1")


def classify_subnets(
    subnets: Sequence[Subnet], route_tables: Sequence[RouteTable]
) -> tuple[dict[str, Subnet], dict[str, Subnet]]:
    """Split subnets into (public, private) mappings keyed by subnet ID.

    Both mappings preserve the input order of ``subnets``.
    """
    public: dict[str, Subnet] = {}
    private: dict[str, Subnet] = {}
    for subnet in subnets:
        if is_subnet_public(subnet, route_tables):
            public[subnet.subnet_id] = subnet
        else:
            private[subnet.subnet_id] = subnet
    return public, private
