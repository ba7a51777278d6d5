"""Generic per-zone node group templates, before cluster-specific references are applied."""

from typing import Mapping, Optional

from machinepool.errors import NoSubnetForZoneError
from machinepool.models import (
    AwsPoolPlatform,
    MachinePoolSpec,
    NodeGroupDefinition,
    ResourceReference,
)


def pool_replicas(spec: MachinePoolSpec) -> int:
    """Total replicas across all zones; autoscaling pools start at their minimum."""
    if spec.autoscaling is not None:
        return spec.autoscaling.min_replicas
    return spec.replicas or 0


def spread_replicas(total: int, zone_count: int, index: int) -> int:
    """Replicas for the zone at ``index``; the remainder goes to the first zones."""
    replicas = total // zone_count
    if index < total % zone_count:
        replicas += 1
    return replicas


def build_node_group_templates(
    infra_id: str,
    region: str,
    subnets_by_zone: Mapping[str, str],
    spec: MachinePoolSpec,
    platform: AwsPoolPlatform,
    zones: list[str],
    image_id: str,
    user_data_secret: str,
    user_tags: Optional[Mapping[str, str]] = None,
) -> list[NodeGroupDefinition]:
    """Build one template per zone, in zone order.

    When ``subnets_by_zone`` is non-empty every zone must have a subnet in it.
    Zones without an explicit subnet get an empty subnet reference.
    """
    total = pool_replicas(spec)
    tags = {f"kubernetes.io/cluster/{infra_id}": "owned", **(user_tags or {})}

    templates = []
    for index, zone in enumerate(zones):
        subnet_id = subnets_by_zone.get(zone)
        if subnets_by_zone and subnet_id is None:
            raise NoSubnetForZoneError(zone)

        templates.append(
            NodeGroupDefinition(
                name=f"{infra_id}-{spec.name}-{zone}",
                pool_name=spec.name,
                region=region,
                zone=zone,
                replicas=spread_replicas(total, len(zones), index),
                instance_type=platform.instance_type,
                image_id=image_id,
                root_volume=platform.root_volume,
                subnet=ResourceReference(id=subnet_id),
                user_data_secret=user_data_secret,
                labels=dict(spec.labels),
                taints=list(spec.taints),
                tags=tags,
            )
        )
    return templates
