"""Synthesizes per-zone node group definitions for a machine pool."""

import logging
from typing import Mapping, Optional

from machinepool.models import (
    AwsPoolPlatform,
    Filter,
    MachinePoolSpec,
    NodeGroupDefinition,
    ResourceReference,
    SpotMarketOptions,
)
from machinepool.naming import NamingPolicy
from machinepool.templates import build_node_group_templates
from machinepool.version_gate import worker_user_data_secret

logger = logging.getLogger(__name__)


def tag_name_filter(name: str) -> Filter:
    return Filter(name="tag:Name", values=[name])


class NodeGroupSynthesizer:
    """Builds node groups that reuse the worker resources of an installed cluster."""

    def __init__(
        self,
        region: str,
        image_id: str,
        cluster_version: str,
        naming: Optional[NamingPolicy] = None,
        user_tags: Optional[Mapping[str, str]] = None,
    ):
        self.region = region
        self.image_id = image_id
        self.cluster_version = cluster_version
        self.naming = naming or NamingPolicy()
        self.user_tags = dict(user_tags or {})

    def synthesize(
        self,
        subnets_by_zone: Mapping[str, str],
        spec: MachinePoolSpec,
        zones: list[str],
        infra_id: str,
        spot_allowed: bool = True,
    ) -> list[NodeGroupDefinition]:
        """Return one node group per zone, in zone order.

        Raises NoSubnetForZoneError when explicit subnets do not cover a zone.
        """
        platform = spec.platform.aws
        templates = build_node_group_templates(
            infra_id=infra_id,
            region=self.region,
            subnets_by_zone=subnets_by_zone,
            spec=spec,
            platform=platform,
            zones=zones,
            image_id=self.image_id,
            user_data_secret=worker_user_data_secret(self.cluster_version),
            user_tags=self.user_tags,
        )
        node_groups = [
            self.with_cluster_references(template, infra_id, platform, spot_allowed)
            for template in templates
        ]
        logger.debug("Generated %d node groups for pool %s", len(node_groups), spec.name)
        return node_groups

    def with_cluster_references(
        self,
        template: NodeGroupDefinition,
        infra_id: str,
        platform: AwsPoolPlatform,
        spot_allowed: bool = True,
    ) -> NodeGroupDefinition:
        """Return a copy of ``template`` pointing at the cluster's worker resources."""
        # TODO: look these resources up by tag instead of assuming installer names.
        subnet = template.subnet
        if subnet.id is None:
            subnet = ResourceReference(
                filters=[tag_name_filter(self.naming.private_subnet(infra_id, template.zone))]
            )

        spot: Optional[SpotMarketOptions] = None
        if platform.spot_market_options is not None and spot_allowed:
            spot = SpotMarketOptions(max_price=platform.spot_market_options.max_price)

        return template.model_copy(
            update={
                "subnet": subnet,
                "iam_instance_profile": ResourceReference(id=self.naming.iam_profile(infra_id)),
                "security_groups": [
                    ResourceReference(
                        filters=[tag_name_filter(self.naming.security_group(infra_id))]
                    )
                ],
                "spot_market_options": spot,
            }
        )
