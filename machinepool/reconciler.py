"""Top-level generation of node groups for a machine pool."""

import logging
from typing import Mapping, Optional

from machinepool.conditions import (
    REASON_CONFIGURATION_SUPPORTED,
    REASON_NO_SUBNET_FOR_ZONE,
    REASON_UNSUPPORTED_SPOT,
    REASON_VALID_SUBNETS,
    StatusWriter,
)
from machinepool.errors import ConfigurationError, NoSubnetForZoneError
from machinepool.image import resolve_base_image
from machinepool.models import (
    CLUSTER_VERSION_LABEL,
    ClusterDeployment,
    ConditionStatus,
    ConditionType,
    MachinePool,
    MasterMachine,
    NodeGroupDefinition,
    UpdatePolicy,
)
from machinepool.naming import NamingPolicy
from machinepool.resolver import VALID_SUBNETS_MESSAGE, SubnetTopologyResolver
from machinepool.synthesizer import NodeGroupSynthesizer
from machinepool.version_gate import is_using_unsupported_spot_market_options
from machinepool.zones import ZoneResolver

logger = logging.getLogger(__name__)


def get_cluster_version(cd: ClusterDeployment) -> str:
    """Return the installed version of the cluster."""
    version = cd.status.cluster_version or cd.labels.get(CLUSTER_VERSION_LABEL)
    if not version:
        raise ConfigurationError(
            f"Unable to get cluster version: no version for ClusterDeployment {cd.name}"
        )
    return version


class PoolReconciler:
    """Answers which node groups a machine pool should have and whether to apply them.

    ``ec2_client`` provides describe_availability_zones/describe_subnets/
    describe_route_tables; ``storage`` provides save(pool_key, conditions).
    """

    def __init__(
        self,
        ec2_client,
        storage,
        image_id: str,
        naming: Optional[NamingPolicy] = None,
        user_tags: Optional[Mapping[str, str]] = None,
    ):
        self.ec2_client = ec2_client
        self.storage = storage
        self.image_id = image_id
        self.naming = naming or NamingPolicy()
        self.user_tags = dict(user_tags or {})

    @classmethod
    def for_pool(
        cls,
        ec2_client,
        storage,
        pool: MachinePool,
        master_machine: Optional[MasterMachine],
        naming: Optional[NamingPolicy] = None,
    ) -> "PoolReconciler":
        """Build a reconciler using the pool's AMI override or the master machine's AMI."""
        image_id = resolve_base_image(pool, master_machine)
        return cls(ec2_client, storage, image_id, naming=naming)

    def generate_node_groups(
        self, cd: ClusterDeployment, pool: MachinePool
    ) -> tuple[list[NodeGroupDefinition], bool]:
        """Return the target node groups for the pool and whether they should be applied.

        Conditions on the pool are updated as a side effect and persisted only
        when they change.
        """
        if cd.cluster_metadata is None:
            raise ConfigurationError("ClusterDeployment does not have cluster metadata")
        if cd.platform.aws is None:
            raise ConfigurationError("ClusterDeployment is not for AWS")
        if pool.spec.platform.aws is None:
            raise ConfigurationError("MachinePool is not for AWS")

        cluster_version = get_cluster_version(cd)
        infra_id = cd.cluster_metadata.infra_id
        region = cd.platform.aws.region

        status = StatusWriter(pool, self.storage)
        status.initialize()

        if is_using_unsupported_spot_market_options(pool, cluster_version):
            logger.debug("Cluster version %s does not support spot instances", cluster_version)
            status.apply(
                ConditionType.UNSUPPORTED_CONFIGURATION,
                ConditionStatus.TRUE,
                REASON_UNSUPPORTED_SPOT,
                "The version of the cluster does not support using spot instances",
            )
            status.flush()
            return [], False

        status.apply(
            ConditionType.UNSUPPORTED_CONFIGURATION,
            ConditionStatus.FALSE,
            REASON_CONFIGURATION_SUPPORTED,
            "The configuration is supported",
        )

        zones = list(pool.spec.platform.aws.zones)
        if not zones:
            zones = ZoneResolver(self.ec2_client).list_zones(region)
            if not zones:
                raise ConfigurationError(f"zero zones returned for region {region}")

        # InvalidSubnets is cleared below, once the zones are known to be covered.
        subnets_by_zone = SubnetTopologyResolver(self.ec2_client, status).resolve(
            pool, clear_condition=False
        )

        synthesizer = NodeGroupSynthesizer(
            region=region,
            image_id=self.image_id,
            cluster_version=cluster_version,
            naming=self.naming,
            user_tags=self.user_tags,
        )
        try:
            node_groups = synthesizer.synthesize(subnets_by_zone, pool.spec, zones, infra_id)
        except NoSubnetForZoneError as e:
            status.apply(
                ConditionType.INVALID_SUBNETS,
                ConditionStatus.TRUE,
                REASON_NO_SUBNET_FOR_ZONE,
                str(e),
            )
            status.flush()
            raise

        status.apply(
            ConditionType.INVALID_SUBNETS,
            ConditionStatus.FALSE,
            REASON_VALID_SUBNETS,
            VALID_SUBNETS_MESSAGE,
            UpdatePolicy.NEVER,
        )
        status.flush()
        return node_groups, True
