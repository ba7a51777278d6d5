from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

IMAGE_ID_OVERRIDE_ANNOTATION = "hive.openshift.io/machine-pool-image-id-override"
CLUSTER_VERSION_LABEL = "hive.openshift.io/version"


class ConditionStatus(str, Enum):
    """Status of a machine pool condition."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionType(str, Enum):
    """Condition types reported on a machine pool."""

    UNSUPPORTED_CONFIGURATION = "UnsupportedConfiguration"
    INVALID_SUBNETS = "InvalidSubnets"


class UpdatePolicy(str, Enum):
    """When an existing condition with the same status may be overwritten."""

    IF_REASON_OR_MESSAGE_CHANGE = "if_reason_or_message_change"
    NEVER = "never"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Condition(BaseModel):
    """A typed diagnostic attached to a machine pool's status."""

    type: ConditionType
    status: ConditionStatus
    reason: str = ""
    message: str = ""
    last_probe_time: datetime = Field(default_factory=_utcnow)
    last_transition_time: datetime = Field(default_factory=_utcnow)


# -- Machine pool input --


class SpotMarketOptions(BaseModel):
    """Spot market request. An empty max price caps at the on-demand price."""

    model_config = ConfigDict(frozen=True)

    max_price: Optional[str] = Field(default=None, description="Maximum hourly price")


class EC2RootVolume(BaseModel):
    """Root volume for each instance."""

    model_config = ConfigDict(frozen=True)

    iops: int = Field(default=0, ge=0)
    size: int = Field(default=120, ge=1)
    type: str = Field(default="gp3")
    kms_key_arn: Optional[str] = None


class AwsPoolPlatform(BaseModel):
    """AWS settings of a machine pool."""

    instance_type: str = Field(..., description="EC2 instance type")
    root_volume: EC2RootVolume = Field(default_factory=EC2RootVolume)
    zones: list[str] = Field(
        default_factory=list,
        description="Availability zones (discovered from the region if empty)",
    )
    subnets: list[str] = Field(
        default_factory=list,
        description="Subnet IDs to place nodes in (installer subnets if empty)",
    )
    spot_market_options: Optional[SpotMarketOptions] = None


class PoolPlatform(BaseModel):
    aws: Optional[AwsPoolPlatform] = None


class PoolAutoscaling(BaseModel):
    min_replicas: int = Field(..., ge=0)
    max_replicas: int = Field(..., ge=0)


class Taint(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    value: str = ""
    effect: str = Field(default="NoSchedule")


class MachinePoolSpec(BaseModel):
    """Declarative worker pool specification."""

    name: str = Field(..., description="Pool name, e.g. 'worker'")
    replicas: Optional[int] = Field(default=None, ge=0)
    autoscaling: Optional[PoolAutoscaling] = None
    labels: dict[str, str] = Field(default_factory=dict)
    taints: list[Taint] = Field(default_factory=list)
    platform: PoolPlatform = Field(default_factory=PoolPlatform)


class MachinePoolStatus(BaseModel):
    conditions: list[Condition] = Field(default_factory=list)


class MachinePool(BaseModel):
    """A machine pool belonging to a cluster deployment."""

    namespace: str = Field(default="default")
    cluster_deployment_name: str
    annotations: dict[str, str] = Field(default_factory=dict)
    spec: MachinePoolSpec
    status: MachinePoolStatus = Field(default_factory=MachinePoolStatus)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.cluster_deployment_name}-{self.spec.name}"


# -- Cluster input --


class ClusterMetadata(BaseModel):
    infra_id: str


class AwsClusterPlatform(BaseModel):
    region: str


class ClusterPlatform(BaseModel):
    aws: Optional[AwsClusterPlatform] = None


class ClusterDeploymentStatus(BaseModel):
    cluster_version: Optional[str] = None


class ClusterDeployment(BaseModel):
    """The installed cluster a machine pool is generated for."""

    name: str
    namespace: str = Field(default="default")
    labels: dict[str, str] = Field(default_factory=dict)
    cluster_metadata: Optional[ClusterMetadata] = None
    platform: ClusterPlatform = Field(default_factory=ClusterPlatform)
    status: ClusterDeploymentStatus = Field(default_factory=ClusterDeploymentStatus)


class MasterMachine(BaseModel):
    """An existing control plane machine, used to recover the cluster's AMI."""

    name: str
    provider_spec: Optional[dict] = None


# -- EC2 discovery results (built from boto3 response dictionaries) --


class AvailabilityZone(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    zone_name: str = Field(alias="ZoneName")
    state: str = Field(default="available", alias="State")


class Tag(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(alias="Key")
    value: str = Field(default="", alias="Value")


class Subnet(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    subnet_id: str = Field(alias="SubnetId")
    availability_zone: str = Field(alias="AvailabilityZone")
    vpc_id: str = Field(default="", alias="VpcId")
    tags: list[Tag] = Field(default_factory=list, alias="Tags")


class RouteTableAssociation(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    subnet_id: Optional[str] = Field(default=None, alias="SubnetId")
    main: bool = Field(default=False, alias="Main")


class Route(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    gateway_id: Optional[str] = Field(default=None, alias="GatewayId")


class RouteTable(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    route_table_id: str = Field(alias="RouteTableId")
    associations: list[RouteTableAssociation] = Field(default_factory=list, alias="Associations")
    routes: list[Route] = Field(default_factory=list, alias="Routes")


# -- Generated output --


class Filter(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    values: list[str]


class ResourceReference(BaseModel):
    """Reference to an AWS resource by ID or by filters."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    filters: list[Filter] = Field(default_factory=list)


class NodeGroupDefinition(BaseModel):
    """One zone's worth of homogeneous worker nodes, ready to apply."""

    model_config = ConfigDict(frozen=True)

    name: str
    pool_name: str
    region: str
    zone: str
    replicas: int
    instance_type: str
    image_id: str
    root_volume: EC2RootVolume
    subnet: ResourceReference
    iam_instance_profile: Optional[ResourceReference] = None
    security_groups: list[ResourceReference] = Field(default_factory=list)
    spot_market_options: Optional[SpotMarketOptions] = None
    user_data_secret: str
    labels: dict[str, str] = Field(default_factory=dict)
    taints: list[Taint] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)
