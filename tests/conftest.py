import pytest

from api.status_storage import InMemoryStatusStorage
from machinepool.errors import SubnetNotFoundError
from machinepool.models import (
    AvailabilityZone,
    AwsClusterPlatform,
    AwsPoolPlatform,
    ClusterDeployment,
    ClusterDeploymentStatus,
    ClusterMetadata,
    ClusterPlatform,
    MachinePool,
    MachinePoolSpec,
    MasterMachine,
    PoolPlatform,
    Route,
    RouteTable,
    RouteTableAssociation,
    SpotMarketOptions,
    Subnet,
    Tag,
)

INFRA_ID = "abc"
REGION = "us-east-1"
AMI_ID = "ami-0123456789"


def make_subnet(subnet_id, zone, vpc_id="vpc-1", tags=None):
    return Subnet(
        subnet_id=subnet_id,
        availability_zone=zone,
        vpc_id=vpc_id,
        tags=[Tag(key=k, value=v) for k, v in (tags or {}).items()],
    )


def make_route_table(table_id, subnet_ids=(), main=False, gateways=("local",)):
    associations = [RouteTableAssociation(subnet_id=s) for s in subnet_ids]
    if main:
        associations.append(RouteTableAssociation(main=True))
    return RouteTable(
        route_table_id=table_id,
        associations=associations,
        routes=[Route(gateway_id=g) for g in gateways],
    )


def make_cluster_deployment(version="4.10.0", region=REGION, infra_id=INFRA_ID):
    return ClusterDeployment(
        name="mycluster",
        cluster_metadata=ClusterMetadata(infra_id=infra_id) if infra_id else None,
        platform=ClusterPlatform(aws=AwsClusterPlatform(region=region)),
        status=ClusterDeploymentStatus(cluster_version=version),
    )


def make_pool(
    zones=("us-east-1a",),
    subnets=(),
    spot_price=None,
    replicas=3,
    image_override=AMI_ID,
):
    annotations = {}
    if image_override:
        annotations["hive.openshift.io/machine-pool-image-id-override"] = image_override
    return MachinePool(
        cluster_deployment_name="mycluster",
        annotations=annotations,
        spec=MachinePoolSpec(
            name="worker",
            replicas=replicas,
            platform=PoolPlatform(
                aws=AwsPoolPlatform(
                    instance_type="m5.xlarge",
                    zones=list(zones),
                    subnets=list(subnets),
                    spot_market_options=(
                        SpotMarketOptions(max_price=spot_price) if spot_price is not None else None
                    ),
                )
            ),
        ),
    )


class FakeEc2Client:
    """In-memory stand-in for Ec2DiscoveryClient."""

    def __init__(self, zones=(), subnets=(), route_tables=(), subnet_error=None):
        self.zones = list(zones)
        self.subnets = {s.subnet_id: s for s in subnets}
        self.route_tables = list(route_tables)
        self.subnet_error = subnet_error
        self.calls: list[str] = []

    def describe_availability_zones(self, region):
        self.calls.append("describe_availability_zones")
        return [AvailabilityZone(zone_name=z) for z in self.zones]

    def describe_subnets(self, subnet_ids):
        self.calls.append("describe_subnets")
        if self.subnet_error is not None:
            raise self.subnet_error
        missing = [s for s in subnet_ids if s not in self.subnets]
        if missing:
            raise SubnetNotFoundError(
                "InvalidSubnetID.NotFound",
                detail=f"The subnet ID '{','.join(missing)}' does not exist",
            )
        return [self.subnets[s] for s in subnet_ids]

    def describe_route_tables(self, vpc_id):
        self.calls.append("describe_route_tables")
        return list(self.route_tables)


@pytest.fixture
def storage():
    return InMemoryStatusStorage()


@pytest.fixture
def master_machine():
    return MasterMachine(
        name="mycluster-master-0",
        provider_spec={
            "apiVersion": "awsproviderconfig.openshift.io/v1beta1",
            "kind": "AWSMachineProviderConfig",
            "ami": {"id": AMI_ID},
        },
    )


@pytest.fixture
def two_zone_ec2():
    """Private subnets in two zones behind a NAT, public subnets behind an internet gateway."""
    return FakeEc2Client(
        zones=["us-east-1a", "us-east-1b"],
        subnets=[
            make_subnet("subnet-priv-a", "us-east-1a"),
            make_subnet("subnet-priv-b", "us-east-1b"),
            make_subnet("subnet-pub-a", "us-east-1a"),
            make_subnet("subnet-pub-b", "us-east-1b"),
        ],
        route_tables=[
            make_route_table("rtb-private", ["subnet-priv-a", "subnet-priv-b"], gateways=["local"]),
            make_route_table(
                "rtb-public", ["subnet-pub-a", "subnet-pub-b"], gateways=["local", "igw-1"]
            ),
        ],
    )
