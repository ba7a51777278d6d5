import pytest

from machinepool.errors import NoSubnetForZoneError
from machinepool.models import Filter, PoolAutoscaling
from machinepool.naming import NamingPolicy
from machinepool.synthesizer import NodeGroupSynthesizer
from machinepool.templates import spread_replicas
from tests.conftest import AMI_ID, INFRA_ID, REGION, make_pool


def _synthesizer(version="4.10.0", naming=None):
    return NodeGroupSynthesizer(REGION, AMI_ID, version, naming=naming)


def test_installer_resources_referenced_by_name():
    pool = make_pool(zones=["us-east-1a"])
    [node_group] = _synthesizer().synthesize({}, pool.spec, ["us-east-1a"], INFRA_ID)

    assert node_group.name == "abc-worker-us-east-1a"
    assert node_group.subnet.id is None
    assert node_group.subnet.filters == [Filter(name="tag:Name", values=["abc-private-us-east-1a"])]
    assert node_group.iam_instance_profile.id == "abc-worker-profile"
    assert node_group.security_groups[0].filters == [
        Filter(name="tag:Name", values=["abc-worker-sg"])
    ]
    assert node_group.image_id == AMI_ID
    assert node_group.instance_type == "m5.xlarge"
    assert node_group.user_data_secret == "worker-user-data-managed"
    assert node_group.tags == {"kubernetes.io/cluster/abc": "owned"}
    assert node_group.spot_market_options is None


def test_explicit_subnet_used_directly():
    pool = make_pool(zones=["us-east-1a", "us-east-1b"])
    node_groups = _synthesizer().synthesize(
        {"us-east-1a": "subnet-a", "us-east-1b": "subnet-b"},
        pool.spec,
        ["us-east-1a", "us-east-1b"],
        INFRA_ID,
    )
    assert [ng.zone for ng in node_groups] == ["us-east-1a", "us-east-1b"]
    assert [ng.subnet.id for ng in node_groups] == ["subnet-a", "subnet-b"]
    assert all(ng.subnet.filters == [] for ng in node_groups)


def test_missing_subnet_for_zone():
    pool = make_pool(zones=["us-east-1a", "us-east-1b"])
    with pytest.raises(NoSubnetForZoneError, match="no subnet for zone us-east-1b"):
        _synthesizer().synthesize(
            {"us-east-1a": "subnet-a"}, pool.spec, ["us-east-1a", "us-east-1b"], INFRA_ID
        )


def test_spot_price_attached_when_requested():
    pool = make_pool(spot_price="0.25")
    [node_group] = _synthesizer().synthesize({}, pool.spec, ["us-east-1a"], INFRA_ID)
    assert node_group.spot_market_options.max_price == "0.25"


def test_spot_omitted_when_not_allowed():
    pool = make_pool(spot_price="0.25")
    [node_group] = _synthesizer().synthesize(
        {}, pool.spec, ["us-east-1a"], INFRA_ID, spot_allowed=False
    )
    assert node_group.spot_market_options is None


def test_replicas_spread_across_zones():
    pool = make_pool(replicas=5)
    zones = ["us-east-1a", "us-east-1b", "us-east-1c"]
    node_groups = _synthesizer().synthesize({}, pool.spec, zones, INFRA_ID)
    assert [ng.replicas for ng in node_groups] == [2, 2, 1]
    assert sum(spread_replicas(7, 3, i) for i in range(3)) == 7


def test_autoscaling_pool_starts_at_minimum():
    pool = make_pool(replicas=None)
    pool.spec.autoscaling = PoolAutoscaling(min_replicas=2, max_replicas=6)
    node_groups = _synthesizer().synthesize({}, pool.spec, ["us-east-1a", "us-east-1b"], INFRA_ID)
    assert [ng.replicas for ng in node_groups] == [1, 1]


def test_older_clusters_use_unmanaged_user_data():
    pool = make_pool()
    [node_group] = _synthesizer(version="4.9.0").synthesize({}, pool.spec, ["us-east-1a"], INFRA_ID)
    assert node_group.user_data_secret == "worker-user-data"


def test_naming_policy_can_be_replaced():
    naming = NamingPolicy(
        iam_profile_template="{infra_id}-node-profile",
        security_group_template="{infra_id}-node",
        private_subnet_template="{infra_id}-subnet-private-{zone}",
    )
    pool = make_pool()
    [node_group] = _synthesizer(naming=naming).synthesize({}, pool.spec, ["us-east-1a"], INFRA_ID)
    assert node_group.iam_instance_profile.id == "abc-node-profile"
    assert node_group.security_groups[0].filters[0].values == ["abc-node"]
    assert node_group.subnet.filters[0].values == ["abc-subnet-private-us-east-1a"]
