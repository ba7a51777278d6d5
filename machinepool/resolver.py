"""Resolves a pool's explicit subnets into a validated zone to subnet mapping."""

import logging

from machinepool.classifier import classify_subnets
from machinepool.conditions import (
    REASON_INSUFFICIENT_PUBLIC_SUBNETS,
    REASON_SUBNETS_NOT_FOUND,
    REASON_VALID_SUBNETS,
    StatusWriter,
)
from machinepool.errors import (
    ConfigurationError,
    SubnetNotFoundError,
    SubnetValidationError,
)
from machinepool.models import (
    ConditionStatus,
    ConditionType,
    MachinePool,
    Subnet,
    UpdatePolicy,
)
from machinepool.topology import check_public_subnet_parity, validate_subnets

logger = logging.getLogger(__name__)

INSUFFICIENT_PUBLIC_SUBNETS_MESSAGE = (
    "Public subnet does not exist for each zone with a private subnet"
)
VALID_SUBNETS_MESSAGE = "Subnets are valid"


class SubnetTopologyResolver:
    """Maps availability zones to the private subnets requested by a machine pool.

    Failures are recorded on the pool's InvalidSubnets condition through the
    status writer, which also carries any condition the caller staged earlier
    so that both are persisted together.
    """

    def __init__(self, ec2_client, status: StatusWriter):
        self.ec2_client = ec2_client
        self.status = status

    def resolve(self, pool: MachinePool, clear_condition: bool = True) -> dict[str, str]:
        """Return zone -> private subnet ID for the pool's explicit subnets.

        Returns an empty mapping when the pool does not pin any subnets. With
        clear_condition=False a valid topology leaves InvalidSubnets untouched,
        for callers that clear it only after their own later checks pass.
        """
        aws = pool.spec.platform.aws
        if aws is None:
            raise ConfigurationError("MachinePool is not for AWS")
        if not aws.subnets:
            return {}

        subnets = self._describe_subnets(aws.subnets)

        vpc_id = subnets[0].vpc_id
        if not vpc_id:
            raise ConfigurationError(f"{subnets[0].subnet_id} has no VPC")
        other_vpcs = sorted({s.vpc_id for s in subnets if s.vpc_id != vpc_id})
        if other_vpcs:
            raise ConfigurationError(
                f"subnets must belong to a single VPC, found {vpc_id} and {', '.join(other_vpcs)}"
            )

        route_tables = self.ec2_client.describe_route_tables(vpc_id)
        public, private = classify_subnets(subnets, route_tables)
        logger.debug(
            "Classified subnets for %s: public=%s private=%s",
            pool.key,
            list(public),
            list(private),
        )

        try:
            public_by_zone = validate_subnets(public) if public else {}
            private_by_zone = validate_subnets(private)
            check_public_subnet_parity(public_by_zone, private_by_zone)
        except SubnetValidationError as e:
            message = str(e)
            if e.reason == REASON_INSUFFICIENT_PUBLIC_SUBNETS:
                message = INSUFFICIENT_PUBLIC_SUBNETS_MESSAGE
            self._fail(e.reason, message)
            raise

        if clear_condition:
            self.status.apply(
                ConditionType.INVALID_SUBNETS,
                ConditionStatus.FALSE,
                REASON_VALID_SUBNETS,
                VALID_SUBNETS_MESSAGE,
                UpdatePolicy.NEVER,
            )
        return private_by_zone

    def _describe_subnets(self, subnet_ids: list[str]) -> list[Subnet]:
        try:
            subnets = self.ec2_client.describe_subnets(subnet_ids)
            if not subnets:
                raise SubnetNotFoundError(
                    f"no subnets found for IDs {', '.join(subnet_ids)}",
                    detail=f"The subnet ID '{','.join(subnet_ids)}' does not exist",
                )
        except SubnetNotFoundError as e:
            self._fail(REASON_SUBNETS_NOT_FOUND, e.detail)
            raise
        return subnets

    def _fail(self, reason: str, message: str) -> None:
        """Set InvalidSubnets=True and persist it together with any staged change."""
        self.status.apply(
            ConditionType.INVALID_SUBNETS,
            ConditionStatus.TRUE,
            reason,
            message,
            UpdatePolicy.IF_REASON_OR_MESSAGE_CHANGE,
        )
        self.status.flush()
