import logging
import re
from typing import Optional

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from machinepool.errors import SubnetNotFoundError
from machinepool.models import AvailabilityZone, RouteTable, Subnet

logger = logging.getLogger(__name__)

# Envelope around the detail of a subnet-not-found error, e.g.
# "InvalidSubnetID.NotFound: The subnet ID 'subnet-1' does not exist\tstatus code: 400, request id: ..."
SUBNET_NOT_FOUND_ENVELOPE = re.compile(r"^InvalidSubnetID\.NotFound:\s+([^\t]+)\t")


def subnet_not_found_message(error_text: str) -> str:
    """Strip the provider envelope from a subnet-not-found message, if present."""
    match = SUBNET_NOT_FOUND_ENVELOPE.search(error_text)
    if match:
        return match.group(1)
    return error_text


def as_subnet_not_found(error: ClientError) -> Optional[SubnetNotFoundError]:
    """Translate an EC2 error into SubnetNotFoundError, or None for any other error.

    EC2 has no typed error for this; the error code and text are matched instead.
    """
    details = error.response.get("Error", {})
    code = details.get("Code", "")
    if "InvalidSubnet" not in code and "InvalidSubnet" not in str(error):
        return None
    message = details.get("Message") or str(error)
    return SubnetNotFoundError(str(error), detail=subnet_not_found_message(message))


class Ec2DiscoveryClient:
    """Read-only EC2 queries used to resolve machine pool topology."""

    def __init__(
        self,
        region: str,
        role_arn: str = "",
        external_id: str = "",
        client=None,
    ):
        self.region = region
        self.role_arn = role_arn
        self.external_id = external_id
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self):
        """Get boto3 EC2 client, assuming the configured role if any (uses default credential chain)."""
        if not self.role_arn:
            return boto3.client("ec2", region_name=self.region)

        try:
            sts = boto3.client("sts", region_name=self.region)
            assumed = sts.assume_role(
                RoleArn=self.role_arn,
                ExternalId=self.external_id,
                RoleSessionName="machinepool-discovery",
                DurationSeconds=900,
            )
        except NoCredentialsError as e:
            raise ValueError(
                f"Failed to locate AWS credentials: {e}. "
                "Use env vars, IAM role (EC2/IRSA), or other default provider chain."
            ) from e
        except ClientError as e:
            raise ValueError(f"Failed to assume role {self.role_arn}: {e}") from e

        creds = assumed["Credentials"]
        return boto3.client(
            "ec2",
            region_name=self.region,
            aws_access_key_id=creds["AccessKeyId"],
            aws_secret_access_key=creds["SecretAccessKey"],
            aws_session_token=creds["SessionToken"],
        )

    def describe_availability_zones(self, region: str) -> list[AvailabilityZone]:
        response = self.client.describe_availability_zones(
            Filters=[{"Name": "region-name", "Values": [region]}]
        )
        return [AvailabilityZone.model_validate(z) for z in response.get("AvailabilityZones", [])]

    def describe_subnets(self, subnet_ids: list[str]) -> list[Subnet]:
        """Describe subnets by ID, raising SubnetNotFoundError for unknown IDs."""
        try:
            response = self.client.describe_subnets(SubnetIds=subnet_ids)
        except ClientError as e:
            not_found = as_subnet_not_found(e)
            if not_found is not None:
                logger.warning("Subnets %s not found: %s", subnet_ids, not_found.detail)
                raise not_found from e
            raise
        return [Subnet.model_validate(s) for s in response.get("Subnets", [])]

    def describe_route_tables(self, vpc_id: str) -> list[RouteTable]:
        paginator = self.client.get_paginator("describe_route_tables")
        route_tables: list[RouteTable] = []
        for page in paginator.paginate(Filters=[{"Name": "vpc-id", "Values": [vpc_id]}]):
            route_tables.extend(RouteTable.model_validate(rt) for rt in page.get("RouteTables", []))
        return route_tables
