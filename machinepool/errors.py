"""Errors raised while generating node groups for a machine pool."""

from typing import Iterable, Optional


class MachinePoolError(Exception):
    """Base class for machine pool generation errors."""


class ConfigurationError(MachinePoolError, ValueError):
    """The cluster or pool is missing required configuration."""


class SubnetNotFoundError(MachinePoolError):
    """EC2 reported that one or more requested subnets do not exist.

    ``message`` is the provider's human readable detail, when it could be
    extracted from the error envelope.
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail or message


class RouteTableNotFoundError(MachinePoolError):
    """No explicit or main route table applies to a subnet."""

    def __init__(self, subnet_id: str):
        self.subnet_id = subnet_id
        super().__init__(f"could not locate routing table for {subnet_id}")


class SubnetValidationError(MachinePoolError):
    """The requested subnets do not form a valid per-zone topology."""

    def __init__(
        self,
        message: str,
        reason: str,
        conflicting_subnets: Iterable[str] = (),
    ):
        super().__init__(message)
        self.reason = reason
        self.conflicting_subnets = sorted(set(conflicting_subnets))


class NoSubnetForZoneError(MachinePoolError):
    """A pool zone has no subnet in the resolved topology."""

    def __init__(self, zone: str):
        self.zone = zone
        super().__init__(f"no subnet for zone {zone}")
