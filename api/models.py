from typing import Optional

from pydantic import BaseModel, Field

from machinepool.models import (
    ClusterDeployment,
    Condition,
    MachinePool,
    MasterMachine,
    NodeGroupDefinition,
)


class GenerateNodeGroupsRequest(BaseModel):
    """Request to generate the node groups of a machine pool."""

    cluster_deployment: ClusterDeployment
    machine_pool: MachinePool
    master_machine: Optional[MasterMachine] = Field(
        default=None,
        description="Existing master machine to reuse the AMI from "
        "(not needed when the pool carries an image override annotation)",
    )


class GenerateNodeGroupsResponse(BaseModel):
    """Generated node groups and the resulting pool conditions."""

    pool_key: str
    node_groups: list[NodeGroupDefinition]
    proceed: bool = Field(description="Whether the node groups should be applied")
    conditions: list[Condition]


class PoolConditionsResponse(BaseModel):
    pool_key: str
    conditions: list[Condition]


class ErrorResponse(BaseModel):
    """Error details for a failed generation."""

    error: str
    message: str
    conditions: list[Condition] = Field(default_factory=list)
