"""Machine pool node group generation endpoints."""

import asyncio
import logging
from typing import Callable, Union

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from api.models import (
    ErrorResponse,
    GenerateNodeGroupsRequest,
    GenerateNodeGroupsResponse,
    PoolConditionsResponse,
)
from api.services.ec2_client import Ec2DiscoveryClient
from api.settings import settings
from api.status_storage import StatusStorageBackend, get_status_storage
from machinepool.errors import ConfigurationError, MachinePoolError
from machinepool.reconciler import PoolReconciler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/machinepools", tags=["machine pools"])


def get_ec2_client_factory() -> Callable[[str], Ec2DiscoveryClient]:
    """Return a factory building an EC2 discovery client for a region."""

    def factory(region: str) -> Ec2DiscoveryClient:
        return Ec2DiscoveryClient(
            region=region,
            role_arn=settings.aws_role_arn,
            external_id=settings.aws_external_id,
        )

    return factory


def _error_response(status_code: int, error: str, e: Exception, conditions) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error, message=str(e), conditions=conditions
        ).model_dump(mode="json"),
    )


@router.post(
    "/generate",
    response_model=GenerateNodeGroupsResponse,
    summary="Generate node groups for a machine pool",
    description="Resolve the pool's subnets and zones against live EC2 state and return "
    "one node group per availability zone.",
    responses={
        400: {"description": "Cluster or pool configuration is incomplete"},
        422: {"model": ErrorResponse, "description": "Subnets are invalid"},
        502: {"model": ErrorResponse, "description": "EC2 request failed"},
    },
)
async def generate_node_groups(
    request: GenerateNodeGroupsRequest,
    storage: StatusStorageBackend = Depends(get_status_storage),
    ec2_client_factory: Callable[[str], Ec2DiscoveryClient] = Depends(get_ec2_client_factory),
) -> Union[GenerateNodeGroupsResponse, JSONResponse]:
    """Generate the node groups of a machine pool."""
    cd = request.cluster_deployment
    pool = request.machine_pool

    # Stored status is authoritative for conditions of pools seen before.
    stored = storage.get(pool.key)
    if stored is not None:
        pool.status.conditions = stored

    if cd.platform.aws is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="ClusterDeployment is not for AWS",
        )

    try:
        reconciler = PoolReconciler.for_pool(
            ec2_client_factory(cd.platform.aws.region),
            storage,
            pool,
            request.master_machine,
            naming=settings.naming_policy(),
        )
        node_groups, proceed = await asyncio.to_thread(
            reconciler.generate_node_groups, cd, pool
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except MachinePoolError as e:
        logger.info("Machine pool %s has invalid subnets: %s", pool.key, e)
        return _error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "invalid_subnets", e, pool.status.conditions
        )
    except ClientError as e:
        logger.exception("EC2 request failed for machine pool %s", pool.key)
        return _error_response(
            status.HTTP_502_BAD_GATEWAY, "ec2_error", e, pool.status.conditions
        )

    return GenerateNodeGroupsResponse(
        pool_key=pool.key,
        node_groups=node_groups,
        proceed=proceed,
        conditions=pool.status.conditions,
    )


@router.get(
    "/{namespace}/{name}/conditions",
    response_model=PoolConditionsResponse,
    summary="Get machine pool conditions",
    description="Retrieve the persisted status conditions of a machine pool.",
)
async def get_pool_conditions(
    namespace: str,
    name: str,
    storage: StatusStorageBackend = Depends(get_status_storage),
) -> PoolConditionsResponse:
    """Get the persisted conditions of a machine pool."""
    pool_key = f"{namespace}/{name}"
    conditions = storage.get(pool_key)
    if conditions is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No status recorded for machine pool '{pool_key}'",
        )
    return PoolConditionsResponse(pool_key=pool_key, conditions=conditions)
