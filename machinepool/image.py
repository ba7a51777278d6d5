"""Recovers the AMI used for new workers."""

import logging
from typing import Optional

from machinepool.errors import ConfigurationError
from machinepool.models import IMAGE_ID_OVERRIDE_ANNOTATION, MachinePool, MasterMachine

logger = logging.getLogger(__name__)

AWS_PROVIDER_CONFIG_KIND = "AWSMachineProviderConfig"
AWS_PROVIDER_API_GROUPS = (
    "awsproviderconfig.openshift.io",
    "machine.openshift.io",
)


def decode_aws_provider_spec(provider_spec: Optional[dict]) -> dict:
    """Validate that a raw provider spec is an AWS machine provider config."""
    if provider_spec is None:
        raise ConfigurationError("Machine has no ProviderSpec")
    kind = provider_spec.get("kind")
    api_version = provider_spec.get("apiVersion", "")
    if kind != AWS_PROVIDER_CONFIG_KIND or api_version.split("/")[0] not in AWS_PROVIDER_API_GROUPS:
        raise ConfigurationError(
            f"could not decode AWS ProviderConfig: unexpected object {api_version}, Kind={kind}"
        )
    return provider_spec


def resolve_base_image(pool: MachinePool, master_machine: Optional[MasterMachine]) -> str:
    """Return the AMI ID for the pool.

    The pool's image override annotation wins; otherwise the AMI of an existing
    master machine is reused.
    """
    override = pool.annotations.get(IMAGE_ID_OVERRIDE_ANNOTATION, "")
    if override:
        logger.info(
            "Using AMI override from %s annotation: %s", IMAGE_ID_OVERRIDE_ANNOTATION, override
        )
        return override

    if master_machine is None:
        raise ConfigurationError("no master machine available to resolve the AMI from")

    try:
        spec = decode_aws_provider_spec(master_machine.provider_spec)
    except ConfigurationError as e:
        logger.warning(
            "Cannot decode AWSMachineProviderConfig from master machine %s: %s",
            master_machine.name,
            e,
        )
        raise ConfigurationError(
            f"cannot decode AWSMachineProviderConfig from master machine: {e}"
        ) from e

    ami_id = (spec.get("ami") or {}).get("id")
    if not ami_id:
        logger.warning("Master machine %s does not have AMI ID set", master_machine.name)
        raise ConfigurationError("master machine does not have AMI ID set")

    logger.debug("Resolved AMI %s to use for new node groups", ami_id)
    return ami_id
