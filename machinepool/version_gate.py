"""Feature gating on the cluster's semantic version."""

import logging
import re
from typing import Optional

import semver

from machinepool.models import MachinePool

logger = logging.getLogger(__name__)

NUMERIC_CORE = re.compile(r"^(\d+(?:\.\d+)*)(.*)$", re.DOTALL)

MIN_SPOT_INSTANCES_VERSION = semver.Version(4, 5, 0)
MIN_MANAGED_USER_DATA_VERSION = semver.Version(4, 10, 0)

WORKER_USER_DATA_SECRET = "worker-user-data"
WORKER_USER_DATA_MANAGED_SECRET = "worker-user-data-managed"


def parse_version(version: str) -> semver.Version:
    """Parse a cluster version tolerantly.

    Accepts surrounding whitespace, a leading "v", leading zeros in the numeric
    parts and missing minor/patch parts.
    Raises ValueError when the string is not a version.
    """
    cleaned = version.strip()
    if cleaned[:1] in ("v", "V"):
        cleaned = cleaned[1:]
    match = NUMERIC_CORE.match(cleaned)
    if match:
        core = ".".join(str(int(part)) for part in match.group(1).split("."))
        cleaned = core + match.group(2)
    return semver.Version.parse(cleaned, optional_minor_and_patch=True)


def release_version(version: str) -> Optional[semver.Version]:
    """Return major.minor.patch of ``version`` with pre-release and build dropped.

    Returns None when the version cannot be parsed.
    """
    try:
        parsed = parse_version(version)
    except (ValueError, TypeError):
        return None
    # Pre-releases of a release compare as that release.
    return semver.Version(parsed.major, parsed.minor, parsed.patch)


def is_using_unsupported_spot_market_options(pool: MachinePool, cluster_version: str) -> bool:
    """Return True when the pool requests spot instances the cluster cannot support."""
    aws = pool.spec.platform.aws
    if aws is None or aws.spot_market_options is None:
        return False
    version = release_version(cluster_version)
    if version is None:
        logger.warning("Could not parse the cluster version %r", cluster_version)
        return True
    return version < MIN_SPOT_INSTANCES_VERSION


def worker_user_data_secret(cluster_version: str) -> str:
    """Name of the secret holding worker user data for the cluster version.

    Clusters from 4.10 on have a managed user data secret. Unparsable versions
    are assumed to be current.
    """
    version = release_version(cluster_version)
    if version is None:
        logger.warning(
            "Could not parse the cluster version %r, using %s",
            cluster_version,
            WORKER_USER_DATA_MANAGED_SECRET,
        )
        return WORKER_USER_DATA_MANAGED_SECRET
    if version < MIN_MANAGED_USER_DATA_VERSION:
        return WORKER_USER_DATA_SECRET
    return WORKER_USER_DATA_MANAGED_SECRET
