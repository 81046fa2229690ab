"""
gce_client.py
- Provides the shared Compute Engine InstancesClient used for inventory lookups.
- Transient Google API errors are retried a few times before surfacing.
"""

from google.api_core import exceptions as google_exceptions
from google.cloud import compute_v1
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from node_annotator.core.constants import LOOKUP_ATTEMPTS

TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.TooManyRequests,
    google_exceptions.InternalServerError,
)

_compute_client = None


def get_compute_client():
    global _compute_client
    if _compute_client is None:
        _compute_client = compute_v1.InstancesClient()
    return _compute_client


@retry(
    reraise=True,
    stop=stop_after_attempt(LOOKUP_ATTEMPTS),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
    retry=retry_if_exception_type(TRANSIENT_ERRORS),
)
def get_instance(project, zone, name):
    """
    Fetch a single instance record from the Compute Engine API.

    Args:
        project (str): GCP project id
        zone (str): Zone, e.g. us-central1-a
        name (str): Instance name

    Returns:
        compute_v1.Instance: The instance; its ``id`` is the numeric identity.
    """
    logger.debug(f"[gce_client] Looking up instance {project}/{zone}/{name}")
    return get_compute_client().get(project=project, zone=zone, instance=name)
