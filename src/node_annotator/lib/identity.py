"""
identity.py
- Resolves a node's provider URI (spec.providerID) to its GCE numeric instance id.
- Provider URIs look like gce://<project>/<zone>/<instance-name>.
"""

from urllib.parse import urlsplit

from node_annotator.core.constants import GCE_SCHEME


class IdentityError(Exception):
    """Base class for failures resolving a node's instance identity."""


class ProviderIDError(IdentityError, ValueError):
    """The provider URI does not follow the gce://project/zone/name layout."""


class InstanceLookupError(IdentityError):
    """The inventory lookup for a parsed provider URI failed."""


def parse_provider_id(provider_id):
    """
    Split a provider URI into its project, zone and instance name.

    Args:
        provider_id (str): e.g. gce://proj-1/us-central1-a/vm-7

    Returns:
        tuple[str, str, str]: (project, zone, instance)

    Raises:
        ProviderIDError: if the scheme is not gce or the path is not /zone/name.
    """
    try:
        url = urlsplit(provider_id or "")
    except ValueError as e:
        raise ProviderIDError(f"failed to parse {provider_id!r}: {e}") from e

    if url.scheme != GCE_SCHEME:
        raise ProviderIDError(f"instance {provider_id!r} doesn't run on gce")

    project = url.netloc.rpartition("@")[2]
    parts = url.path.split("/")
    if len(parts) != 3:
        raise ProviderIDError(f"failed to parse {provider_id!r}: expected a three part path")
    if parts[0]:
        raise ProviderIDError(f"failed to parse {provider_id!r}: part one of path to have length 0")

    return project, parts[1], parts[2]


def resolve_instance_id(provider_id, get_instance):
    """
    Look up the numeric instance id for a provider URI.

    Args:
        provider_id (str): The node's provider URI.
        get_instance (callable): get_instance(project, zone, name) returning a
            record with an integer ``id`` attribute.

    Returns:
        str: The instance id in decimal form, as stored in the annotation.
    """
    project, zone, name = parse_provider_id(provider_id)

    try:
        instance = get_instance(project, zone, name)
    except Exception as e:
        raise InstanceLookupError(f"unable to query gcp apis: {e}") from e

    return str(int(instance.id))
