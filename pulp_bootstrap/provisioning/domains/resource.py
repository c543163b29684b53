"""Assemble the sample Pulp custom resource."""
import json
from typing import Optional

from .models import ProvisioningDefaults, ResourceRecord

ENDPOINT_SETTING = "aws_s3_endpoint_url"


def build_settings_blob(hostname: str, scheme: str = "http") -> bytes:
    """
    Build the ``pulp_settings`` blob pointing Pulp at the object store.

    The hostname goes through the JSON encoder, so quotes and backslashes
    are escaped rather than breaking the document.
    """
    settings = {ENDPOINT_SETTING: f"{scheme}://{hostname}"}
    return json.dumps(settings).encode("utf-8")


def assemble_resource(
    name: str,
    namespace: str,
    database_secret: str,
    cache_secret: str,
    object_storage_secret: str,
    object_store_hostname: str,
    tls: bool = False,
    defaults: Optional[ProvisioningDefaults] = None,
) -> ResourceRecord:
    """
    Build a Pulp resource that references the three secrets by name.

    Args:
        name: Custom resource name
        namespace: Namespace the resource and secrets live in
        database_secret: Name of the external database secret
        cache_secret: Name of the external cache secret
        object_storage_secret: Name of the S3 secret
        object_store_hostname: Host used for ``aws_s3_endpoint_url``
        tls: Use https for the endpoint when the object store serves TLS
        defaults: Overrides for the built-in defaults

    Returns:
        ResourceRecord ready for submission
    """
    defaults = defaults or ProvisioningDefaults()
    scheme = "https" if tls else defaults.endpoint_scheme
    return ResourceRecord(
        name=name,
        namespace=namespace,
        database_secret=database_secret,
        cache_secret=cache_secret,
        object_storage_secret=object_storage_secret,
        settings_blob=build_settings_blob(object_store_hostname, scheme),
    )
