"""Kubernetes client wrapper used to submit secrets and the Pulp resource."""
import logging
from typing import Any, Dict, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from .errors import SubmissionError
from .models import SecretPayload

logger = logging.getLogger(__name__)


def secret_manifest(name: str, namespace: str, payload: SecretPayload) -> Dict[str, Any]:
    """Build an Opaque Secret document carrying the payload as ``stringData``."""
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": name, "namespace": namespace},
        "type": "Opaque",
        "stringData": payload.string_data(),
    }


class KubernetesSubmissionClient:
    """Wrapper around the core/v1 and custom objects APIs."""

    def __init__(self, context: Optional[str] = None, api_client: Optional[client.ApiClient] = None):
        self.context = context
        self._api_client = api_client
        self._core_v1 = None
        self._custom_objects = None

    def _load_configuration(self) -> None:
        """
        Load cluster credentials, preferring in-cluster service account config.

        Falls back to the local kubeconfig (optionally a named context) the
        same way a controller started outside the cluster would.

        Raises:
            SubmissionError: If neither configuration source is usable
        """
        if self.context is None:
            try:
                config.load_incluster_config()
                logger.info("Loaded in-cluster Kubernetes configuration")
                return
            except ConfigException:
                logger.debug("In-cluster configuration unavailable, trying kubeconfig")

        try:
            config.load_kube_config(context=self.context)
        except (ConfigException, OSError) as e:
            raise SubmissionError(f"Failed to load Kubernetes configuration: {e}")
        logger.info(f"Loaded local Kubernetes configuration (context: {self.context or 'current'})")

    @property
    def api_client(self) -> client.ApiClient:
        """Lazy-initialize the shared API client."""
        if self._api_client is None:
            self._load_configuration()
            self._api_client = client.ApiClient()
        return self._api_client

    @property
    def core_v1(self) -> client.CoreV1Api:
        if self._core_v1 is None:
            self._core_v1 = client.CoreV1Api(self.api_client)
        return self._core_v1

    @property
    def custom_objects(self) -> client.CustomObjectsApi:
        if self._custom_objects is None:
            self._custom_objects = client.CustomObjectsApi(self.api_client)
        return self._custom_objects

    def create_secret(self, name: str, namespace: str, payload: SecretPayload) -> Any:
        """
        Create an Opaque secret holding the payload as ``stringData``.

        Args:
            name: Secret name
            namespace: Target namespace
            payload: Translated credentials

        Returns:
            The created V1Secret

        Raises:
            SubmissionError: If the API server rejects the request or cannot be reached
        """
        body = secret_manifest(name, namespace, payload)
        try:
            secret = self.core_v1.create_namespaced_secret(namespace=namespace, body=body)
        except ApiException as e:
            raise SubmissionError(
                f"Failed to create secret '{name}' in namespace '{namespace}': {e.status} {e.reason}",
                status=e.status,
                body=e.body,
            )
        except (HTTPError, OSError) as e:
            raise SubmissionError(f"Failed to reach API server creating secret '{name}' in namespace '{namespace}': {e}")
        logger.info(f"Created {payload.kind} secret '{name}' in namespace '{namespace}'")
        return secret

    def create_resource(
        self,
        api_group_version: str,
        namespace: str,
        plural: str,
        resource_name: str,
        body: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Create a namespaced custom resource.

        Args:
            api_group_version: ``group/version`` of the resource
            namespace: Target namespace
            plural: Plural resource name, e.g. ``pulps``
            resource_name: Name of the resource, used for logging and errors
            body: Resource document

        Returns:
            Response body returned by the API server

        Raises:
            SubmissionError: If the group/version is malformed, or the API server rejects the request or cannot be reached
        """
        group, sep, version = api_group_version.partition("/")
        if not sep or not group or not version:
            raise SubmissionError(f"Invalid API group/version: '{api_group_version}'")

        try:
            response = self.custom_objects.create_namespaced_custom_object(
                group=group,
                version=version,
                namespace=namespace,
                plural=plural,
                body=body,
            )
        except ApiException as e:
            raise SubmissionError(
                f"Failed to create {plural} '{resource_name}' in namespace '{namespace}': {e.status} {e.reason}",
                status=e.status,
                body=e.body,
            )
        except (HTTPError, OSError) as e:
            raise SubmissionError(
                f"Failed to reach API server creating {plural} '{resource_name}' in namespace '{namespace}': {e}"
            )
        logger.info(f"Created {plural} '{resource_name}' in namespace '{namespace}'")
        return response
