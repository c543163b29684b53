"""Workflow that provisions the Pulp secrets and sample resource, best effort."""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..domains.config_loader import BootstrapSettings
from ..domains.errors import BootstrapError, PreconditionError
from ..domains.k8s_client import secret_manifest
from ..domains.mappers import map_cache_config, map_database_config, map_object_store_config
from ..domains.models import PULP_API_GROUP_VERSION, PULP_PLURAL, ClowderConfig, SecretPayload
from ..domains.resource import assemble_resource

logger = logging.getLogger(__name__)

STEP_DATABASE_SECRET = "database-secret"
STEP_CACHE_SECRET = "cache-secret"
STEP_OBJECT_STORAGE_SECRET = "object-storage-secret"
STEP_PULP_RESOURCE = "pulp-resource"


@dataclass
class StepResult:
    """Outcome of one provisioning step."""
    name: str
    target: str
    succeeded: bool
    error: Optional[str] = None
    response_body: Optional[str] = None


@dataclass
class ProvisioningReport:
    """Per-step outcomes of a provisioning run. Nothing is rolled back."""
    namespace: str
    steps: List[StepResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(step.succeeded for step in self.steps)

    @property
    def failures(self) -> List[StepResult]:
        return [step for step in self.steps if not step.succeeded]


class ManifestRecorder:
    """Submission client stand-in that records manifests instead of sending them."""

    def __init__(self):
        self.manifests: List[Dict[str, Any]] = []

    def create_secret(self, name: str, namespace: str, payload: SecretPayload) -> Dict[str, Any]:
        manifest = secret_manifest(name, namespace, payload)
        self.manifests.append(manifest)
        return manifest

    def create_resource(self, api_group_version: str, namespace: str, plural: str,
                        resource_name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        self.manifests.append(body)
        return body


def _require(descriptor: Any, section: str) -> Any:
    if descriptor is None:
        raise PreconditionError(f"Clowder config has no '{section}' descriptor")
    return descriptor


def _secret_step(client: Any, name: str, namespace: str,
                 build_payload: Callable[[], SecretPayload]) -> Callable[[], None]:
    # Created secrets echo credentials back, so their response is not recorded.
    def action() -> None:
        client.create_secret(name, namespace, build_payload())
    return action


def _run_step(report: ProvisioningReport, name: str, target: str,
              action: Callable[[], Optional[str]]) -> None:
    try:
        response_body = action()
    except BootstrapError as e:
        body = getattr(e, "body", None)
        logger.error(f"Step '{name}' failed for '{target}': {e}")
        if body:
            logger.debug(f"Response body: {body}")
        report.steps.append(StepResult(name=name, target=target, succeeded=False, error=str(e), response_body=body))
        return
    report.steps.append(StepResult(name=name, target=target, succeeded=True, response_body=response_body))


def provision(clowder: ClowderConfig, settings: BootstrapSettings, client: Any) -> ProvisioningReport:
    """
    Create the three dependency secrets and the sample Pulp resource.

    Args:
        clowder: Dependency descriptors from the Clowder config
        settings: Namespace, object names and defaults
        client: Anything with ``create_secret`` and ``create_resource``, normally
            a KubernetesSubmissionClient or a ManifestRecorder

    Returns:
        ProvisioningReport with one entry per step, in execution order

    Behavior:
        - Steps run in order: database secret, cache secret, S3 secret, Pulp resource
        - A failed step is logged and recorded; the next step still runs
        - The resource only references secrets by name, so it is submitted
          even when secret steps failed
        - Single attempt per call, no retries and no rollback
    """
    namespace = settings.namespace
    defaults = settings.defaults
    report = ProvisioningReport(namespace=namespace)

    _run_step(
        report, STEP_DATABASE_SECRET, settings.database_secret,
        _secret_step(
            client, settings.database_secret, namespace,
            lambda: map_database_config(_require(clowder.database, "database"), defaults),
        ),
    )
    _run_step(
        report, STEP_CACHE_SECRET, settings.cache_secret,
        _secret_step(
            client, settings.cache_secret, namespace,
            lambda: map_cache_config(_require(clowder.in_memory_db, "inMemoryDb"), defaults),
        ),
    )
    _run_step(
        report, STEP_OBJECT_STORAGE_SECRET, settings.object_storage_secret,
        _secret_step(
            client, settings.object_storage_secret, namespace,
            lambda: map_object_store_config(_require(clowder.object_store, "objectStore"), defaults),
        ),
    )

    def submit_resource() -> Optional[str]:
        object_store = _require(clowder.object_store, "objectStore")
        record = assemble_resource(
            name=settings.resource_name,
            namespace=namespace,
            database_secret=settings.database_secret,
            cache_secret=settings.cache_secret,
            object_storage_secret=settings.object_storage_secret,
            object_store_hostname=object_store.hostname,
            tls=object_store.tls,
            defaults=defaults,
        )
        body = json.loads(record.serialize())
        response = client.create_resource(PULP_API_GROUP_VERSION, namespace, PULP_PLURAL, record.name, body)
        return json.dumps(response) if isinstance(response, dict) else None

    _run_step(report, STEP_PULP_RESOURCE, settings.resource_name, submit_resource)

    if report.succeeded:
        logger.info(f"Provisioned {len(report.steps)} objects in namespace '{namespace}'")
    else:
        logger.warning(f"{len(report.failures)} of {len(report.steps)} provisioning steps failed")
    return report


def render(clowder: ClowderConfig, settings: BootstrapSettings) -> Tuple[List[Dict[str, Any]], ProvisioningReport]:
    """
    Dry run: build every manifest ``provision`` would submit.

    Returns:
        Tuple of (manifests that could be built, report of the run)
    """
    recorder = ManifestRecorder()
    report = provision(clowder, settings, recorder)
    return recorder.manifests, report


def format_report(report: ProvisioningReport) -> str:
    """Human readable summary, one line per step plus failure details."""
    lines = []
    for step in report.steps:
        status = "ok" if step.succeeded else "FAILED"
        lines.append(f"[{status}] {step.name}: {report.namespace}/{step.target}")
        if step.error:
            lines.append(f"    err: {step.error}")
        if step.response_body and not step.succeeded:
            try:
                body = json.dumps(json.loads(step.response_body), indent=2)
            except (TypeError, ValueError):
                body = step.response_body
            lines.append(f"    body: {body}")
    return "\n".join(lines)
