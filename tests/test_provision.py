"""Tests for the best-effort provisioning workflow."""
import json
from unittest import mock

import pytest
from urllib3.exceptions import MaxRetryError

from pulp_bootstrap.provisioning.domains.config_loader import BootstrapSettings
from pulp_bootstrap.provisioning.domains.errors import SubmissionError
from pulp_bootstrap.provisioning.domains.k8s_client import KubernetesSubmissionClient
from pulp_bootstrap.provisioning.domains.models import (
    CacheConfig,
    ClowderConfig,
    DatabaseConfig,
    ObjectStoreBucket,
    ObjectStoreConfig,
    ResourceRecord,
)
from pulp_bootstrap.provisioning.workflows import provision as provision_module
from pulp_bootstrap.provisioning.workflows.provision import (
    STEP_CACHE_SECRET,
    STEP_DATABASE_SECRET,
    STEP_OBJECT_STORAGE_SECRET,
    STEP_PULP_RESOURCE,
    format_report,
    provision,
    render,
)


class FakeSubmissionClient:
    """Records submissions; fails for names listed in ``fail``."""

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.secrets = {}
        self.resources = []

    def create_secret(self, name, namespace, payload):
        if name in self.fail:
            raise SubmissionError(f"secret {name} exists", status=409, body='{"reason": "AlreadyExists"}')
        self.secrets[name] = (namespace, payload)
        return name

    def create_resource(self, api_group_version, namespace, plural, resource_name, body):
        if resource_name in self.fail:
            raise SubmissionError("no such kind", status=404, body="404 page not found")
        self.resources.append((api_group_version, namespace, plural, resource_name, body))
        return body


@pytest.fixture
def clowder():
    return ClowderConfig(
        database=DatabaseConfig(hostname="dbhost", port=5432, username="dbuser", password="dbpass", ssl_mode="disable"),
        in_memory_db=CacheConfig(hostname="example.redis.local", port=6379),
        object_store=ObjectStoreConfig(
            hostname="endpoint",
            port=9292,
            access_key="test",
            secret_key="test",
            buckets=(ObjectStoreBucket(name="pulp", requested_name="reqname"),),
        ),
    )


@pytest.fixture
def settings():
    return BootstrapSettings()


class TestProvision:
    """Test suite for provision."""

    def test_all_steps_succeed(self, clowder, settings):
        client = FakeSubmissionClient()

        report = provision(clowder, settings, client)

        assert report.succeeded
        assert [s.name for s in report.steps] == [
            STEP_DATABASE_SECRET, STEP_CACHE_SECRET, STEP_OBJECT_STORAGE_SECRET, STEP_PULP_RESOURCE,
        ]
        assert set(client.secrets) == {"external-database", "external-redis", "test-s3"}
        assert client.secrets["test-s3"][1].fields["bucket-name"] == "pulp"

    def test_resource_submitted_with_settings(self, clowder, settings):
        client = FakeSubmissionClient()

        report = provision(clowder, settings, client)

        api_group_version, namespace, plural, name, body = client.resources[0]
        assert api_group_version == "repo-manager.pulpproject.org/v1alpha1"
        assert (namespace, plural, name) == ("pulp", "pulps", "example-pulp")
        assert body["spec"]["pulp_settings"] == {"aws_s3_endpoint_url": "http://endpoint"}
        assert body["spec"]["database"]["external_db_secret"] == "external-database"
        assert json.loads(report.steps[-1].response_body) == body
        assert [s.response_body for s in report.steps[:3]] == [None, None, None]

    def test_unencodable_resource_fails_only_resource_step(self, clowder, settings, monkeypatch):
        broken = ResourceRecord(
            name="example-pulp",
            namespace="pulp",
            database_secret="external-database",
            cache_secret="external-redis",
            object_storage_secret="test-s3",
            settings_blob=b"{not json",
        )
        monkeypatch.setattr(provision_module, "assemble_resource", lambda **kwargs: broken)
        client = FakeSubmissionClient()

        report = provision(clowder, settings, client)

        assert [s.name for s in report.failures] == [STEP_PULP_RESOURCE]
        assert "not valid JSON" in report.failures[0].error
        assert client.resources == []

    def test_unreachable_api_server_reports_every_step(self, clowder, settings):
        client = KubernetesSubmissionClient(api_client=mock.Mock())
        client._core_v1 = mock.Mock()
        client._core_v1.create_namespaced_secret.side_effect = MaxRetryError(pool=None, url="/api/v1")
        client._custom_objects = mock.Mock()
        client._custom_objects.create_namespaced_custom_object.side_effect = MaxRetryError(pool=None, url="/apis")

        report = provision(clowder, settings, client)

        assert len(report.steps) == 4
        assert [s.name for s in report.failures] == [
            STEP_DATABASE_SECRET, STEP_CACHE_SECRET, STEP_OBJECT_STORAGE_SECRET, STEP_PULP_RESOURCE,
        ]
        assert all("reach API server" in s.error for s in report.failures)

    def test_failed_step_does_not_stop_later_steps(self, clowder, settings):
        client = FakeSubmissionClient(fail={"external-database"})

        report = provision(clowder, settings, client)

        assert not report.succeeded
        assert [s.name for s in report.failures] == [STEP_DATABASE_SECRET]
        assert set(client.secrets) == {"external-redis", "test-s3"}
        assert len(client.resources) == 1
        assert report.failures[0].response_body == '{"reason": "AlreadyExists"}'

    def test_empty_bucket_list_fails_only_s3_step(self, clowder, settings):
        object_store = ObjectStoreConfig(hostname="endpoint", port=9292)
        clowder = ClowderConfig(database=clowder.database, in_memory_db=clowder.in_memory_db, object_store=object_store)
        client = FakeSubmissionClient()

        report = provision(clowder, settings, client)

        assert [s.name for s in report.failures] == [STEP_OBJECT_STORAGE_SECRET]
        assert "test-s3" not in client.secrets
        assert len(client.resources) == 1

    def test_missing_descriptor_is_reported(self, settings):
        client = FakeSubmissionClient()

        report = provision(ClowderConfig(), settings, client)

        assert len(report.failures) == 4
        assert "database" in report.failures[0].error
        assert client.secrets == {}
        assert client.resources == []

    def test_resource_failure_reported_with_body(self, clowder, settings):
        client = FakeSubmissionClient(fail={"example-pulp"})

        report = provision(clowder, settings, client)

        assert [s.name for s in report.failures] == [STEP_PULP_RESOURCE]
        assert report.failures[0].response_body == "404 page not found"


class TestRender:
    """Test suite for the dry-run render."""

    def test_renders_secrets_and_resource(self, clowder, settings):
        manifests, report = render(clowder, settings)

        assert report.succeeded
        assert [m["kind"] for m in manifests] == ["Secret", "Secret", "Secret", "Pulp"]
        assert manifests[1]["stringData"] == {
            "REDIS_HOST": "example.redis.local",
            "REDIS_PORT": "6379",
            "REDIS_PASSWORD": "",
            "REDIS_DB": "",
        }
        assert manifests[2]["stringData"] == {
            "s3-access-key-id": "test",
            "s3-secret-access-key": "test",
            "s3-bucket-name": "pulp",
            "s3-region": "us-east-1",
        }


class TestFormatReport:
    """Test suite for format_report."""

    def test_lists_each_step_and_failure_body(self, clowder, settings):
        report = provision(clowder, settings, FakeSubmissionClient(fail={"external-redis"}))

        text = format_report(report)

        assert "[ok] database-secret: pulp/external-database" in text
        assert "[FAILED] cache-secret: pulp/external-redis" in text
        assert '"reason": "AlreadyExists"' in text
