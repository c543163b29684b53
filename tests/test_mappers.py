"""Tests for translating Clowder descriptors into Pulp operator secret payloads."""
import pytest

from pulp_bootstrap.provisioning.domains.errors import PreconditionError
from pulp_bootstrap.provisioning.domains.mappers import (
    map_cache_config,
    map_database_config,
    map_object_store_config,
    select_bucket,
)
from pulp_bootstrap.provisioning.domains.models import (
    CacheConfig,
    DatabaseConfig,
    ObjectStoreBucket,
    ObjectStoreConfig,
    ProvisioningDefaults,
)


@pytest.fixture
def database_config():
    return DatabaseConfig(
        hostname="dbhost",
        port=5432,
        username="dbuser",
        password="dbpass",
        admin_username="user",
        admin_password="pass",
        ssl_mode="disable",
        name="dbname",
    )


@pytest.fixture
def object_store_config():
    return ObjectStoreConfig(
        hostname="endpoint",
        port=9292,
        access_key="test",
        secret_key="test",
        tls=False,
        buckets=(
            ObjectStoreBucket(
                name="pulp",
                requested_name="reqname",
                access_key="test",
                secret_key="test",
            ),
        ),
    )


class TestDatabaseMapper:
    """Test suite for the external database secret."""

    def test_maps_all_fields(self, database_config):
        payload = map_database_config(database_config)

        assert payload.fields == {
            "host": "dbhost",
            "port": "5432",
            "username": "dbuser",
            "password": "dbpass",
            "db-name": "pulp",
            "ssl-mode": "disable",
        }

    def test_db_name_ignores_clowder_name(self, database_config):
        """The database name is fixed, not the one Clowder reports."""
        payload = map_database_config(database_config)
        assert payload.fields["db-name"] != database_config.name

    def test_db_name_comes_from_defaults(self, database_config):
        payload = map_database_config(database_config, ProvisioningDefaults(database_name="content"))
        assert payload.fields["db-name"] == "content"

    @pytest.mark.parametrize("port", [0, 5432, 65535])
    def test_port_rendered_as_decimal(self, port):
        payload = map_database_config(DatabaseConfig(hostname="db", port=port))
        assert payload.fields["port"] == str(port)

    def test_missing_fields_pass_through_empty(self):
        payload = map_database_config(DatabaseConfig(hostname="", port=5432))

        assert payload.fields["host"] == ""
        assert payload.fields["username"] == ""
        assert payload.fields["password"] == ""
        assert payload.fields["ssl-mode"] == ""

    def test_string_data_uses_postgres_keys(self, database_config):
        data = map_database_config(database_config).string_data()

        assert data == {
            "POSTGRES_HOST": "dbhost",
            "POSTGRES_PORT": "5432",
            "POSTGRES_USERNAME": "dbuser",
            "POSTGRES_PASSWORD": "dbpass",
            "POSTGRES_DB_NAME": "pulp",
            "POSTGRES_SSLMODE": "disable",
        }


class TestCacheMapper:
    """Test suite for the external cache secret."""

    def test_no_password(self):
        payload = map_cache_config(CacheConfig(hostname="example.redis.local", port=6379))

        assert payload.fields == {
            "host": "example.redis.local",
            "port": "6379",
            "password": "",
            "db-index": "",
        }

    def test_with_password(self):
        payload = map_cache_config(CacheConfig(hostname="redis", port=6379, password="s3cret"))
        assert payload.fields["password"] == "s3cret"

    def test_empty_password_is_kept(self):
        payload = map_cache_config(CacheConfig(hostname="redis", port=6379, password=""))
        assert payload.fields["password"] == ""

    def test_db_index_always_empty_by_default(self):
        payload = map_cache_config(CacheConfig(hostname="redis", port=6379, password="x", username="u"))
        assert payload.fields["db-index"] == ""

    def test_string_data_uses_redis_keys(self):
        data = map_cache_config(CacheConfig(hostname="redis", port=6380)).string_data()

        assert data == {
            "REDIS_HOST": "redis",
            "REDIS_PORT": "6380",
            "REDIS_PASSWORD": "",
            "REDIS_DB": "",
        }


class TestObjectStoreMapper:
    """Test suite for the S3 secret."""

    def test_sample_object_store(self, object_store_config):
        payload = map_object_store_config(object_store_config)

        assert payload.fields == {
            "access-key-id": "test",
            "secret-access-key": "test",
            "bucket-name": "pulp",
            "region": "us-east-1",
        }

    def test_missing_keys_default_to_empty(self):
        config = ObjectStoreConfig(hostname="minio", port=9000, buckets=(ObjectStoreBucket(name="pulp"),))
        payload = map_object_store_config(config)

        assert payload.fields["access-key-id"] == ""
        assert payload.fields["secret-access-key"] == ""

    def test_empty_bucket_list_raises(self):
        config = ObjectStoreConfig(hostname="minio", port=9000, access_key="a", secret_key="b")

        with pytest.raises(PreconditionError) as exc_info:
            map_object_store_config(config)

        assert "no buckets" in str(exc_info.value)

    def test_only_first_bucket_used(self):
        config = ObjectStoreConfig(
            hostname="minio",
            port=9000,
            buckets=(ObjectStoreBucket(name="first"), ObjectStoreBucket(name="second", region="eu-west-1")),
        )
        payload = map_object_store_config(config)

        assert payload.fields["bucket-name"] == "first"
        assert payload.fields["region"] == "us-east-1"

    def test_bucket_name_is_actual_name(self, object_store_config):
        payload = map_object_store_config(object_store_config)
        assert payload.fields["bucket-name"] != "reqname"

    def test_region_override_replaces_region_not_secret_key(self):
        config = ObjectStoreConfig(
            hostname="minio",
            port=9000,
            access_key="key",
            secret_key="secret",
            buckets=(ObjectStoreBucket(name="pulp", region="eu-central-1"),),
        )
        payload = map_object_store_config(config)

        assert payload.fields["region"] == "eu-central-1"
        assert payload.fields["secret-access-key"] == "secret"

    def test_region_fallback_from_defaults(self, object_store_config):
        payload = map_object_store_config(object_store_config, ProvisioningDefaults(region="ap-south-1"))
        assert payload.fields["region"] == "ap-south-1"

    def test_string_data_uses_s3_keys(self, object_store_config):
        data = map_object_store_config(object_store_config).string_data()

        assert data == {
            "s3-access-key-id": "test",
            "s3-secret-access-key": "test",
            "s3-bucket-name": "pulp",
            "s3-region": "us-east-1",
        }

    def test_select_bucket_returns_first(self, object_store_config):
        assert select_bucket(object_store_config).name == "pulp"
