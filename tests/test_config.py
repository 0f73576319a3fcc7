"""Unit tests for hazelcast_ecs.config module."""

import os
import tempfile

import pytest

from hazelcast_ecs.config import (
    DEFAULT_INSTANCE_METADATA_URL,
    DEFAULT_INTROSPECTION_URL,
    INSTANCE_METADATA_URL_ENV,
    INTROSPECTION_URL_ENV,
    EcsDiscoveryConfig,
    load_yaml,
    parse_yaml,
    resolve_introspection_url,
)
from hazelcast_ecs.exceptions import ConfigurationException


class TestEcsDiscoveryConfig:
    """Tests for EcsDiscoveryConfig."""

    def test_default_values(self):
        config = EcsDiscoveryConfig(container_port=5701)
        assert config.introspection_url is None
        assert config.cluster_name is None
        assert config.service_name is None
        assert config.region is None
        assert config.max_attempts == 3
        assert config.min_retry_wait_ms == 250
        assert config.http_timeout_seconds == 2.0

    @pytest.mark.parametrize("port", [0, -1, 65536])
    def test_port_out_of_range(self, port):
        with pytest.raises(ConfigurationException) as exc_info:
            EcsDiscoveryConfig(container_port=port)
        assert "between 1 and 65535" in str(exc_info.value)

    @pytest.mark.parametrize("port", ["5701", None, True, 5701.0])
    def test_port_not_an_integer(self, port):
        with pytest.raises(ConfigurationException):
            EcsDiscoveryConfig(container_port=port)

    def test_invalid_max_attempts(self):
        with pytest.raises(ConfigurationException) as exc_info:
            EcsDiscoveryConfig(container_port=5701, max_attempts=0)
        assert "max_attempts" in str(exc_info.value)

    def test_invalid_min_retry_wait(self):
        with pytest.raises(ConfigurationException):
            EcsDiscoveryConfig(container_port=5701, min_retry_wait_ms=-1)

    def test_invalid_timeout(self):
        with pytest.raises(ConfigurationException):
            EcsDiscoveryConfig(container_port=5701, http_timeout_seconds=0)

    def test_access_key_without_secret(self):
        with pytest.raises(ConfigurationException) as exc_info:
            EcsDiscoveryConfig(container_port=5701, access_key="AKIATEST")
        assert "together" in str(exc_info.value)

    def test_resolved_urls_default(self):
        config = EcsDiscoveryConfig(container_port=5701)
        assert config.resolved_introspection_url() == DEFAULT_INTROSPECTION_URL
        assert config.resolved_instance_metadata_url() == DEFAULT_INSTANCE_METADATA_URL

    def test_resolved_urls_from_environment(self, monkeypatch):
        monkeypatch.setenv(INTROSPECTION_URL_ENV, "http://agent.test:51678")
        monkeypatch.setenv(INSTANCE_METADATA_URL_ENV, "http://imds.test")
        config = EcsDiscoveryConfig(container_port=5701)
        assert config.resolved_introspection_url() == "http://agent.test:51678"
        assert config.resolved_instance_metadata_url() == "http://imds.test"

    def test_explicit_url_beats_environment(self, monkeypatch):
        monkeypatch.setenv(INTROSPECTION_URL_ENV, "http://agent.test:51678")
        config = EcsDiscoveryConfig(
            container_port=5701, introspection_url="http://explicit.test"
        )
        assert config.resolved_introspection_url() == "http://explicit.test"

    def test_empty_environment_value_is_ignored(self, monkeypatch):
        monkeypatch.setenv(INTROSPECTION_URL_ENV, "")
        assert resolve_introspection_url() == DEFAULT_INTROSPECTION_URL


class TestFromDict:
    """Tests for EcsDiscoveryConfig.from_dict."""

    def test_all_keys(self):
        config = EcsDiscoveryConfig.from_dict({
            "container_port": 5701,
            "introspection_url": "http://agent.test:51678",
            "instance_metadata_url": "http://imds.test",
            "cluster_name": "my-cluster",
            "service_name": "hazelcast-service",
            "region": "eu-west-1",
            "access_key": "AKIATEST",
            "secret_key": "secret123",
            "iam_role": "arn:aws:iam::123456789012:role/hz",
            "max_attempts": 5,
            "min_retry_wait_ms": 100,
            "http_timeout_seconds": 1.5,
        })
        assert config.container_port == 5701
        assert config.introspection_url == "http://agent.test:51678"
        assert config.instance_metadata_url == "http://imds.test"
        assert config.cluster_name == "my-cluster"
        assert config.service_name == "hazelcast-service"
        assert config.region == "eu-west-1"
        assert config.iam_role == "arn:aws:iam::123456789012:role/hz"
        assert config.max_attempts == 5
        assert config.min_retry_wait_ms == 100
        assert config.http_timeout_seconds == 1.5

    def test_port_as_string(self):
        assert EcsDiscoveryConfig.from_dict({"container_port": "5701"}).container_port == 5701

    def test_missing_port(self):
        with pytest.raises(ConfigurationException) as exc_info:
            EcsDiscoveryConfig.from_dict({"region": "us-east-1"})
        assert "container_port is required" in str(exc_info.value)

    def test_unparseable_port(self):
        with pytest.raises(ConfigurationException):
            EcsDiscoveryConfig.from_dict({"container_port": "hazelcast"})

    def test_retry_settings_as_strings(self):
        config = EcsDiscoveryConfig.from_dict({
            "container_port": "5701",
            "max_attempts": "5",
            "min_retry_wait_ms": "100",
            "http_timeout_seconds": "1.5",
        })
        assert config.max_attempts == 5
        assert config.min_retry_wait_ms == 100
        assert config.http_timeout_seconds == 1.5

    @pytest.mark.parametrize("key,value", [
        ("max_attempts", "three"),
        ("min_retry_wait_ms", None),
        ("http_timeout_seconds", "fast"),
    ])
    def test_unparseable_retry_settings(self, key, value):
        with pytest.raises(ConfigurationException, match=key):
            EcsDiscoveryConfig.from_dict({"container_port": 5701, key: value})

    def test_unknown_keys_are_ignored(self):
        config = EcsDiscoveryConfig.from_dict({"container_port": 5701, "tag_key": "x"})
        assert config.container_port == 5701


class TestYamlConfig:
    """Tests for YAML configuration loading."""

    def test_from_yaml_string(self):
        config = EcsDiscoveryConfig.from_yaml_string(
            """
            container_port: 5701
            region: us-west-2
            service_name: hazelcast-service
            """
        )
        assert config.container_port == 5701
        assert config.region == "us-west-2"
        assert config.service_name == "hazelcast-service"

    def test_root_key(self):
        config = EcsDiscoveryConfig.from_yaml_string(
            "hazelcast_ecs:\n  container_port: 5702\n  max_attempts: 4\n"
        )
        assert config.container_port == 5702
        assert config.max_attempts == 4

    def test_empty_document(self):
        assert parse_yaml("") == {}

    def test_invalid_yaml(self):
        with pytest.raises(ConfigurationException) as exc_info:
            parse_yaml("container_port: [5701")
        assert "Failed to parse YAML" in str(exc_info.value)

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationException):
            parse_yaml("- 5701\n- 5702\n")

    def test_from_yaml_file(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write("container_port: 5701\ncluster_name: my-cluster\n")
            path = f.name
        try:
            config = EcsDiscoveryConfig.from_yaml(path)
            assert config.cluster_name == "my-cluster"
            assert load_yaml(path) == {"container_port": 5701, "cluster_name": "my-cluster"}
        finally:
            os.unlink(path)

    def test_missing_file(self):
        with pytest.raises(ConfigurationException) as exc_info:
            EcsDiscoveryConfig.from_yaml("/nonexistent/hazelcast-ecs.yaml")
        assert "not found" in str(exc_info.value)
