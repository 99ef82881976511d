"""
Tests for configuration loading and resolution.
"""

import pytest

from shipflow.config.loader import DEFAULTS, Config, _merge_dict, load_config
from shipflow.config.resolver import ENV_OVERRIDES, apply_env_overrides, resolve_config
from shipflow.exceptions import ConfigurationError


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run in an empty directory with none of the override variables set."""
    for var in (*ENV_OVERRIDES, "SHIPFLOW_ENV"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestConfig:
    """Tests for Config class."""

    def test_dot_notation(self):
        cfg = Config({"storage": {"bucket": "b"}})
        assert cfg.get("storage.bucket") == "b"

    def test_dot_notation_missing_returns_default(self):
        cfg = Config({"a": 1})
        assert cfg.get("a.b.c", "fallback") == "fallback"

    def test_contains(self):
        cfg = Config({"a": {"b": 1}})
        assert "a" in cfg
        assert "a.b" in cfg
        assert "a.c" not in cfg

    def test_getitem(self):
        cfg = Config({"name": "test", "nested": {"key": "val"}})
        assert cfg["name"] == "test"
        assert isinstance(cfg["nested"], Config)
        assert cfg["nested.key"] == "val"

    def test_getitem_missing_raises(self):
        with pytest.raises(KeyError):
            _ = Config({})["missing"]

    def test_section_properties(self):
        cfg = Config({"storage": {"type": "memory"}, "queue": {"name": "q"}})
        assert cfg.storage == {"type": "memory"}
        assert cfg.queue == {"name": "q"}
        assert cfg.pipeline == {}

    def test_validate_defaults(self):
        Config(dict(DEFAULTS)).validate()

    def test_validate_rejects_bad_concurrency(self):
        data = {**DEFAULTS, "sync": {"max_concurrency": 0}}
        with pytest.raises(ConfigurationError, match="max_concurrency"):
            Config(data).validate()

    def test_validate_rejects_missing_bucket(self):
        data = {**DEFAULTS, "storage": {"type": "s3"}}
        with pytest.raises(ConfigurationError, match="bucket"):
            Config(data).validate()

    def test_validate_rejects_bad_build_commands(self):
        data = {**DEFAULTS, "pipeline": {**DEFAULTS["pipeline"], "build_commands": ["npm run build"]}}
        with pytest.raises(ConfigurationError, match="build_commands"):
            Config(data).validate()


class TestLoadConfig:
    def test_defaults_without_file(self, clean_env):
        cfg = load_config()
        assert cfg.get("storage.region") == "ap-south-1"
        assert cfg.get("storage.bucket") == "ship-flow2"
        assert cfg.get("queue.name") == "build-queue"
        assert cfg.get("queue.status_key") == "status"
        assert cfg.get("sync.max_concurrency") == 5
        assert cfg.get("sync.progress_interval_ms") == 2000
        assert cfg.get("pipeline.error_delay_s") == 5.0
        assert cfg.get("service.port") == 3002
        assert cfg.get("content.port") == 3000

    def test_defaults_not_mutated(self, clean_env, monkeypatch):
        monkeypatch.setenv("S3_BUCKET", "other")
        load_config()
        assert DEFAULTS["storage"]["bucket"] == "ship-flow2"

    def test_file_in_working_directory(self, clean_env):
        (clean_env / "shipflow.yaml").write_text("storage:\n  bucket: sites\nsync:\n  max_concurrency: 8\n")
        cfg = load_config()
        assert cfg.get("storage.bucket") == "sites"
        assert cfg.get("storage.region") == "ap-south-1"
        assert cfg.get("sync.max_concurrency") == 8

    def test_explicit_path_and_env_overlay(self, clean_env):
        base = clean_env / "conf" / "app.yaml"
        base.parent.mkdir()
        base.write_text("queue:\n  url: redis://base:6379\n")
        (base.parent / "app.prod.yaml").write_text("queue:\n  url: redis://prod:6379\n")
        assert load_config(base).get("queue.url") == "redis://base:6379"
        assert load_config(base, env="prod").get("queue.url") == "redis://prod:6379"

    def test_missing_explicit_path(self, clean_env):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(clean_env / "nope.yaml")

    def test_invalid_yaml(self, clean_env):
        (clean_env / "shipflow.yaml").write_text("storage: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Error parsing"):
            load_config()

    def test_non_mapping_yaml(self, clean_env):
        (clean_env / "shipflow.yaml").write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config()

    def test_env_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("AWS_REGION", "eu-west-1")
        monkeypatch.setenv("REDIS_URL", "redis://cache:6380")
        monkeypatch.setenv("PORT", "8080")
        cfg = load_config()
        assert cfg.get("storage.region") == "eu-west-1"
        assert cfg.get("queue.url") == "redis://cache:6380"
        assert cfg.get("service.port") == 8080

    def test_variable_substitution(self, clean_env, monkeypatch):
        monkeypatch.setenv("SITE_BUCKET", "from-env")
        (clean_env / "shipflow.yaml").write_text("storage:\n  bucket: ${SITE_BUCKET}-{env}\n")
        assert load_config(env="staging").get("storage.bucket") == "from-env-staging"


class TestResolver:
    def test_unknown_variable_left_in_place(self, monkeypatch):
        monkeypatch.delenv("SHIPFLOW_UNSET_VAR", raising=False)
        assert resolve_config({"a": "${SHIPFLOW_UNSET_VAR}"}) == {"a": "${SHIPFLOW_UNSET_VAR}"}

    def test_lists_resolved(self):
        assert resolve_config({"a": ["x-{env}"]}, env="prod") == {"a": ["x-prod"]}

    def test_empty_values_ignored(self):
        data = {"storage": {"bucket": "b"}}
        assert apply_env_overrides(data, {"S3_BUCKET": ""}) == {"storage": {"bucket": "b"}}

    def test_bad_port(self):
        with pytest.raises(ConfigurationError, match="PORT"):
            apply_env_overrides({}, {"PORT": "eighty"})

    def test_creates_missing_section(self):
        assert apply_env_overrides({}, {"SHIPFLOW_LOG_LEVEL": "DEBUG"}) == {"logging": {"level": "DEBUG"}}


class TestMergeDict:
    def test_nested_merge(self):
        base = {"a": {"b": 1, "c": 2}, "d": 1}
        _merge_dict(base, {"a": {"c": 3}, "e": 4})
        assert base == {"a": {"b": 1, "c": 3}, "d": 1, "e": 4}

    def test_lists_replaced(self):
        base = {"a": [1, 2]}
        _merge_dict(base, {"a": [3]})
        assert base == {"a": [3]}
