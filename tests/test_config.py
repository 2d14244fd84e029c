"""Unit tests for configuration management module."""

from pathlib import Path
from typing import Any

import pytest
import yaml
from pydantic import ValidationError

from hookrunner.config import EngineOptions, KnownHookConfig, RunnerConfig, load_config
from hookrunner.priority.classifier import KnownHook, Tier

ENV_VARS = (
    "HOOKRUNNER_TIMEOUT_MS",
    "HOOKRUNNER_GRACE_PERIOD_MS",
    "HOOKRUNNER_FALLBACK",
    "HOOKRUNNER_VERBOSE",
    "HOOKRUNNER_CWD",
    "HOOKRUNNER_LOGGING_LEVEL",
)


@pytest.fixture
def valid_config_dict() -> dict[str, Any]:
    """Fixture providing valid configuration dictionary."""
    return {
        "engine": {
            "timeout_ms": 4000,
            "fallback_to_sequential": False,
            "verbose": True,
            "grace_period_ms": 250,
        },
        "logging_level": "DEBUG",
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, valid_config_dict: dict[str, Any]) -> Path:
    """Fixture providing temporary YAML config file."""
    config_path = tmp_path / "hookrunner.yaml"
    with config_path.open("w") as f:
        yaml.dump(valid_config_dict, f)
    return config_path


@pytest.fixture(autouse=True)
def clean_env_vars(monkeypatch):
    """Clean environment variables before each test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestEngineOptions:
    """Tests for EngineOptions model."""

    def test_defaults(self):
        """Test EngineOptions default values."""
        options = EngineOptions()

        assert options.timeout_ms is None
        assert options.fallback_to_sequential is True
        assert options.verbose is False
        assert options.grace_period_ms == 1000
        assert options.cwd is None

    def test_timeout_must_be_positive(self):
        """Test that a zero timeout is rejected."""
        with pytest.raises(ValidationError):
            EngineOptions(timeout_ms=0)

    def test_grace_period_non_negative(self):
        """Test that a negative grace period is rejected and zero allowed."""
        with pytest.raises(ValidationError):
            EngineOptions(grace_period_ms=-1)
        assert EngineOptions(grace_period_ms=0).grace_period_ms == 0

    def test_options_are_frozen(self):
        """Test that options cannot be mutated after construction."""
        options = EngineOptions()
        with pytest.raises(ValidationError):
            options.verbose = True


class TestRunnerConfig:
    """Tests for RunnerConfig model."""

    def test_default_config(self):
        """Test RunnerConfig defaults."""
        config = RunnerConfig()

        assert config.logging_level == "WARNING"
        assert config.engine == EngineOptions()

    def test_from_dict(self, valid_config_dict):
        """Test building a config from a mapping."""
        config = RunnerConfig.from_dict(valid_config_dict)

        assert config.engine.timeout_ms == 4000
        assert config.engine.fallback_to_sequential is False
        assert config.engine.verbose is True
        assert config.engine.grace_period_ms == 250
        assert config.logging_level == "DEBUG"

    def test_logging_level_validation(self):
        """Test that unknown logging levels are rejected."""
        with pytest.raises(ValidationError):
            RunnerConfig(logging_level="LOUD")

    def test_nested_validation_errors(self):
        """Test that engine option errors surface from the top-level model."""
        with pytest.raises(ValidationError, match="timeout_ms"):
            RunnerConfig.from_dict({"engine": {"timeout_ms": -5}})


class TestEnvironmentOverrides:
    """Tests for HOOKRUNNER_* environment overrides."""

    def test_timeout_override(self, monkeypatch):
        """Test that HOOKRUNNER_TIMEOUT_MS is cast to int."""
        monkeypatch.setenv("HOOKRUNNER_TIMEOUT_MS", "1500")
        config = RunnerConfig.from_dict({})
        assert config.engine.timeout_ms == 1500

    def test_env_overrides_file_values(self, monkeypatch, valid_config_dict):
        """Test that environment variables win over file values."""
        monkeypatch.setenv("HOOKRUNNER_GRACE_PERIOD_MS", "50")
        monkeypatch.setenv("HOOKRUNNER_FALLBACK", "yes")
        config = RunnerConfig.from_dict(valid_config_dict)

        assert config.engine.grace_period_ms == 50
        assert config.engine.fallback_to_sequential is True
        assert config.engine.timeout_ms == 4000

    def test_boolean_override_false(self, monkeypatch):
        """Test that non-truthy strings disable a flag."""
        monkeypatch.setenv("HOOKRUNNER_FALLBACK", "off")
        monkeypatch.setenv("HOOKRUNNER_VERBOSE", "TRUE")
        config = RunnerConfig.from_dict({})

        assert config.engine.fallback_to_sequential is False
        assert config.engine.verbose is True

    def test_logging_level_uppercased(self, monkeypatch):
        """Test that the logging level override is normalised."""
        monkeypatch.setenv("HOOKRUNNER_LOGGING_LEVEL", "info")
        assert RunnerConfig.from_dict({}).logging_level == "INFO"

    def test_cwd_override(self, monkeypatch, tmp_path):
        """Test that the working directory can come from the environment."""
        monkeypatch.setenv("HOOKRUNNER_CWD", str(tmp_path))
        assert RunnerConfig.from_dict({}).engine.cwd == str(tmp_path)

    def test_overrides_do_not_mutate_input(self, monkeypatch, valid_config_dict):
        """Test that the caller's mapping is left untouched."""
        monkeypatch.setenv("HOOKRUNNER_TIMEOUT_MS", "9000")
        RunnerConfig.from_dict(valid_config_dict)
        assert valid_config_dict["engine"]["timeout_ms"] == 4000


class TestValidateConfig:
    """Tests for configuration warnings."""

    def test_default_config_has_no_warnings(self):
        """Test that defaults produce no warnings."""
        assert RunnerConfig().validate_config() == []

    def test_high_timeout_warning(self):
        """Test warning for a very high default timeout."""
        config = RunnerConfig(engine=EngineOptions(timeout_ms=60000))
        warnings = config.validate_config()
        assert any("high" in w for w in warnings)

    def test_low_timeout_warning(self):
        """Test warning for a very low default timeout."""
        config = RunnerConfig(engine=EngineOptions(timeout_ms=200))
        warnings = config.validate_config()
        assert any("low" in w for w in warnings)

    def test_fallback_disabled_warning(self):
        """Test warning when the sequential fallback is disabled."""
        config = RunnerConfig(engine=EngineOptions(fallback_to_sequential=False))
        assert any("fallback" in w.lower() for w in config.validate_config())

    def test_missing_cwd_warning(self, tmp_path):
        """Test warning when the hook working directory is missing."""
        config = RunnerConfig(engine=EngineOptions(cwd=str(tmp_path / "nope")))
        assert any("does not exist" in w for w in config.validate_config())


class TestLoadConfig:
    """Tests for loading configuration files."""

    def test_load_yaml_config(self, temp_config_file):
        """Test loading configuration from YAML file."""
        config = load_config(temp_config_file)

        assert config.engine.timeout_ms == 4000
        assert config.logging_level == "DEBUG"

    def test_load_config_without_path(self):
        """Test that defaults are used when no file is given."""
        assert load_config() == RunnerConfig()

    def test_load_empty_file(self, tmp_path):
        """Test that an empty file yields the defaults."""
        config_path = tmp_path / "empty.yaml"
        config_path.write_text("")
        assert load_config(config_path) == RunnerConfig()

    def test_load_config_not_found(self, tmp_path):
        """Test error when config file doesn't exist."""
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_config(tmp_path / "missing.yaml")

    def test_load_config_invalid_yaml(self, tmp_path):
        """Test error with invalid YAML syntax."""
        config_path = tmp_path / "invalid.yaml"
        config_path.write_text("engine: [unclosed")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(config_path)

    def test_load_config_non_mapping(self, tmp_path):
        """Test error when the YAML document is not a mapping."""
        config_path = tmp_path / "list.yaml"
        config_path.write_text("- one\n- two\n")

        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config(config_path)

    def test_load_config_validation_error(self, tmp_path):
        """Test that invalid values raise a ValidationError."""
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("engine:\n  grace_period_ms: -10\n")

        with pytest.raises(ValidationError):
            load_config(config_path)


class TestKnownHooks:
    """Tests for the known hooks registry section."""

    def test_default_registry_empty(self):
        """Test that no known hooks are configured by default."""
        assert RunnerConfig().registry() == {}

    def test_registry_from_dict(self):
        """Test that entries become classifier registry entries."""
        config = RunnerConfig.from_dict(
            {
                "known_hooks": {
                    "check-secrets": {
                        "priority": "critical",
                        "family": "security",
                        "timeout_ms": 1200,
                    },
                    "format.sh": {"priority": "background"},
                },
            },
        )

        registry = config.registry()

        assert registry["check-secrets"] == KnownHook(Tier.CRITICAL, "security", 1200)
        assert registry["format.sh"] == KnownHook(Tier.BACKGROUND, "unclassified", None)

    def test_unknown_family_normalised(self):
        """Test that an uncatalogued family becomes unclassified and warns."""
        config = RunnerConfig(
            known_hooks={"lint": KnownHookConfig(priority="low", family="made_up")},
        )

        assert config.registry()["lint"].family == "unclassified"
        assert "Known hook 'lint' has unknown family: made_up" in config.validate_config()

    def test_invalid_priority_rejected(self):
        """Test that an unknown tier name is a validation error."""
        with pytest.raises(ValidationError, match="priority"):
            RunnerConfig.from_dict({"known_hooks": {"lint": {"priority": "urgent"}}})

    def test_non_positive_timeout_rejected(self):
        """Test that a zero timeout override is a validation error."""
        with pytest.raises(ValidationError, match="timeout_ms"):
            RunnerConfig.from_dict(
                {"known_hooks": {"lint": {"priority": "low", "timeout_ms": 0}}},
            )

    def test_known_hooks_from_yaml(self, tmp_path):
        """Test loading known hooks from a YAML file."""
        config_path = tmp_path / "hookrunner.yaml"
        config_path.write_text(
            "known_hooks:\n  guard.py:\n    priority: high\n    family: file_hygiene\n",
        )

        registry = load_config(config_path).registry()

        assert registry == {"guard.py": KnownHook(Tier.HIGH, "file_hygiene")}
