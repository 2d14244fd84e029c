"""Configuration Management with Pydantic.

This module implements the engine options and the runner configuration using
Pydantic for validation, loaded from YAML with environment variable overrides.
Environment variables are consulted here only; the engine itself receives an
explicit EngineOptions instance.
"""

import os
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field

from hookrunner.priority.classifier import (
    FAMILIES,
    UNCLASSIFIED_FAMILY,
    KnownHook,
    Tier,
    normalize_family,
)

# Initialize logger
logger = structlog.get_logger(__name__)

# Constants
DEFAULT_GRACE_PERIOD_MS = 1000
HIGH_TIMEOUT_THRESHOLD_MS = 30000
LOW_TIMEOUT_THRESHOLD_MS = 1000
TRUTHY_VALUES = ("true", "1", "yes")


class EngineOptions(BaseModel):
    """Options for one engine instance.

    Attributes:
        timeout_ms: Timeout for hooks that do not declare one. When None the
            tier default applies.
        fallback_to_sequential: Replay hooks sequentially if the concurrent
            orchestration faults
        verbose: Log per-tier and per-hook progress at INFO level
        grace_period_ms: Time between SIGTERM and SIGKILL after a timeout
        cwd: Working directory for hook processes
    """

    timeout_ms: int | None = Field(
        default=None,
        gt=0,
        description="Default per-hook timeout in milliseconds",
    )
    fallback_to_sequential: bool = Field(
        default=True,
        description="Fall back to sequential execution on orchestration faults",
    )
    verbose: bool = Field(
        default=False,
        description="Verbose progress logging",
    )
    grace_period_ms: int = Field(
        default=DEFAULT_GRACE_PERIOD_MS,
        ge=0,
        description="Milliseconds between SIGTERM and SIGKILL",
    )
    cwd: str | None = Field(
        default=None,
        description="Working directory for hook processes",
    )

    model_config = {"frozen": True}


class KnownHookConfig(BaseModel):
    """Pinned classification for one known hook.

    Attributes:
        priority: Execution tier name
        family: Family label from the catalog
        timeout_ms: Timeout override in milliseconds
    """

    priority: str = Field(
        description="Execution tier",
        pattern=r"^(critical|high|medium|low|background)$",
    )
    family: str = Field(
        default=UNCLASSIFIED_FAMILY,
        description="Hook family",
    )
    timeout_ms: int | None = Field(
        default=None,
        gt=0,
        description="Timeout override in milliseconds",
    )

    model_config = {"frozen": True}

    def to_known_hook(self) -> KnownHook:
        """Convert to the classifier's registry entry."""
        return KnownHook(
            tier=Tier(self.priority),
            family=normalize_family(self.family),
            timeout_ms=self.timeout_ms,
        )


class RunnerConfig(BaseModel):
    """Top-level configuration for the hook runner CLI.

    Attributes:
        engine: Engine options
        logging_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        known_hooks: Registry of known hooks keyed by command or script name
    """

    engine: EngineOptions = Field(default_factory=EngineOptions)
    logging_level: str = Field(
        default="WARNING",
        description="Logging level",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    known_hooks: dict[str, KnownHookConfig] = Field(
        default_factory=dict,
        description="Known hooks keyed by command or script name",
    )

    def registry(self) -> dict[str, KnownHook]:
        """Build the classifier registry from the known hooks section."""
        return {name: entry.to_known_hook() for name, entry in self.known_hooks.items()}

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RunnerConfig":
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file

        Returns:
            Parsed and validated RunnerConfig instance

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            ValueError: If configuration is invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        logger.info("loading_configuration", path=str(config_path))

        try:
            with config_path.open() as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.exception("yaml_parse_error", error=str(e), path=str(config_path))
            msg = f"Invalid YAML in configuration file: {e}"
            raise ValueError(msg) from e

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            msg = "Configuration file must contain a mapping"
            raise ValueError(msg)

        config = cls.from_dict(config_data)
        logger.info(
            "configuration_loaded",
            timeout_ms=config.engine.timeout_ms,
            fallback_to_sequential=config.engine.fallback_to_sequential,
            logging_level=config.logging_level,
            known_hook_count=len(config.known_hooks),
        )
        return config

    @classmethod
    def from_dict(cls, config_data: dict) -> "RunnerConfig":
        """Build a configuration from a mapping, applying environment overrides.

        Raises:
            pydantic.ValidationError: If the resulting values are invalid
        """
        return cls(**cls._apply_env_overrides(config_data))

    @classmethod
    def _apply_env_overrides(cls, config_data: dict) -> dict:
        """Apply environment variable overrides to configuration.

        Environment variables follow the pattern HOOKRUNNER_<KEY>, e.g.
        HOOKRUNNER_TIMEOUT_MS or HOOKRUNNER_VERBOSE.

        Args:
            config_data: Base configuration dictionary from file

        Returns:
            Configuration dictionary with environment overrides applied
        """
        env_overrides = {
            ("engine", "timeout_ms"): "HOOKRUNNER_TIMEOUT_MS",
            ("engine", "grace_period_ms"): "HOOKRUNNER_GRACE_PERIOD_MS",
            ("engine", "fallback_to_sequential"): "HOOKRUNNER_FALLBACK",
            ("engine", "verbose"): "HOOKRUNNER_VERBOSE",
            ("engine", "cwd"): "HOOKRUNNER_CWD",
            ("logging_level",): "HOOKRUNNER_LOGGING_LEVEL",
        }

        config_data = {
            key: dict(value) if isinstance(value, dict) else value
            for key, value in config_data.items()
        }

        for path, env_var in env_overrides.items():
            value = os.environ.get(env_var)
            if value is None:
                continue

            current = config_data
            for key in path[:-1]:
                if not isinstance(current.get(key), dict):
                    current[key] = {}
                current = current[key]

            if env_var.endswith("_MS"):
                value = int(value)
            elif env_var.endswith(("_FALLBACK", "_VERBOSE")):
                value = value.lower() in TRUTHY_VALUES
            elif env_var.endswith("_LEVEL"):
                value = value.upper()

            current[path[-1]] = value
            logger.debug(
                "env_override_applied",
                env_var=env_var,
                config_path=".".join(path),
            )

        return config_data

    def validate_config(self) -> list[str]:
        """Validate configuration and return list of warnings.

        Returns:
            List of validation warning messages (empty if no warnings)
        """
        warnings = []
        timeout_ms = self.engine.timeout_ms

        if timeout_ms is not None and timeout_ms > HIGH_TIMEOUT_THRESHOLD_MS:
            warnings.append(
                f"Default hook timeout is high ({timeout_ms}ms) - "
                "a slow hook will delay every change",
            )

        if timeout_ms is not None and timeout_ms < LOW_TIMEOUT_THRESHOLD_MS:
            warnings.append(
                f"Default hook timeout is low ({timeout_ms}ms) - "
                "hooks may time out prematurely",
            )

        if not self.engine.fallback_to_sequential:
            warnings.append(
                "Sequential fallback is disabled - orchestration faults will abort the run",
            )

        if self.engine.cwd is not None and not Path(self.engine.cwd).is_dir():
            warnings.append(f"Hook working directory does not exist: {self.engine.cwd}")

        for name, entry in self.known_hooks.items():
            if entry.family not in FAMILIES and entry.family != UNCLASSIFIED_FAMILY:
                warnings.append(f"Known hook '{name}' has unknown family: {entry.family}")

        return warnings


def load_config(config_path: str | Path | None = None) -> RunnerConfig:
    """Load the runner configuration.

    Args:
        config_path: Path to a YAML file. When None, defaults are used with
            environment overrides applied.

    Returns:
        RunnerConfig instance

    Raises:
        FileNotFoundError: If config_path is given but does not exist
        ValueError: If the configuration is invalid
    """
    if config_path is None:
        return RunnerConfig.from_dict({})
    return RunnerConfig.from_yaml(config_path)


__all__ = [
    "EngineOptions",
    "KnownHookConfig",
    "RunnerConfig",
    "load_config",
]
