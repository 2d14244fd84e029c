"""Hook definition validation with error and warning reporting.

Classification never rejects a hook definition; this module is the place where
questionable definitions are surfaced to the operator before they are run.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from hookrunner.priority.classifier import FAMILIES, Tier

logger = structlog.get_logger(__name__)

# Constants
MIN_RECOMMENDED_TIMEOUT_MS = 1000


@dataclass
class ValidationReport:
    """Report containing validation results for hook definitions.

    Attributes:
        is_valid: Whether every definition passed the error checks
        errors: Messages for definitions that cannot run as intended
        warnings: Messages for definitions that rely on defaults
    """

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message and mark validation as failed."""
        self.errors.append(message)
        self.is_valid = False
        logger.error("validation_error", message=message)

    def add_warning(self, message: str) -> None:
        """Add a warning message without failing validation."""
        self.warnings.append(message)
        logger.warning("validation_warning", message=message)

    def merge(self, other: "ValidationReport", prefix: str = "") -> None:
        """Fold another report into this one, prefixing its messages."""
        self.errors.extend(f"{prefix}{error}" for error in other.errors)
        self.warnings.extend(f"{prefix}{warning}" for warning in other.warnings)
        self.is_valid = self.is_valid and other.is_valid

    def summary(self) -> str:
        """Generate a human-readable summary of the validation report."""
        lines = [
            f"Validation Status: {'PASS' if self.is_valid else 'FAIL'}",
            f"Errors: {len(self.errors)}",
            f"Warnings: {len(self.warnings)}",
        ]

        if self.errors:
            lines.append("\nErrors:")
            lines.extend(f"  - {error}" for error in self.errors)

        if self.warnings:
            lines.append("\nWarnings:")
            lines.extend(f"  - {warning}" for warning in self.warnings)

        return "\n".join(lines)


class TaskConfigValidator:
    """Validator for raw hook definitions.

    Checks performed:
    - a command (or invocation) is present
    - the priority names a known tier
    - the family is catalogued
    - the timeout is not unreasonably low
    """

    def validate(self, raw: Mapping[str, Any]) -> ValidationReport:
        """Validate a single hook definition.

        Args:
            raw: Hook definition as found in the hooks document

        Returns:
            ValidationReport for this definition
        """
        report = ValidationReport()

        if not isinstance(raw, Mapping):
            report.add_error(f"Hook definition must be an object, got {type(raw).__name__}")
            return report

        if not (raw.get("command") or raw.get("invocation")):
            report.add_error("Hook command is required")

        tier = raw.get("tier", raw.get("priority"))
        if tier is None:
            report.add_warning("Hook priority not specified, defaulting to medium")
        elif not isinstance(tier, str) or tier.strip().lower() not in {t.value for t in Tier}:
            report.add_error(f"Invalid priority: {tier}")

        family = raw.get("family")
        if family is None:
            report.add_warning("Hook family not specified, defaulting to unclassified")
        elif family not in FAMILIES:
            report.add_warning(f"Unknown family: {family}")

        timeout_ms = self._declared_timeout_ms(raw)
        if timeout_ms is not None and timeout_ms < MIN_RECOMMENDED_TIMEOUT_MS:
            report.add_warning("Hook timeout is very low, may cause premature failures")

        return report

    def validate_all(self, raws: Iterable[Mapping[str, Any]]) -> ValidationReport:
        """Validate a list of hook definitions into one report."""
        combined = ValidationReport()
        count = 0
        for index, raw in enumerate(raws):
            count += 1
            combined.merge(self.validate(raw), prefix=f"hook[{index}]: ")

        logger.info(
            "hook_validation_complete",
            hook_count=count,
            is_valid=combined.is_valid,
            error_count=len(combined.errors),
            warning_count=len(combined.warnings),
        )
        return combined

    @staticmethod
    def _declared_timeout_ms(raw: Mapping[str, Any]) -> float | None:
        for key, scale in (("timeout_ms", 1), ("timeoutMs", 1), ("timeout", 1000)):
            value = raw.get(key)
            if isinstance(value, int | float) and not isinstance(value, bool):
                return value * scale
        return None
