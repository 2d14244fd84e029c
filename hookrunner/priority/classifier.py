"""Hook priority classification.

This module defines the five execution tiers, the catalog of hook families and
the immutable TaskDescriptor that the scheduler trusts for every ordering
decision. Classification is a total, side-effect-free function: no raw hook
definition is ever rejected, unknown values are normalised to defaults.
"""

import math
import shlex
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from typing import Any

# Constants
UNCLASSIFIED_FAMILY = "unclassified"
UNKNOWN_TASK_ID = "unknown"
MS_PER_SECOND = 1000


class Tier(str, Enum):
    """Execution tier of a hook, in precedence order.

    ``critical`` and ``high`` are gating: a block inside them halts every tier
    that has not started yet. The remaining tiers only record blocks.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    BACKGROUND = "background"

    @property
    def rank(self) -> int:
        """Position in the execution order, starting at 1 for critical."""
        return _TIER_RANKS[self]

    @property
    def is_gating(self) -> bool:
        """Whether a block in this tier stops the remaining tiers."""
        return self in (Tier.CRITICAL, Tier.HIGH)

    @property
    def default_timeout_ms(self) -> int:
        """Timeout applied to tasks of this tier that do not declare one."""
        return _TIER_TIMEOUTS_MS[self]

    @classmethod
    def coerce(cls, value: Any) -> "Tier":
        """Normalise any value to a Tier, defaulting to medium."""
        if isinstance(value, Tier):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.MEDIUM
        return cls.MEDIUM


_TIER_RANKS = {
    Tier.CRITICAL: 1,
    Tier.HIGH: 2,
    Tier.MEDIUM: 3,
    Tier.LOW: 4,
    Tier.BACKGROUND: 5,
}

_TIER_TIMEOUTS_MS = {
    Tier.CRITICAL: 2000,
    Tier.HIGH: 4000,
    Tier.MEDIUM: 3000,
    Tier.LOW: 2000,
    Tier.BACKGROUND: 5000,
}

EXECUTION_ORDER: tuple[Tier, ...] = tuple(sorted(Tier, key=lambda tier: tier.rank))


@dataclass(frozen=True)
class FamilyInfo:
    """Catalog entry describing a hook family.

    Attributes:
        name: Family label as it appears in hook definitions
        description: Human-readable purpose of the family
        blocking_behavior: One of hard-block, soft-block, warning or none
    """

    name: str
    description: str
    blocking_behavior: str


FAMILIES: dict[str, FamilyInfo] = {
    info.name: info
    for info in (
        FamilyInfo("file_hygiene", "Prevents file system pollution", "hard-block"),
        FamilyInfo(
            "infrastructure_protection",
            "Protects project infrastructure",
            "hard-block",
        ),
        FamilyInfo("security", "Security and vulnerability scanning", "soft-block"),
        FamilyInfo("validation", "Data and context validation", "soft-block"),
        FamilyInfo("architecture", "Architectural pattern enforcement", "soft-block"),
        FamilyInfo("pattern_enforcement", "Development pattern enforcement", "warning"),
        FamilyInfo("performance", "Performance monitoring and optimization", "warning"),
        FamilyInfo("testing", "Test-related validations", "warning"),
        FamilyInfo("code_cleanup", "Code cleanup and formatting", "none"),
        FamilyInfo("documentation", "Documentation enforcement", "none"),
        FamilyInfo("data_hygiene", "Database and data structure validation", "warning"),
    )
}


def normalize_family(value: Any) -> str:
    """Return the family label if it is catalogued, else the sentinel."""
    if isinstance(value, str) and value.strip() in FAMILIES:
        return value.strip()
    return UNCLASSIFIED_FAMILY


def blocking_behavior(family: str) -> str:
    """Get the blocking behavior of a family (warning when unknown)."""
    info = FAMILIES.get(family)
    return info.blocking_behavior if info else "warning"


@dataclass(frozen=True)
class TaskDescriptor:
    """Immutable description of one validator hook.

    Attributes:
        id: Identifier used in results and logs
        tier: Execution tier
        family: Family label from the catalog, or "unclassified"
        invocation: Command and arguments to spawn (empty if none was given)
        timeout_ms: Wall-clock limit for one invocation in milliseconds
        description: Optional human-readable description
    """

    id: str
    tier: Tier
    family: str
    invocation: tuple[str, ...]
    timeout_ms: int
    description: str | None = None

    @property
    def command(self) -> str:
        """The invocation rendered back into a single command line."""
        return shlex.join(self.invocation)


@dataclass(frozen=True)
class KnownHook:
    """Registry entry pinning the classification of a known hook.

    Entries win over whatever the hook definition itself declares, so a
    project can keep priorities in one place.

    Attributes:
        tier: Execution tier for the hook
        family: Family label from the catalog
        timeout_ms: Timeout override, or None to resolve it as usual
    """

    tier: Tier
    family: str = UNCLASSIFIED_FAMILY
    timeout_ms: int | None = None


def lookup_known_hook(
    registry: Mapping[str, KnownHook] | None,
    command: Any,
    invocation: Sequence[str],
) -> KnownHook | None:
    """Find the registry entry for a hook.

    The full command text is tried first, then the file name of each
    invocation element with and without its extension.

    Example:
        >>> registry = {"check-secrets": KnownHook(Tier.CRITICAL, "security")}
        >>> lookup_known_hook(registry, None, ("node", "hooks/check-secrets.js")).tier
        <Tier.CRITICAL: 'critical'>
    """
    if not registry:
        return None
    if isinstance(command, str) and command.strip() in registry:
        return registry[command.strip()]

    for part in invocation:
        path = PurePath(part)
        for key in (part, path.name, path.stem):
            if key in registry:
                return registry[key]
    return None


def registry_statistics(registry: Mapping[str, KnownHook]) -> dict[str, Any]:
    """Summarise a registry by tier, family and timeout.

    Entries without a timeout override count with their tier default.
    """
    timeouts = [entry.timeout_ms or entry.tier.default_timeout_ms for entry in registry.values()]
    tiers = Counter(entry.tier for entry in registry.values())
    total_timeout_ms = sum(timeouts)
    return {
        "total": len(registry),
        "by_tier": {tier.value: tiers[tier] for tier in EXECUTION_ORDER if tiers[tier]},
        "by_family": dict(Counter(entry.family for entry in registry.values())),
        "total_timeout_ms": total_timeout_ms,
        "average_timeout_ms": round(total_timeout_ms / len(timeouts)) if timeouts else 0,
    }


def _parse_invocation(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        try:
            return tuple(shlex.split(value))
        except ValueError:
            # Unbalanced quotes; fall back to whitespace splitting
            return tuple(value.split())
    if isinstance(value, Sequence) and not isinstance(value, bytes):
        return tuple(str(part) for part in value)
    return ()


def _positive_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _resolve_timeout_ms(raw: Mapping[str, Any], tier: Tier, default_ms: int | None) -> int:
    for key in ("timeout_ms", "timeoutMs"):
        number = _positive_number(raw.get(key))
        if number is not None:
            return int(number)

    # Host-tool hook definitions express timeouts in seconds
    number = _positive_number(raw.get("timeout"))
    if number is not None:
        return int(number * MS_PER_SECOND)

    return default_ms if default_ms is not None else tier.default_timeout_ms


def classify(
    raw: "Mapping[str, Any] | TaskDescriptor",
    default_timeout_ms: int | None = None,
    registry: Mapping[str, KnownHook] | None = None,
) -> TaskDescriptor:
    """Build a TaskDescriptor from a raw hook definition.

    Args:
        raw: Hook definition, e.g. ``{"command": "...", "priority": "high"}``
        default_timeout_ms: Timeout for hooks that declare none. When None,
            the tier default is used.
        registry: Known hooks keyed by command or script name. A matching
            entry overrides the declared tier and family, and its timeout
            (when set) overrides every other timeout source.

    Returns:
        The classified TaskDescriptor. Descriptors are returned unchanged.

    Example:
        >>> task = classify({"command": "check.py --strict", "priority": "critical"})
        >>> task.tier, task.invocation
        (<Tier.CRITICAL: 'critical'>, ('check.py', '--strict'))
    """
    if isinstance(raw, TaskDescriptor):
        return raw
    if not isinstance(raw, Mapping):
        raw = {}

    tier = Tier.coerce(raw.get("tier", raw.get("priority")))
    family = normalize_family(raw.get("family"))
    invocation = _parse_invocation(raw.get("invocation", raw.get("command")))

    known = lookup_known_hook(registry, raw.get("command"), invocation)
    if known is not None:
        tier = known.tier
        family = known.family

    if known is not None and known.timeout_ms is not None:
        timeout_ms = known.timeout_ms
    else:
        timeout_ms = _resolve_timeout_ms(raw, tier, default_timeout_ms)

    description = raw.get("description")
    description = str(description) if description is not None else None

    task_id = raw.get("id")
    if not task_id:
        command = raw.get("command")
        if isinstance(command, str) and command:
            task_id = command
        elif invocation:
            task_id = shlex.join(invocation)
        else:
            task_id = description or UNKNOWN_TASK_ID

    return TaskDescriptor(
        id=str(task_id),
        tier=tier,
        family=family,
        invocation=invocation,
        timeout_ms=timeout_ms,
        description=description,
    )


def classify_all(
    raws: Iterable["Mapping[str, Any] | TaskDescriptor"],
    default_timeout_ms: int | None = None,
    registry: Mapping[str, KnownHook] | None = None,
) -> list[TaskDescriptor]:
    """Classify every hook definition, preserving order."""
    return [classify(raw, default_timeout_ms, registry) for raw in raws]


def partition(tasks: Iterable[TaskDescriptor]) -> dict[Tier, list[TaskDescriptor]]:
    """Group tasks into the five tiers, preserving order within each tier.

    Args:
        tasks: Classified task descriptors

    Returns:
        Mapping of every tier (in execution order) to its tasks

    Raises:
        ValueError: If a descriptor carries a tier that is not a Tier member
    """
    groups: dict[Tier, list[TaskDescriptor]] = {tier: [] for tier in EXECUTION_ORDER}
    for task in tasks:
        if not isinstance(task.tier, Tier):
            msg = f"Task '{task.id}' has unrecognized tier {task.tier!r}"
            raise ValueError(msg)
        groups[task.tier].append(task)
    return groups


def sequential_order(tasks: Iterable[TaskDescriptor]) -> list[TaskDescriptor]:
    """Flatten tasks into tier precedence order, stable within a tier.

    Unlike :func:`partition`, malformed tiers are tolerated and treated as
    medium.
    """
    return sorted(tasks, key=lambda task: Tier.coerce(task.tier).rank)
