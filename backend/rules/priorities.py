"""Rule priority levels."""
from __future__ import annotations

from enum import IntEnum

from .models import RuleType


class RulePriority(IntEnum):
    CRITICAL = 100
    HIGH = 75
    MEDIUM = 50
    LOW = 25
    DEFAULT = 0


SUGGESTED_PRIORITIES: dict[str, int] = {
    RuleType.ELIGIBILITY.value: RulePriority.CRITICAL,
    RuleType.VALIDATION.value: RulePriority.HIGH,
    RuleType.DOCUMENT.value: RulePriority.MEDIUM,
    RuleType.CONDITIONAL.value: RulePriority.LOW,
    RuleType.CALCULATION.value: 10,
}


def priority_label(priority: int) -> str:
    if priority >= RulePriority.CRITICAL:
        return "Critical"
    if priority >= RulePriority.HIGH:
        return "High"
    if priority >= RulePriority.MEDIUM:
        return "Medium"
    if priority >= RulePriority.LOW:
        return "Low"
    return "Normal"


def suggest_priority(rule_type: RuleType | str | None) -> int:
    """Default priority for a new rule: eligibility checks run first."""
    if isinstance(rule_type, RuleType):
        rule_type = rule_type.value
    return int(SUGGESTED_PRIORITIES.get(rule_type or "", RulePriority.DEFAULT))
