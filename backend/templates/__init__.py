"""Rule templates for quick rule authoring.

Each YAML file in this directory describes a ready-made rule with
``{placeholder}`` markers that the admin fills in before saving.
"""

from __future__ import annotations

import copy
import logging
import re
from pathlib import Path
from typing import Any

import yaml

import config
from rules.exceptions import TemplateError
from rules.priorities import suggest_priority

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

# Keys whose string values may carry placeholders.
CONDITION_KEYS = ("field", "value")
ACTION_KEYS = (
    "targetQuestionId",
    "targetField",
    "errorMessage",
    "warningMessage",
    "value",
)


def templates_dir() -> Path:
    if config.RULES_TEMPLATES_DIR:
        return Path(config.RULES_TEMPLATES_DIR)
    return Path(__file__).parent


def _load(file_path: Path) -> dict[str, Any] | None:
    try:
        with open(file_path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load rule template {file_path.name}: {e}")
        return None
    return data if isinstance(data, dict) else None


def get_template_list() -> list[dict[str, Any]]:
    """Get list of available rule templates.

    Returns:
        List of template metadata (id, name, description, category, rule_type,
        placeholders).
    """
    templates = []
    for file_path in templates_dir().glob("*.yaml"):
        data = _load(file_path)
        if not data:
            continue
        templates.append(
            {
                "id": file_path.stem,
                "name": data.get("name", file_path.stem),
                "description": data.get("description", ""),
                "category": data.get("category", "general"),
                "rule_type": data.get("rule_type", "conditional"),
                "placeholders": list(data.get("placeholders") or []),
            }
        )

    return sorted(templates, key=lambda x: x["name"])


def get_template(template_id: str) -> dict[str, Any] | None:
    """Get a specific template by ID.

    Args:
        template_id: The template file name (without extension)

    Returns:
        Template dict, or None if not found.
    """
    if ".." in template_id or "/" in template_id or "\\" in template_id:
        return None

    file_path = templates_dir() / f"{template_id}.yaml"
    if not file_path.exists():
        return None

    data = _load(file_path)
    if data is not None:
        data.setdefault("id", template_id)
    return data


def _substitute(text: str, values: dict[str, Any]) -> Any:
    whole = PLACEHOLDER_RE.fullmatch(text)
    if whole and whole.group(1) in values:
        # A value that is only a placeholder keeps the filled value's type.
        return values[whole.group(1)]
    return PLACEHOLDER_RE.sub(
        lambda m: str(values[m.group(1)]) if m.group(1) in values else m.group(0),
        text,
    )


def _fill(entries: list[dict[str, Any]], keys: tuple[str, ...], values: dict[str, Any]) -> None:
    for entry in entries:
        for key in keys:
            if isinstance(entry.get(key), str):
                entry[key] = _substitute(entry[key], values)


def _unfilled(entries: list[dict[str, Any]], keys: tuple[str, ...]) -> set[str]:
    names: set[str] = set()
    for entry in entries:
        for key in keys:
            if isinstance(entry.get(key), str):
                names.update(PLACEHOLDER_RE.findall(entry[key]))
    return names


def apply_template(
    template_id: str, values: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Fill a template's placeholders and return a rule payload.

    Args:
        template_id: The template ID to apply
        values: Placeholder values, keyed by placeholder name

    Returns:
        Rule fields (name, description, rule_type, priority, conditions,
        actions) ready to be completed with a coverage type and saved.

    Raises:
        TemplateError: If the template is not found or a placeholder is left
            unfilled.
    """
    template = get_template(template_id)
    if not template:
        raise TemplateError(f"Template not found: {template_id}")

    values = dict(values or {})
    missing = [name for name in template.get("placeholders") or [] if name not in values]
    if missing:
        raise TemplateError(f"Missing values for placeholders: {', '.join(missing)}")

    conditions = copy.deepcopy(template.get("conditions") or [])
    actions = copy.deepcopy(template.get("actions") or [])
    _fill(conditions, CONDITION_KEYS, values)
    _fill(actions, ACTION_KEYS, values)

    unfilled = _unfilled(conditions, CONDITION_KEYS) | _unfilled(actions, ACTION_KEYS)
    if unfilled:
        raise TemplateError(f"Unfilled placeholders: {', '.join(sorted(unfilled))}")

    rule_type = template.get("rule_type", "conditional")
    return {
        "template_id": template_id,
        "name": template.get("name", template_id),
        "description": template.get("description", ""),
        "rule_type": rule_type,
        "priority": template.get("priority", suggest_priority(rule_type)),
        "conditions": conditions,
        "actions": actions,
    }
