#!/usr/bin/env python3
"""Seed the rule store with rules from a YAML or JSON file."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import yaml

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from config import DB_PATH  # noqa: E402
from rules import (  # noqa: E402
    RuleNotFoundError,
    RuleStore,
    RuleValidationError,
    ensure_valid_rule_payload,
)

DEFAULT_SEED_FILE = Path(__file__).parent / "seed_rules.yaml"


def load_seed_file(path: Path) -> list[dict[str, Any]]:
    """Load a list of rules from YAML (``.yaml``/``.yml``) or JSON."""
    with open(path) as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if isinstance(data, dict):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of rules")
    return data


def seed_rules(
    rules: list[dict[str, Any]], store: RuleStore, replace: bool = False
) -> dict[str, Any]:
    """Insert rules into ``store``.

    Rules with an ``id`` that already exists are skipped unless ``replace``
    is set. Invalid rules are reported and never stored.

    Returns:
        Counts of created, replaced, skipped and invalid rules, plus the
        validation errors.
    """
    stats: dict[str, Any] = {
        "created": 0,
        "replaced": 0,
        "skipped": 0,
        "invalid": 0,
        "errors": [],
    }

    for index, rule in enumerate(rules):
        label = rule.get("id") or rule.get("name") or f"#{index}"
        try:
            ensure_valid_rule_payload(rule)
        except RuleValidationError as e:
            stats["invalid"] += 1
            for problem in e.problems:
                stats["errors"].append(f"{label}: {problem['field']} {problem['message']}")
            continue

        rule_id = rule.get("id")
        if rule_id:
            try:
                store.get_rule(rule_id)
            except RuleNotFoundError:
                pass
            else:
                if not replace:
                    stats["skipped"] += 1
                    continue
                store.update_rule(rule_id, rule)
                stats["replaced"] += 1
                continue

        store.create_rule(rule)
        stats["created"] += 1

    return stats


def main() -> int:
    """Main entry point."""
    args = [arg for arg in sys.argv[1:] if not arg.startswith("--")]
    replace = "--replace" in sys.argv[1:]
    seed_path = Path(args[0]) if args else DEFAULT_SEED_FILE

    if not seed_path.exists():
        print(f"Error: Seed file not found: {seed_path}")
        return 1

    print(f"Loading rules from: {seed_path}")
    rules = load_seed_file(seed_path)
    store = RuleStore(DB_PATH)
    stats = seed_rules(rules, store, replace=replace)

    print("\nSeeding Complete:")
    print(f"  Created: {stats['created']}")
    print(f"  Replaced: {stats['replaced']}")
    print(f"  Skipped (already present): {stats['skipped']}")
    print(f"  Invalid: {stats['invalid']}")
    for error in stats["errors"]:
        print(f"    - {error}")
    print(f"\nRule store: {DB_PATH}")

    return 1 if stats["invalid"] else 0


if __name__ == "__main__":
    exit(main())
