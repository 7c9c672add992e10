"""Rule management and evaluation routes.

This router lets admins author the rules attached to coverage types and
lets the claim intake flow evaluate them against in-progress answers.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request

from config import EVALUATE_RATE_LIMIT
from rate_limit import limiter
from rules import RuleEngine, get_default_store, test_rule
from rules.catalog import describe_action, describe_condition, get_catalog
from rules.exceptions import (
    RuleNotFoundError,
    RuleRepositoryError,
    RuleStoreError,
    RuleValidationError,
    TemplateError,
)
from rules.models import RuleRecord
from rules.parser import ensure_valid_rule_payload, parse_rule
from rules.priorities import priority_label
from schemas import (
    EvaluateRequest,
    ReorderRequest,
    RuleCreate,
    RuleTestRequest,
    RuleToggleRequest,
    RuleUpdate,
    TemplateApplyRequest,
)
from templates import apply_template, get_template, get_template_list

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rules", tags=["rules"])

TEST_RULE_ID = "test-rule"

# Fields a PATCH may explicitly clear
NULLABLE_FIELDS = ("question_id", "description", "error_message")


def serialize_rule(record: RuleRecord) -> dict[str, Any]:
    """Rule as returned by the API, with readable conditions and actions."""
    data = record.to_dict()
    data["priority_label"] = priority_label(record.priority)
    definition, diagnostics = parse_rule(record)
    if definition is not None:
        data["summary"] = {
            "conditions": [describe_condition(c) for c in definition.conditions],
            "actions": [describe_action(a) for a in definition.actions],
        }
    data["diagnostics"] = [d.to_dict() for d in diagnostics]
    return data


def _store_failure(action: str, e: Exception) -> HTTPException:
    logger.error(f"Failed to {action}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Failed to {action}: {str(e)[:200]}")


def _invalid_payload(e: RuleValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": str(e), "problems": e.problems},
    )


# Evaluation


@router.post("/evaluate")
@limiter.limit(EVALUATE_RATE_LIMIT)
async def evaluate_rules_endpoint(request: Request, body: EvaluateRequest):
    """Evaluate the active rules of the given coverage types against answers.

    Returns visible/hidden questions, validation errors, warnings, required
    documents, computed field values and the eligibility status.
    """
    engine = RuleEngine(get_default_store())
    try:
        result = engine.evaluate(
            body.coverage_type_ids, body.answer_map(), body.metadata, body.now
        )
    except RuleRepositoryError as e:
        # Never report "eligible" when the rules could not be loaded
        raise HTTPException(
            status_code=503, detail=f"Rules unavailable: {str(e)[:200]}"
        )
    return {"success": True, "result": result.to_dict()}


@router.post("/test")
@limiter.limit(EVALUATE_RATE_LIMIT)
async def test_rule_endpoint(request: Request, body: RuleTestRequest):
    """Run a single, possibly unsaved, rule against sample answers."""
    rule = {"id": TEST_RULE_ID, **body.rule}
    outcome = test_rule(rule, body.answer_map(), body.metadata, body.now)
    return outcome.to_dict()


# Catalog, statistics and search


@router.get("/catalog")
async def get_rule_catalog():
    """Get the operators, actions and priority levels available to rule authors."""
    return get_catalog()


@router.get("/stats")
async def get_rule_stats(coverage_type_id: str | None = None):
    """Get rule counts by status and type, and the priority range."""
    try:
        return get_default_store().get_stats(coverage_type_id)
    except RuleStoreError as e:
        raise _store_failure("get rule statistics", e)


@router.get("/search")
async def search_rules(
    q: str = Query(min_length=1, max_length=200),
    coverage_type_id: str | None = None,
    limit: int = Query(default=50, ge=1, le=100),
):
    """Search rules by name or description."""
    try:
        records = get_default_store().search_rules(q, coverage_type_id, limit)
    except RuleStoreError as e:
        raise _store_failure("search rules", e)
    return {"rules": [serialize_rule(r) for r in records], "total": len(records)}


@router.post("/reorder")
async def reorder_rules(body: ReorderRequest):
    """Update the priorities of several rules at once."""
    try:
        updated = get_default_store().bulk_update_priorities(
            (item.rule_id, item.priority) for item in body.items
        )
    except RuleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuleStoreError as e:
        raise _store_failure("reorder rules", e)
    return {"success": True, "updated": updated}


# Templates


@router.get("/templates")
async def list_rule_templates():
    """List the available rule templates."""
    return {"templates": get_template_list()}


@router.get("/templates/{template_id}")
async def get_rule_template(template_id: str):
    template = get_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.post("/templates/{template_id}/apply")
async def apply_rule_template(template_id: str, body: TemplateApplyRequest):
    """Fill a template's placeholders and return the resulting rule payload."""
    if get_template(template_id) is None:
        raise HTTPException(status_code=404, detail="Template not found")
    try:
        payload = apply_template(template_id, body.values)
    except TemplateError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if body.coverage_type_id:
        payload["coverage_type_id"] = body.coverage_type_id
    if body.question_id:
        payload["question_id"] = body.question_id
    return payload


# CRUD


@router.get("")
async def list_rules(
    coverage_type_id: str | None = None,
    rule_type: str | None = None,
    active_only: bool = False,
):
    """List rules, highest priority first."""
    try:
        records = get_default_store().list_rules(coverage_type_id, rule_type, active_only)
    except RuleStoreError as e:
        raise _store_failure("list rules", e)
    return {"rules": [serialize_rule(r) for r in records], "total": len(records)}


@router.post("", status_code=201)
async def create_rule(body: RuleCreate):
    """Create a rule after validating its conditions and actions."""
    payload = body.model_dump()
    try:
        ensure_valid_rule_payload(payload)
        record = get_default_store().create_rule(payload)
    except RuleValidationError as e:
        raise _invalid_payload(e)
    except RuleStoreError as e:
        raise _store_failure("create rule", e)
    return serialize_rule(record)


@router.get("/{rule_id}")
async def get_rule(rule_id: str):
    try:
        return serialize_rule(get_default_store().get_rule(rule_id))
    except RuleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuleStoreError as e:
        raise _store_failure("get rule", e)


@router.patch("/{rule_id}")
async def update_rule(rule_id: str, body: RuleUpdate):
    """Partially update a rule; the merged rule must still be valid."""
    changes = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key in NULLABLE_FIELDS
    }
    store = get_default_store()
    try:
        current = store.get_rule(rule_id)
        merged = {**current.to_dict(), **changes}
        ensure_valid_rule_payload(merged)
        record = store.update_rule(rule_id, changes)
    except RuleValidationError as e:
        raise _invalid_payload(e)
    except RuleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuleStoreError as e:
        raise _store_failure("update rule", e)
    return serialize_rule(record)


@router.delete("/{rule_id}")
async def delete_rule(rule_id: str):
    try:
        get_default_store().delete_rule(rule_id)
    except RuleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuleStoreError as e:
        raise _store_failure("delete rule", e)
    return {"success": True, "id": rule_id}


@router.post("/{rule_id}/toggle")
async def toggle_rule(rule_id: str, body: RuleToggleRequest | None = None):
    """Activate or deactivate a rule; without a body the state is flipped."""
    is_active = body.is_active if body else None
    try:
        record = get_default_store().set_active(rule_id, is_active)
    except RuleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuleStoreError as e:
        raise _store_failure("toggle rule", e)
    return serialize_rule(record)


@router.post("/{rule_id}/duplicate", status_code=201)
async def duplicate_rule(rule_id: str):
    """Copy a rule. The copy is created inactive."""
    try:
        record = get_default_store().duplicate_rule(rule_id)
    except RuleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuleStoreError as e:
        raise _store_failure("duplicate rule", e)
    return serialize_rule(record)


@router.get("/{rule_id}/history")
async def get_rule_history(rule_id: str, limit: int = Query(default=50, ge=1, le=200)):
    """Get the audit trail of a rule, newest first."""
    try:
        history = get_default_store().get_history(rule_id, limit)
    except RuleStoreError as e:
        raise _store_failure("get rule history", e)
    return {"rule_id": rule_id, "history": history}
