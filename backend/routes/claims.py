"""Claim submission routes.

The submission check is the last gate before a claim is filed: it
re-evaluates the rules against the final answers and verifies that the
uploaded documents satisfy every document requirement.
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from config import EVALUATE_RATE_LIMIT
from rate_limit import limiter
from rules import RuleEngine, get_default_store
from rules.documents import UploadedFile
from rules.exceptions import RuleRepositoryError
from rules.submission import assess_submission
from schemas import SubmissionCheckRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/claims", tags=["claims"])


@router.post("/submission-check")
@limiter.limit(EVALUATE_RATE_LIMIT)
async def check_submission(request: Request, body: SubmissionCheckRequest):
    """Decide whether a claim can be submitted with its current answers and files."""
    engine = RuleEngine(get_default_store())
    try:
        result = engine.evaluate(
            body.coverage_type_ids, body.answer_map(), body.metadata, body.now
        )
    except RuleRepositoryError as e:
        raise HTTPException(
            status_code=503, detail=f"Rules unavailable: {str(e)[:200]}"
        )

    uploaded = [
        UploadedFile(
            filename=f.filename,
            size=f.size,
            document_type=f.document_type,
            question_id=f.question_id,
        )
        for f in body.files
    ]
    decision = assess_submission(result, uploaded)
    return {"evaluation": result.to_dict(), "decision": decision.to_dict()}
