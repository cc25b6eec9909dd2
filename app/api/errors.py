"""
Translate rule results and faults into HTTP responses
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.core.errors import NotFoundError
from app.models.enums import RuleViolation

FORBIDDEN_REASONS = {
    RuleViolation.NOT_A_MEMBER,
    RuleViolation.NOT_AUTHORIZED,
}

CONFLICT_REASONS = {
    RuleViolation.ALREADY_MEMBER,
    RuleViolation.ALREADY_BET,
    RuleViolation.CHALLENGE_EXISTS,
    RuleViolation.LEAGUE_FULL,
    RuleViolation.USER_OWNS_LEAGUES,
}


def status_for_reason(reason: RuleViolation) -> int:
    if reason in FORBIDDEN_REASONS:
        return status.HTTP_403_FORBIDDEN
    if reason in CONFLICT_REASONS:
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def raise_for_rule(result) -> None:
    """Raise an HTTPException when a RuleResult is not valid."""
    if result.valid:
        return
    payload = {"reason": result.reason.value, "message": result.message}
    extra = result.model_dump(exclude={"valid", "reason", "message"}, exclude_none=True, mode="json")
    payload.update(extra)
    raise HTTPException(status_code=status_for_reason(result.reason), detail=payload)


def raise_for_ledger(result) -> None:
    """Raise only for rejected ledger operations; state transitions stay 200."""
    if result.success or result.reason in (RuleViolation.DOWNGRADED, RuleViolation.FROZEN):
        return
    raise HTTPException(
        status_code=status_for_reason(result.reason),
        detail={"reason": result.reason.value, "message": result.message},
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )
