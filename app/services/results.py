"""
Result models for business-rule checks.

Rule violations are expected outcomes: they come back as ``RuleResult`` values
with a machine-readable ``reason`` and never escalate to an exception.
"""

from typing import Optional

from pydantic import BaseModel

from app.models.enums import RuleViolation


class RuleResult(BaseModel):
    """Outcome of a single rule check"""
    valid: bool
    reason: Optional[RuleViolation] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, **extra):
        return cls(valid=True, **extra)

    @classmethod
    def reject(cls, reason: RuleViolation, message: str, **extra):
        return cls(valid=False, reason=reason, message=message, **extra)
