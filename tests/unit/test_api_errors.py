"""
Unit tests for mapping rule results to HTTP errors
"""

import pytest
from fastapi import HTTPException

from app.api.errors import raise_for_rule, raise_for_ledger, status_for_reason
from app.models.enums import RuleViolation
from app.services.betting_window import WindowResult
from app.services.results import RuleResult
from app.services.wallet import LedgerResult


class TestStatusForReason:

    @pytest.mark.parametrize("reason, expected", [
        (RuleViolation.NOT_A_MEMBER, 403),
        (RuleViolation.NOT_AUTHORIZED, 403),
        (RuleViolation.ALREADY_BET, 409),
        (RuleViolation.LEAGUE_FULL, 409),
        (RuleViolation.WINDOW_CLOSED, 400),
        (RuleViolation.WEEKLY_LIMIT_REACHED, 400),
        (RuleViolation.INSUFFICIENT_BALANCE, 400),
    ])
    def test_mapping(self, reason, expected):
        assert status_for_reason(reason) == expected


class TestRaiseForRule:

    def test_valid_result_passes(self):
        raise_for_rule(RuleResult.ok())

    def test_rejection_carries_reason_and_extras(self):
        result = WindowResult.reject(RuleViolation.TOO_EARLY, "Bets open 3 day(s) before the match", days_until_open=3)

        with pytest.raises(HTTPException) as exc_info:
            raise_for_rule(result)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == {
            "reason": "too_early",
            "message": "Bets open 3 day(s) before the match",
            "days_until_open": 3,
        }


class TestRaiseForLedger:

    def test_success_passes(self):
        raise_for_ledger(LedgerResult(success=True))

    @pytest.mark.parametrize("reason", [RuleViolation.DOWNGRADED, RuleViolation.FROZEN])
    def test_state_transitions_are_not_errors(self, reason):
        raise_for_ledger(LedgerResult(success=False, reason=reason, message="payment failed"))

    def test_invalid_amount_raises(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_for_ledger(LedgerResult(success=False, reason=RuleViolation.INVALID_AMOUNT, message="Amount must be greater than 0"))
        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["reason"] == "invalid_amount"
