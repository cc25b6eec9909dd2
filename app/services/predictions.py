"""
Prediction payload validation.

Payloads are JSON text tagged by type. Only the ``winner`` type exists:
``{"type": "winner", "value": "home" | "draw" | "away"}``.
"""

import json

from app.models.enums import MatchOutcome, PredictionType, RuleViolation
from app.services.results import RuleResult

WINNER_VALUES = {outcome.value for outcome in MatchOutcome}


def parse_prediction(raw_payload):
    """Decode a payload; dicts pass through unchanged."""
    if isinstance(raw_payload, dict):
        return raw_payload
    return json.loads(raw_payload)


def validate_prediction(prediction_type: str, raw_payload) -> RuleResult:
    """
    Validate a prediction payload against its declared type.

    Args:
        prediction_type: Declared type ("winner")
        raw_payload: JSON text (or an already decoded dict)

    Returns:
        RuleResult; ``malformed_prediction`` when the payload is not JSON,
        ``invalid_prediction_format`` / ``invalid_prediction_value`` when it
        is JSON but wrong, ``unsupported_prediction_type`` for other types
    """
    try:
        payload = parse_prediction(raw_payload)
    except (TypeError, ValueError):
        return RuleResult.reject(RuleViolation.MALFORMED_PREDICTION, "Prediction payload is not valid JSON")

    if prediction_type != PredictionType.WINNER.value:
        return RuleResult.reject(
            RuleViolation.UNSUPPORTED_PREDICTION_TYPE,
            f"Unsupported prediction type: {prediction_type}"
        )

    if not isinstance(payload, dict) or payload.get("type") != PredictionType.WINNER.value:
        return RuleResult.reject(RuleViolation.INVALID_PREDICTION_FORMAT, "Invalid prediction format")

    value = payload.get("value")
    if not isinstance(value, str) or value not in WINNER_VALUES:
        return RuleResult.reject(
            RuleViolation.INVALID_PREDICTION_VALUE,
            "Prediction value must be one of: away, draw, home"
        )

    return RuleResult.ok()


def serialize_prediction(raw_payload) -> str:
    """Normalize a validated payload to the stored JSON text."""
    return json.dumps(parse_prediction(raw_payload), sort_keys=True)


def match_outcome(home_score: int, away_score: int) -> MatchOutcome:
    if home_score > away_score:
        return MatchOutcome.HOME
    if home_score < away_score:
        return MatchOutcome.AWAY
    return MatchOutcome.DRAW


def is_winning_prediction(prediction_value: str, outcome: MatchOutcome) -> bool:
    payload = parse_prediction(prediction_value)
    return payload.get("value") == outcome.value
