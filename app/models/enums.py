"""
Database and domain enums
"""

import enum


class UserRole(enum.Enum):
    """User role enum"""
    USER = "user"
    ADMIN = "admin"


class MemberRole(enum.Enum):
    """League member role enum"""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class MatchStatus(enum.Enum):
    """Match status enum"""
    UPCOMING = "upcoming"
    LIVE = "live"
    FINISHED = "finished"
    POSTPONED = "postponed"
    CANCELLED = "cancelled"


class BetStatus(enum.Enum):
    """Bet status enum; won/lost/void are terminal"""
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    VOID = "void"


class GroupBetStatus(enum.Enum):
    """Challenge status enum (open -> closed -> settled)"""
    OPEN = "open"
    CLOSED = "closed"
    SETTLED = "settled"


class ContributionStatus(enum.Enum):
    """Contribution status enum"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PredictionType(enum.Enum):
    """Supported prediction types"""
    WINNER = "winner"


class MatchOutcome(enum.Enum):
    """Values of a winner prediction"""
    HOME = "home"
    DRAW = "draw"
    AWAY = "away"


class RuleViolation(str, enum.Enum):
    """Machine-readable reasons for rejected business operations"""
    TOO_EARLY = "too_early"
    WINDOW_CLOSED = "window_closed"
    WEEKLY_LIMIT_REACHED = "weekly_limit_reached"
    MALFORMED_PREDICTION = "malformed_prediction"
    INVALID_PREDICTION_FORMAT = "invalid_prediction_format"
    INVALID_PREDICTION_VALUE = "invalid_prediction_value"
    UNSUPPORTED_PREDICTION_TYPE = "unsupported_prediction_type"
    WALLET_FROZEN = "wallet_frozen"
    COOLDOWN_ACTIVE = "cooldown_active"
    INVALID_AMOUNT = "invalid_amount"
    NOT_AN_UPGRADE = "not_an_upgrade"
    NOT_A_DOWNGRADE = "not_a_downgrade"
    MEMBER_LIMIT_EXCEEDED = "member_limit_exceeded"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INSUFFICIENT_POINTS = "insufficient_points"
    DOWNGRADED = "downgraded"
    FROZEN = "frozen"
    NOT_A_MEMBER = "not_a_member"
    NOT_AUTHORIZED = "not_authorized"
    ALREADY_MEMBER = "already_member"
    CHALLENGE_EXISTS = "challenge_exists"
    CHALLENGE_CLOSED = "challenge_closed"
    ALREADY_BET = "already_bet"
    MATCH_NOT_IN_COMPETITION = "match_not_in_competition"
    COMPETITION_UNAVAILABLE = "competition_unavailable"
    MATCH_NOT_FINISHED = "match_not_finished"
    LEAGUE_FULL = "league_full"
    USER_OWNS_LEAGUES = "user_owns_leagues"
