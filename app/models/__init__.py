# Models Package
from .user import User
from .plan import Plan
from .match import Competition, Team, Match
from .league import League, LeagueMember
from .bet import GroupBet, Bet
from .wallet import LeagueWallet, Contribution
from .audit_log import AuditLog

__all__ = [
    "User",
    "Plan",
    "Competition",
    "Team",
    "Match",
    "League",
    "LeagueMember",
    "GroupBet",
    "Bet",
    "LeagueWallet",
    "Contribution",
    "AuditLog"
]
