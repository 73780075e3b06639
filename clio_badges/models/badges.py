"""Badge kinds, award scopes and processing results"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

GLOBAL_SCOPE = 'global'

class BadgeKind(str, Enum):
    """The five badge kinds. Adding a kind means adding a rule in rules.py."""
    PROMETHEAN_BACKER = 'PROMETHEAN_BACKER'
    ORACLE_OF_RISES = 'ORACLE_OF_RISES'
    NEREID_NAVIGATOR = 'NEREID_NAVIGATOR'
    MUSE_WANDERER = 'MUSE_WANDERER'
    TITAN_OF_SUPPORT = 'TITAN_OF_SUPPORT'

@dataclass(frozen=True)
class BadgeDefinition:
    """Display metadata for a badge kind"""
    kind: BadgeKind
    display_name: str
    description: str

BADGE_CATALOG: Dict[BadgeKind, BadgeDefinition] = {
    BadgeKind.PROMETHEAN_BACKER: BadgeDefinition(
        BadgeKind.PROMETHEAN_BACKER, 'Promethean Backer', 'First 5 holders of an artist.'),
    BadgeKind.ORACLE_OF_RISES: BadgeDefinition(
        BadgeKind.ORACLE_OF_RISES, 'Oracle of Rises', 'Early holder in artists that later reach 200+ holders.'),
    BadgeKind.NEREID_NAVIGATOR: BadgeDefinition(
        BadgeKind.NEREID_NAVIGATOR, 'Nereid Navigator', 'Bought during a 15%+ price dip.'),
    BadgeKind.MUSE_WANDERER: BadgeDefinition(
        BadgeKind.MUSE_WANDERER, 'Muse Wanderer', 'Supports artists across 8+ genres.'),
    BadgeKind.TITAN_OF_SUPPORT: BadgeDefinition(
        BadgeKind.TITAN_OF_SUPPORT, 'Titan of Support', "Acquired at least 1% of an artist's supply in one buy."),
}

def artist_scope(artist_id: int) -> str:
    """Scope key for a per-artist award"""
    return str(artist_id)

def scope_artist_id(scope: str) -> Optional[int]:
    """Inverse of artist_scope; None for the global scope"""
    if scope == GLOBAL_SCOPE:
        return None
    return int(scope)

@dataclass
class AwardResult:
    """Outcome of a single try_award call"""
    awarded: bool

class AwardRecord(BaseModel):
    """An award that landed while processing an event"""
    user_address: str
    badge_id: str
    scope: str
    meta: Dict[str, Any] = {}

class RuleEvaluationError(BaseModel):
    """A rule that raised while being evaluated"""
    badge_id: str
    error: str

class ProcessingResult(BaseModel):
    """
    Summary of processing one purchase event.

    Attributes:
        artist_id: Artist the event belonged to
        buyer: Normalized buyer address
        block_number: Source block of the event
        holder_count: Distinct holders of the artist after the event
        snapshot_appended: False when the snapshot was already present (replay)
        awards: Awards created by this event
        rule_errors: Rules that failed; the others still ran
    """
    artist_id: int
    buyer: str
    block_number: int
    holder_count: int
    snapshot_appended: bool = True
    awards: List[AwardRecord] = []
    rule_errors: List[RuleEvaluationError] = []
