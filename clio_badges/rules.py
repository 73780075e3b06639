"""Badge rules evaluated after every purchase"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from fractions import Fraction
from typing import Any, Callable, Dict, List

from clio_badges.config import RuleThresholds
from clio_badges.models.badges import GLOBAL_SCOPE, AwardRecord, BadgeKind, artist_scope
from clio_badges.models.event import PurchaseEvent
from clio_badges.services.badges import BadgeLedger
from clio_badges.services.holders import HolderLedger
from clio_badges.services.snapshots import SnapshotLog

logger = logging.getLogger(__name__)

@dataclass
class RuleContext:
    """State a rule may read: the event plus the already-updated ledgers"""
    event: PurchaseEvent
    holder_count: int
    holders: HolderLedger
    snapshots: SnapshotLog
    badges: BadgeLedger

class BadgeRules:
    """
    The five badge rules.

    Each rule reads the ledgers through the context, calls try_award and
    returns the awards that actually landed. Rules never see each other's
    results.
    """

    def __init__(self, thresholds: RuleThresholds):
        self.thresholds = thresholds
        self._rules: Dict[BadgeKind, Callable[[RuleContext], List[AwardRecord]]] = {
            BadgeKind.PROMETHEAN_BACKER: self.check_promethean_backer,
            BadgeKind.ORACLE_OF_RISES: self.check_oracle_of_rises,
            BadgeKind.NEREID_NAVIGATOR: self.check_nereid_navigator,
            BadgeKind.MUSE_WANDERER: self.check_muse_wanderer,
            BadgeKind.TITAN_OF_SUPPORT: self.check_titan_of_support,
        }

    def items(self):
        """(kind, rule) pairs in evaluation order"""
        return self._rules.items()

    def _award(self, ctx: RuleContext, user_address: str, kind: BadgeKind, scope: str,
               meta: Dict[str, Any]) -> List[AwardRecord]:
        result = ctx.badges.try_award(user_address, kind, scope, meta, awarded_at=ctx.event.timestamp)
        if not result.awarded:
            return []
        return [AwardRecord(user_address=user_address, badge_id=kind.value, scope=scope, meta=meta)]

    def check_promethean_backer(self, ctx: RuleContext) -> List[AwardRecord]:
        """First N holders of an artist; the holder count is their rank"""
        if ctx.holder_count > self.thresholds.first_backer_limit:
            return []
        return self._award(
            ctx, ctx.event.buyer, BadgeKind.PROMETHEAN_BACKER, artist_scope(ctx.event.artist_id),
            {'holderRank': ctx.holder_count}
        )

    def check_oracle_of_rises(self, ctx: RuleContext) -> List[AwardRecord]:
        """
        Early holders of an artist whose holder count just crossed the threshold.

        Fires only when the previous snapshot was below the threshold and
        the current count is at or above it.
        """
        threshold = self.thresholds.crossing_holder_threshold
        if ctx.holder_count < threshold:
            return []

        _, previous = ctx.snapshots.last_two(ctx.event.artist_id)
        if previous is None:
            logger.debug(f"Artist {ctx.event.artist_id}: not enough history to detect a crossing")
            return []
        if previous.holder_count >= threshold:
            return []

        logger.info(f"Artist {ctx.event.artist_id} crossed {threshold} holders")
        scope = artist_scope(ctx.event.artist_id)
        awards = []
        for holder in ctx.holders.early_holders(ctx.event.artist_id):
            awards += self._award(
                ctx, holder.user_address, BadgeKind.ORACLE_OF_RISES, scope,
                {'crossingHolderCount': ctx.holder_count, 'firstPurchaseBlock': holder.first_buy_block}
            )
        return awards

    def check_nereid_navigator(self, ctx: RuleContext) -> List[AwardRecord]:
        """Bought when the price sat at least the dip threshold below its lookback value"""
        event = ctx.event
        cutoff = event.timestamp - timedelta(seconds=self.thresholds.dip_lookback_seconds)
        reference = ctx.snapshots.most_recent_before(event.artist_id, cutoff)
        if reference is None:
            logger.debug(f"Artist {event.artist_id}: no price history before {cutoff.isoformat()}")
            return []

        price_before = int(reference.price)
        if price_before == 0:
            return []

        ratio = Fraction(event.new_price, price_before)
        if ratio > 1 - Fraction(str(self.thresholds.dip_threshold)):
            return []

        return self._award(
            ctx, event.buyer, BadgeKind.NEREID_NAVIGATOR, artist_scope(event.artist_id),
            {
                'priceBefore': str(price_before),
                'priceAfter': str(event.new_price),
                'ratio': f"{float(ratio):.4f}",
                'dipPercent': f"{float((1 - ratio) * 100):.2f}",
            }
        )

    def check_muse_wanderer(self, ctx: RuleContext) -> List[AwardRecord]:
        """Holds artists across enough distinct genres; global scope"""
        genres = ctx.holders.genres_for_user(ctx.event.buyer)
        if len(genres) < self.thresholds.genre_threshold:
            return []
        return self._award(
            ctx, ctx.event.buyer, BadgeKind.MUSE_WANDERER, GLOBAL_SCOPE,
            {'genreCount': len(genres), 'genres': genres}
        )

    def check_titan_of_support(self, ctx: RuleContext) -> List[AwardRecord]:
        """A single purchase took at least the threshold share of the new supply"""
        event = ctx.event
        if event.new_supply == 0:
            return []

        share = Fraction(event.token_amount, event.new_supply)
        if share < Fraction(str(self.thresholds.supply_share_threshold)):
            return []

        return self._award(
            ctx, event.buyer, BadgeKind.TITAN_OF_SUPPORT, artist_scope(event.artist_id),
            {
                'sharePercent': f"{float(share * 100):.4f}",
                'tokenAmount': str(event.token_amount),
                'totalSupply': str(event.new_supply),
            }
        )
