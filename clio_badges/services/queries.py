"""Read-only queries over the holder, snapshot and badge ledgers"""
import logging
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from clio_badges.models.badges import BadgeKind
from clio_badges.models.db import Artist, ArtistHolder, Badge, UserBadge
from clio_badges.models.event import normalize_address
from clio_badges.models.views import (
    BadgeDistribution, BadgeView, GlobalStats, HoldingView, LeaderboardEntry,
    ProfileView, SnapshotView, SupporterView
)
from clio_badges.services.holders import HolderLedger
from clio_badges.services.snapshots import SnapshotLog

logger = logging.getLogger(__name__)

MAX_LEADERBOARD_LIMIT = 100

def _badge_view(award: UserBadge) -> BadgeView:
    return BadgeView(
        user_address=award.user_address,
        badge_id=award.badge_id,
        display_name=award.badge.display_name if award.badge else award.badge_id,
        scope=award.scope,
        artist_id=award.artist_id,
        meta=award.meta or {},
        awarded_at=award.awarded_at
    )

class BadgeQueries:
    """Queries backing the presentation layer"""

    def __init__(self, session: Session):
        self.session = session
        self.holders = HolderLedger(session)
        self.snapshots = SnapshotLog(session)

    def _awards(self):
        return self.session.query(UserBadge).options(joinedload(UserBadge.badge))

    def badges_for_user(self, user_address: str, artist_id: Optional[int] = None) -> List[BadgeView]:
        """All awards of a user, newest first, optionally limited to one artist"""
        query = self._awards().filter(UserBadge.user_address == normalize_address(user_address))
        if artist_id is not None:
            query = query.filter(UserBadge.artist_id == artist_id)
        return [_badge_view(a) for a in query.order_by(UserBadge.awarded_at.desc(), UserBadge.id.desc())]

    def badges_for_artist(self, artist_id: int) -> List[BadgeView]:
        """All awards scoped to an artist, newest first"""
        query = self._awards().filter(UserBadge.artist_id == artist_id)
        return [_badge_view(a) for a in query.order_by(UserBadge.awarded_at.desc(), UserBadge.id.desc())]

    def badge_holders(self, kind: BadgeKind, artist_id: Optional[int] = None) -> List[BadgeView]:
        """Everyone holding a badge kind, in award order"""
        query = self._awards().filter(UserBadge.badge_id == kind.value)
        if artist_id is not None:
            query = query.filter(UserBadge.artist_id == artist_id)
        return [_badge_view(a) for a in query.order_by(UserBadge.awarded_at, UserBadge.id)]

    def holder_count(self, artist_id: int) -> int:
        return self.holders.holder_count(artist_id)

    def snapshot_history(self, artist_id: int, limit: Optional[int] = None) -> List[SnapshotView]:
        """Price and holder history, oldest first"""
        return [
            SnapshotView(
                block_number=s.block_number,
                price=int(s.price),
                holder_count=s.holder_count,
                timestamp=s.created_at
            )
            for s in self.snapshots.history(artist_id, limit)
        ]

    def supporters(self, artist_id: int) -> Optional[List[SupporterView]]:
        """Holders in first-purchase order with their badges for the artist; None if unknown"""
        if self.session.get(Artist, artist_id) is None:
            return None

        badges_by_user = {}
        for badge in self.badges_for_artist(artist_id):
            badges_by_user.setdefault(badge.user_address, []).append(badge)

        return [
            SupporterView(
                user_address=h.user_address,
                first_buy_block=h.first_buy_block,
                first_buy_time=h.first_buy_time,
                is_early=h.is_early,
                badges=badges_by_user.get(h.user_address, [])
            )
            for h in self.holders.holders(artist_id)
        ]

    def profile(self, user_address: str) -> ProfileView:
        """Artists a wallet holds (oldest first) and its badges"""
        address = normalize_address(user_address)
        holdings = self.session.query(ArtistHolder).options(joinedload(ArtistHolder.artist)).filter(
            ArtistHolder.user_address == address
        ).order_by(ArtistHolder.first_buy_time, ArtistHolder.id).all()

        return ProfileView(
            address=address,
            artists=[
                HoldingView(
                    artist_id=h.artist_id,
                    name=h.artist.name,
                    handle=h.artist.handle,
                    genre=h.artist.genre,
                    first_buy_block=h.first_buy_block,
                    first_buy_time=h.first_buy_time,
                    is_early=h.is_early
                )
                for h in holdings
            ],
            badges=self.badges_for_user(address)
        )

    def leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        """
        Users with the most badges.

        Raises:
            ValueError: If limit is outside 1..100
        """
        if limit < 1 or limit > MAX_LEADERBOARD_LIMIT:
            raise ValueError(f"Limit must be between 1 and {MAX_LEADERBOARD_LIMIT}")

        badge_count = func.count(UserBadge.id)
        rows = self.session.query(UserBadge.user_address, badge_count).group_by(
            UserBadge.user_address
        ).order_by(badge_count.desc(), UserBadge.user_address).limit(limit).all()

        entries = []
        for user_address, total in rows:
            badges = self.badges_for_user(user_address)
            entries.append(LeaderboardEntry(
                user_address=user_address,
                total_badges=total,
                unique_badge_types=len({b.badge_id for b in badges}),
                badges=badges
            ))
        return entries

    def stats(self) -> GlobalStats:
        """System-wide totals and per-badge award counts"""
        names = {b.badge_id: b.display_name for b in self.session.query(Badge).all()}
        distribution = self.session.query(UserBadge.badge_id, func.count(UserBadge.id)).group_by(
            UserBadge.badge_id
        ).order_by(UserBadge.badge_id).all()

        return GlobalStats(
            total_artists=self.session.query(func.count(Artist.artist_id)).scalar() or 0,
            total_holders=self.session.query(func.count(ArtistHolder.id)).scalar() or 0,
            total_badges_awarded=self.session.query(func.count(UserBadge.id)).scalar() or 0,
            total_users=self.session.query(func.count(func.distinct(UserBadge.user_address))).scalar() or 0,
            badge_distribution=[
                BadgeDistribution(badge_id=badge_id, display_name=names.get(badge_id, badge_id), count=count)
                for badge_id, count in distribution
            ]
        )
