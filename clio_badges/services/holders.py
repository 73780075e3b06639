"""Holder ledger: first-purchase records per (artist, user)"""
import logging
from datetime import datetime
from typing import List
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from clio_badges.models.db import Artist, ArtistHolder
from clio_badges.services.artists import ArtistDirectory

logger = logging.getLogger(__name__)

class HolderLedger:
    """Maintains ArtistHolder rows; the holder count is always their row count"""

    def __init__(self, session: Session, early_holder_limit: int = 50):
        self.session = session
        self.early_holder_limit = early_holder_limit
        self.artists = ArtistDirectory(session)

    def get_holder(self, artist_id: int, user_address: str):
        return self.session.query(ArtistHolder).filter_by(
            artist_id=artist_id,
            user_address=user_address
        ).first()

    def holder_count(self, artist_id: int) -> int:
        """Distinct holders of an artist"""
        return self.session.query(func.count(ArtistHolder.id)).filter(
            ArtistHolder.artist_id == artist_id
        ).scalar() or 0

    def record_purchase(self, artist_id: int, user_address: str,
                        block_number: int, timestamp: datetime) -> int:
        """
        Record a purchase and return the artist's holder count afterwards.

        The first purchase of a pair creates its holder row, flagged early
        when fewer than early_holder_limit holders existed before it. Later
        purchases leave the row untouched.
        """
        if self.get_holder(artist_id, user_address) is None:
            self.artists.ensure_exists(artist_id, created_at=timestamp)
            count_before = self.holder_count(artist_id)
            holder = ArtistHolder(
                artist_id=artist_id,
                user_address=user_address,
                first_buy_block=block_number,
                first_buy_time=timestamp,
                is_early=count_before < self.early_holder_limit
            )
            try:
                with self.session.begin_nested():
                    self.session.add(holder)
            except IntegrityError:
                # Another writer created the pair first; theirs stands
                logger.debug(f"Holder {user_address[:10]}... of artist {artist_id} already recorded")

        return self.holder_count(artist_id)

    def early_holders(self, artist_id: int) -> List[ArtistHolder]:
        """Early holders of an artist in first-purchase order"""
        return self.session.query(ArtistHolder).filter_by(
            artist_id=artist_id,
            is_early=True
        ).order_by(ArtistHolder.first_buy_block, ArtistHolder.id).all()

    def holders(self, artist_id: int) -> List[ArtistHolder]:
        """All holders of an artist in first-purchase order"""
        return self.session.query(ArtistHolder).filter_by(
            artist_id=artist_id
        ).order_by(ArtistHolder.first_buy_time, ArtistHolder.id).all()

    def genres_for_user(self, user_address: str) -> List[str]:
        """Sorted distinct non-null genres across every artist the user holds"""
        rows = self.session.query(Artist.genre).join(
            ArtistHolder, ArtistHolder.artist_id == Artist.artist_id
        ).filter(
            ArtistHolder.user_address == user_address,
            Artist.genre.isnot(None)
        ).distinct().all()
        return sorted(genre for (genre,) in rows)
