"""Snapshot log: per-artist price and holder-count history"""
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from clio_badges.models.db import ArtistStats

class SnapshotLog:
    """Append-only time series of ArtistStats rows"""

    def __init__(self, session: Session):
        self.session = session

    def append_snapshot(self, artist_id: int, block_number: int, price: int, holder_count: int,
                        timestamp: datetime, log_index: Optional[int] = None) -> ArtistStats:
        """Unconditional append; replay detection is the caller's job"""
        snapshot = ArtistStats(
            artist_id=artist_id,
            block_number=block_number,
            log_index=log_index,
            price=str(price),
            holder_count=holder_count,
            created_at=timestamp
        )
        self.session.add(snapshot)
        self.session.flush()
        return snapshot

    def contains(self, artist_id: int, block_number: int, log_index: Optional[int] = None) -> bool:
        """Whether a snapshot was already appended for this (artist, block, log index)"""
        query = self.session.query(ArtistStats.id).filter(
            ArtistStats.artist_id == artist_id,
            ArtistStats.block_number == block_number
        )
        if log_index is None:
            query = query.filter(ArtistStats.log_index.is_(None))
        else:
            query = query.filter(ArtistStats.log_index == log_index)
        return query.first() is not None

    def most_recent_before(self, artist_id: int, cutoff: datetime) -> Optional[ArtistStats]:
        """Latest snapshot with timestamp at or before the cutoff"""
        return self.session.query(ArtistStats).filter(
            ArtistStats.artist_id == artist_id,
            ArtistStats.created_at <= cutoff
        ).order_by(ArtistStats.created_at.desc(), ArtistStats.id.desc()).first()

    def last_two(self, artist_id: int) -> Tuple[Optional[ArtistStats], Optional[ArtistStats]]:
        """The two most recent snapshots, most recent first"""
        rows = self.session.query(ArtistStats).filter(
            ArtistStats.artist_id == artist_id
        ).order_by(ArtistStats.created_at.desc(), ArtistStats.id.desc()).limit(2).all()
        rows += [None] * (2 - len(rows))
        return rows[0], rows[1]

    def history(self, artist_id: int, limit: Optional[int] = None) -> List[ArtistStats]:
        """Snapshots oldest first; with a limit, the most recent ones"""
        query = self.session.query(ArtistStats).filter(ArtistStats.artist_id == artist_id)
        if limit is None:
            return query.order_by(ArtistStats.created_at, ArtistStats.id).all()
        rows = query.order_by(ArtistStats.created_at.desc(), ArtistStats.id.desc()).limit(limit).all()
        return list(reversed(rows))
