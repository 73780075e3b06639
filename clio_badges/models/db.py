"""SQLAlchemy database models for holder, snapshot and badge ledgers"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, BigInteger, JSON, Text,
    ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

class Artist(Base):
    """
    Artist metadata. Usually registered up front, but auto-created as a
    placeholder when a purchase arrives for an unknown artist.
    """
    __tablename__ = 'artists'

    artist_id = Column(Integer, primary_key=True, autoincrement=False)
    token_address = Column(String(42), nullable=False)
    name = Column(String, nullable=False)
    handle = Column(String, nullable=False)
    genre = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    holders = relationship('ArtistHolder', back_populates='artist')

class ArtistHolder(Base):
    """
    One row per distinct (artist, user) pair, written on first purchase.
    The row count per artist is the artist's holder count.
    """
    __tablename__ = 'artist_holders'
    __table_args__ = (
        UniqueConstraint('artist_id', 'user_address', name='uq_artist_holder'),
    )

    id = Column(Integer, primary_key=True)
    artist_id = Column(Integer, ForeignKey('artists.artist_id'), nullable=False, index=True)
    user_address = Column(String(42), nullable=False, index=True)
    first_buy_block = Column(BigInteger, nullable=False)
    first_buy_time = Column(DateTime, nullable=False)
    is_early = Column(Boolean, nullable=False, default=False)

    artist = relationship('Artist', back_populates='holders')

class ArtistStats(Base):
    """
    Append-only snapshot of price and holder count, one per processed event.
    Price is a decimal string so 256-bit values fit on every backend.
    """
    __tablename__ = 'artist_stats'
    __table_args__ = (
        Index('ix_artist_stats_artist_time', 'artist_id', 'created_at'),
        Index('ix_artist_stats_artist_block', 'artist_id', 'block_number'),
    )

    id = Column(Integer, primary_key=True)
    artist_id = Column(Integer, nullable=False)
    block_number = Column(BigInteger, nullable=False)
    log_index = Column(Integer, nullable=True)
    price = Column(Text, nullable=False)
    holder_count = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False)

class Badge(Base):
    """Badge catalog entry"""
    __tablename__ = 'badges'

    badge_id = Column(String, primary_key=True)
    display_name = Column(String, nullable=False)
    description = Column(String, nullable=False)

class UserBadge(Base):
    """
    A badge award. Unique per (user, badge, scope); scope is the decimal
    artist id or the global sentinel. Never updated or deleted.
    """
    __tablename__ = 'user_badges'
    __table_args__ = (
        UniqueConstraint('user_address', 'badge_id', 'scope', name='uq_user_badge_scope'),
    )

    id = Column(Integer, primary_key=True)
    user_address = Column(String(42), nullable=False, index=True)
    badge_id = Column(String, ForeignKey('badges.badge_id'), nullable=False)
    scope = Column(String, nullable=False)
    artist_id = Column(Integer, nullable=True, index=True)
    meta = Column(JSON, nullable=False, default=dict)
    awarded_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    badge = relationship('Badge')
