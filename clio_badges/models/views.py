"""Read models returned by BadgeQueries"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

class BadgeView(BaseModel):
    """A badge award joined with its catalog entry"""
    user_address: str
    badge_id: str
    display_name: str
    scope: str
    artist_id: Optional[int] = None
    meta: Dict[str, Any] = {}
    awarded_at: datetime

class SnapshotView(BaseModel):
    """One point of an artist's price and holder history"""
    block_number: int
    price: int
    holder_count: int
    timestamp: datetime

class SupporterView(BaseModel):
    """A holder of an artist and the badges earned for that artist"""
    user_address: str
    first_buy_block: int
    first_buy_time: datetime
    is_early: bool
    badges: List[BadgeView] = []

class HoldingView(BaseModel):
    """An artist held by a user"""
    artist_id: int
    name: str
    handle: str
    genre: Optional[str] = None
    first_buy_block: int
    first_buy_time: datetime
    is_early: bool

class ProfileView(BaseModel):
    """Everything known about one wallet"""
    address: str
    artists: List[HoldingView] = []
    badges: List[BadgeView] = []

class LeaderboardEntry(BaseModel):
    """A user ranked by number of badges"""
    user_address: str
    total_badges: int
    unique_badge_types: int
    badges: List[BadgeView] = []

class BadgeDistribution(BaseModel):
    badge_id: str
    display_name: str
    count: int

class GlobalStats(BaseModel):
    """System-wide totals"""
    total_artists: int
    total_holders: int
    total_badges_awarded: int
    total_users: int
    badge_distribution: List[BadgeDistribution] = []
