"""Badge ledger: uniquely keyed, append-only badge awards"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from clio_badges.models.db import Badge, UserBadge
from clio_badges.models.badges import BADGE_CATALOG, AwardResult, BadgeKind, scope_artist_id

logger = logging.getLogger(__name__)

UPSERT_DIALECTS = {
    'postgresql': pg_insert,
    'sqlite': sqlite_insert,
}

def seed_badge_catalog(session: Session) -> int:
    """Insert missing catalog rows; returns how many were created"""
    created = 0
    for definition in BADGE_CATALOG.values():
        if session.get(Badge, definition.kind.value) is None:
            session.add(Badge(
                badge_id=definition.kind.value,
                display_name=definition.display_name,
                description=definition.description
            ))
            created += 1
    session.flush()
    if created:
        logger.info(f"Seeded {created} badge catalog entries")
    return created

class BadgeLedger:
    """Awards badges at most once per (user, badge, scope)"""

    def __init__(self, session: Session):
        self.session = session

    def try_award(self, user_address: str, kind: BadgeKind, scope: str,
                  meta: Optional[Dict[str, Any]] = None,
                  awarded_at: Optional[datetime] = None) -> AwardResult:
        """
        Create the award unless one already exists for the key.

        The uniqueness check and the insert are a single statement guarded
        by the uq_user_badge_scope constraint, so concurrent callers with
        the same key see exactly one awarded=True.

        Returns:
            AwardResult: awarded is False when the key was already taken
        """
        values = dict(
            user_address=user_address,
            badge_id=kind.value,
            scope=scope,
            artist_id=scope_artist_id(scope),
            meta=meta or {},
            awarded_at=awarded_at or datetime.utcnow()
        )

        insert = UPSERT_DIALECTS.get(self.session.get_bind().dialect.name)
        if insert is not None:
            statement = insert(UserBadge).values(**values).on_conflict_do_nothing(
                index_elements=['user_address', 'badge_id', 'scope']
            )
            awarded = self.session.execute(statement).rowcount == 1
        else:
            try:
                with self.session.begin_nested():
                    self.session.add(UserBadge(**values))
                awarded = True
            except IntegrityError:
                awarded = False

        if awarded:
            logger.info(f"Awarded {kind.value} ({scope}) to {user_address[:10]}...")
        else:
            logger.debug(f"{kind.value} ({scope}) already awarded to {user_address[:10]}...")
        return AwardResult(awarded=awarded)

    def has_award(self, user_address: str, kind: BadgeKind, scope: str) -> bool:
        return self.session.query(UserBadge.id).filter_by(
            user_address=user_address,
            badge_id=kind.value,
            scope=scope
        ).first() is not None
