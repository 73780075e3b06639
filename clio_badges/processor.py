"""Event processing: holder update, snapshot, then badge rules"""
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Hashable, Iterator, List, Mapping, Optional, Union

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from clio_badges.config import RuleThresholds, settings
from clio_badges.db import Database, db
from clio_badges.errors import StorageFailure
from clio_badges.models.badges import ProcessingResult, RuleEvaluationError
from clio_badges.models.event import PurchaseEvent
from clio_badges.rules import BadgeRules, RuleContext
from clio_badges.services.badges import BadgeLedger
from clio_badges.services.holders import HolderLedger
from clio_badges.services.snapshots import SnapshotLog

logger = logging.getLogger(__name__)

class KeyedLocks:
    """One lock per key, dropped once no thread holds or waits for it"""

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, holders and waiters]
        self._locks: Dict[Hashable, List] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

class EventProcessor:
    """
    Applies purchase events to the ledgers one at a time.

    Each event runs in a single transaction: record the holder, append a
    snapshot, then evaluate every badge rule. Events of one artist are
    serialized, as are events of one buyer (the genre rule reads the
    buyer's holdings across artists). The artist lock is always taken
    before the buyer lock. On SQLite, Database.session additionally
    serializes whole events.
    """

    def __init__(self, database: Database = db, thresholds: Optional[RuleThresholds] = None):
        self.database = database
        self.thresholds = thresholds or settings.thresholds
        self.rules = BadgeRules(self.thresholds)
        self._artist_locks = KeyedLocks()
        self._buyer_locks = KeyedLocks()

    def process_purchase_event(self, event: Union[PurchaseEvent, Mapping[str, Any]]) -> ProcessingResult:
        """
        Process one purchase event to completion.

        Safe to call again with the same event: holder rows and awards are
        keyed, and a snapshot already present for the event is not appended
        twice.

        Raises:
            EventValidationError: If the event is malformed
            StorageFailure: If the database failed; retry the whole event
        """
        if not isinstance(event, PurchaseEvent):
            event = PurchaseEvent.parse(event)

        logger.info(
            f"Processing purchase for artist {event.artist_id}: buyer {event.buyer[:10]}..., "
            f"amount {event.token_amount}, block {event.block_number}"
        )

        with self._artist_locks.hold(event.artist_id), self._buyer_locks.hold(event.buyer):
            try:
                with self.database.session() as session:
                    return self._process(session, event)
            except SQLAlchemyError as e:
                logger.error(f"Storage failure processing artist {event.artist_id} block {event.block_number}: {e}")
                raise StorageFailure(f"Failed to process purchase event: {str(e)}") from e

    def _process(self, session: Session, event: PurchaseEvent) -> ProcessingResult:
        holders = HolderLedger(session, self.thresholds.early_holder_limit)
        snapshots = SnapshotLog(session)
        badges = BadgeLedger(session)

        holder_count = holders.record_purchase(
            event.artist_id, event.buyer, event.block_number, event.timestamp
        )

        snapshot_appended = not snapshots.contains(*event.replay_key())
        if snapshot_appended:
            snapshots.append_snapshot(
                event.artist_id, event.block_number, event.new_price,
                holder_count, event.timestamp, log_index=event.log_index
            )
        else:
            logger.info(f"Snapshot for artist {event.artist_id} block {event.block_number} already recorded, replay")

        result = ProcessingResult(
            artist_id=event.artist_id,
            buyer=event.buyer,
            block_number=event.block_number,
            holder_count=holder_count,
            snapshot_appended=snapshot_appended
        )

        ctx = RuleContext(event=event, holder_count=holder_count, holders=holders,
                          snapshots=snapshots, badges=badges)
        for kind, rule in self.rules.items():
            try:
                with session.begin_nested():
                    result.awards.extend(rule(ctx))
            except SQLAlchemyError:
                # Savepoint already rolled back; the whole event must be retried
                raise
            except Exception as e:
                logger.error(f"Rule {kind.value} failed for artist {event.artist_id}: {e}")
                result.rule_errors.append(RuleEvaluationError(badge_id=kind.value, error=str(e)))

        logger.info(
            f"Processed artist {event.artist_id} block {event.block_number}: "
            f"{holder_count} holders, {len(result.awards)} new awards"
        )
        return result
