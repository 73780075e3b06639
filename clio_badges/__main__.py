"""Entry point for replaying purchase events through the badge engine"""
import json
import logging
import os
import sys
import traceback
from pathlib import Path
from typing import Any, Dict, List

from clio_badges.config import settings
from clio_badges.db import db
from clio_badges.errors import BadgeEngineError, EventValidationError
from clio_badges.models.event import PurchaseEvent
from clio_badges.processor import EventProcessor
from clio_badges.services.queries import BadgeQueries

logging.basicConfig(level=settings.LOG_LEVEL, format='%(message)s')
logger = logging.getLogger(__name__)

def load_raw_events(input_dir: Path) -> List[Dict[str, Any]]:
    """
    Read events from *.json (array) and *.jsonl (one per line) files.
    Files are read in name order.
    """
    raw_events = []
    for path in sorted(input_dir.iterdir()):
        if path.suffix == '.json':
            with open(path, 'r') as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError(f"{path.name}: expected a JSON array of events")
            raw_events.extend(data)
        elif path.suffix == '.jsonl':
            with open(path, 'r') as f:
                raw_events.extend(json.loads(line) for line in f if line.strip())
    return raw_events

def parse_events(raw_events: List[Dict[str, Any]], results: List[Dict[str, Any]]) -> List[PurchaseEvent]:
    """Validate events, recording rejects, and sort them into block order"""
    events = []
    for position, raw in enumerate(raw_events):
        try:
            events.append(PurchaseEvent.parse(raw))
        except EventValidationError as e:
            logger.error(f"Rejected event #{position}: {e}")
            results.append({'position': position, 'error': str(e)})
    events.sort(key=lambda e: (e.block_number, e.log_index if e.log_index is not None else -1, e.timestamp))
    return events

def run() -> None:
    """Process every event in the input directory and write results.json."""
    try:
        db.init()

        input_dir = Path(settings.INPUT_DIR)
        if not input_dir.is_dir() or not os.listdir(input_dir):
            raise FileNotFoundError(f"No input files found in {settings.INPUT_DIR}")

        results = []
        events = parse_events(load_raw_events(input_dir), results)
        logger.info(f"Replaying {len(events)} purchase events")

        processor = EventProcessor(db, settings.thresholds)
        for event in events:
            try:
                results.append(processor.process_purchase_event(event).model_dump(mode='json'))
            except BadgeEngineError as e:
                # Keep going; the failed event can be replayed later
                logger.error(f"Event at block {event.block_number} failed: {e}")
                results.append({'block_number': event.block_number, 'artist_id': event.artist_id, 'error': str(e)})

        with db.session() as session:
            stats = BadgeQueries(session).stats().model_dump(mode='json')

        output_path = os.path.join(settings.OUTPUT_DIR, "results.json")
        with open(output_path, 'w') as f:
            json.dump({'events': results, 'stats': stats}, f, indent=2)

        logger.info(f"Replay complete: {stats}")

    except Exception as e:
        logger.error(f"Error during replay: {e}")
        traceback.print_exc()
        sys.exit(1)
    finally:
        db.dispose()

if __name__ == "__main__":
    run()
