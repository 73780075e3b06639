"""Shared fixtures: a fresh in-memory database per test"""
from datetime import datetime, timedelta

import pytest

from clio_badges.config import RuleThresholds
from clio_badges.db import Database
from clio_badges.models.event import PurchaseEvent
from clio_badges.processor import EventProcessor

BASE_TIME = datetime(2025, 1, 1, 12, 0, 0)
WAD = 10 ** 18


def address(n: int) -> str:
    """Deterministic wallet address for test user n"""
    return '0x' + format(n, '040x')


@pytest.fixture
def database():
    database = Database()
    database.init('sqlite://')
    yield database
    database.dispose()


@pytest.fixture
def session(database):
    with database.session() as session:
        yield session


@pytest.fixture
def thresholds():
    return RuleThresholds()


@pytest.fixture
def processor(database, thresholds):
    return EventProcessor(database, thresholds)


@pytest.fixture
def make_event():
    """Build a PurchaseEvent; block n happens n minutes after BASE_TIME unless timestamp is given"""
    def _make(artist_id=1, buyer=1, token_amount=1000, new_supply=10 ** 9,
              new_price=WAD, block_number=1, timestamp=None, log_index=None):
        return PurchaseEvent(
            artist_id=artist_id,
            buyer=address(buyer) if isinstance(buyer, int) else buyer,
            token_amount=token_amount,
            new_supply=new_supply,
            new_price=new_price,
            block_number=block_number,
            timestamp=timestamp or BASE_TIME + timedelta(minutes=block_number),
            log_index=log_index
        )
    return _make
