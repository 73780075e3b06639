"""Tests for the holder, snapshot and badge ledgers."""

from datetime import timedelta

import pytest

from clio_badges.models.badges import GLOBAL_SCOPE, BadgeKind, artist_scope
from clio_badges.models.db import Artist, UserBadge
from clio_badges.services.artists import ArtistDirectory
from clio_badges.services.badges import BadgeLedger
from clio_badges.services.holders import HolderLedger
from clio_badges.services.snapshots import SnapshotLog

from conftest import address, BASE_TIME


class TestHolderLedger:
    """Test HolderLedger.record_purchase."""

    @pytest.fixture
    def ledger(self, session):
        return HolderLedger(session, early_holder_limit=50)

    def test_first_purchase_creates_placeholder_artist(self, ledger, session):
        assert ledger.record_purchase(9, address(1), 100, BASE_TIME) == 1

        artist = session.get(Artist, 9)
        assert artist is not None
        assert artist.genre is None
        assert artist.name == 'Artist 9'
        assert artist.token_address == '0x' + '0' * 39 + '9'

    def test_repeat_purchase_is_noop(self, ledger):
        ledger.record_purchase(1, address(1), 100, BASE_TIME)
        ledger.record_purchase(1, address(2), 101, BASE_TIME)
        assert ledger.record_purchase(1, address(1), 102, BASE_TIME) == 2

        holder = ledger.get_holder(1, address(1))
        assert holder.first_buy_block == 100

    def test_early_flag_for_first_fifty(self, ledger):
        for n in range(1, 53):
            assert ledger.record_purchase(1, address(n), n, BASE_TIME + timedelta(seconds=n)) == n

        for n in range(1, 53):
            assert ledger.get_holder(1, address(n)).is_early is (n <= 50)

        assert len(ledger.early_holders(1)) == 50

    def test_early_flag_never_revised(self, ledger):
        for n in range(1, 52):
            ledger.record_purchase(1, address(n), n, BASE_TIME)
        # Holder 51 buys again; still not early, holder 1 still early
        ledger.record_purchase(1, address(51), 60, BASE_TIME)
        ledger.record_purchase(1, address(1), 61, BASE_TIME)
        assert ledger.get_holder(1, address(51)).is_early is False
        assert ledger.get_holder(1, address(1)).is_early is True

    def test_counts_are_per_artist(self, ledger):
        ledger.record_purchase(1, address(1), 1, BASE_TIME)
        ledger.record_purchase(2, address(1), 2, BASE_TIME)
        ledger.record_purchase(2, address(2), 3, BASE_TIME)
        assert ledger.holder_count(1) == 1
        assert ledger.holder_count(2) == 2
        assert ledger.holder_count(3) == 0

    def test_genres_for_user(self, ledger, session):
        directory = ArtistDirectory(session)
        directory.register(1, genre='jazz')
        directory.register(2, genre='rock')
        directory.register(3, genre='jazz')
        directory.register(4)
        for artist_id in (1, 2, 3, 4):
            ledger.record_purchase(artist_id, address(1), artist_id, BASE_TIME)
        ledger.record_purchase(5, address(2), 10, BASE_TIME)

        assert ledger.genres_for_user(address(1)) == ['jazz', 'rock']
        assert ledger.genres_for_user(address(2)) == []


class TestArtistDirectory:
    """Test ArtistDirectory.register."""

    def test_register_fills_placeholder(self, session):
        HolderLedger(session).record_purchase(4, address(1), 1, BASE_TIME)
        directory = ArtistDirectory(session)
        directory.register(4, name='Nova', handle='@nova', genre='house')

        artist = directory.get(4)
        assert (artist.name, artist.handle, artist.genre) == ('Nova', '@nova', 'house')

    def test_register_keeps_unspecified_fields(self, session):
        directory = ArtistDirectory(session)
        directory.register(4, name='Nova', genre='house')
        directory.register(4, genre='techno')
        assert directory.get(4).name == 'Nova'
        assert directory.get(4).genre == 'techno'

    def test_negative_id_rejected(self, session):
        with pytest.raises(ValueError):
            ArtistDirectory(session).register(-1)


class TestSnapshotLog:
    """Test SnapshotLog queries."""

    @pytest.fixture
    def log(self, session):
        log = SnapshotLog(session)
        for minute, price, holders in [(0, 100, 1), (30, 90, 2), (60, 80, 3)]:
            log.append_snapshot(1, 10 + minute, price, holders, BASE_TIME + timedelta(minutes=minute))
        log.append_snapshot(2, 5, 1, 1, BASE_TIME)
        return log

    def test_most_recent_before_is_inclusive(self, log):
        snapshot = log.most_recent_before(1, BASE_TIME + timedelta(minutes=30))
        assert int(snapshot.price) == 90

    def test_most_recent_before_between_points(self, log):
        snapshot = log.most_recent_before(1, BASE_TIME + timedelta(minutes=59))
        assert int(snapshot.price) == 90

    def test_most_recent_before_without_history(self, log):
        assert log.most_recent_before(1, BASE_TIME - timedelta(seconds=1)) is None
        assert log.most_recent_before(3, BASE_TIME) is None

    def test_last_two(self, log):
        latest, previous = log.last_two(1)
        assert latest.holder_count == 3
        assert previous.holder_count == 2

    def test_last_two_short_history(self, log):
        latest, previous = log.last_two(2)
        assert latest.holder_count == 1
        assert previous is None
        assert log.last_two(3) == (None, None)

    def test_append_is_unconditional(self, log):
        log.append_snapshot(1, 70, 80, 3, BASE_TIME + timedelta(minutes=60))
        assert len(log.history(1)) == 4

    def test_contains(self, log):
        log.append_snapshot(4, 7, 1, 1, BASE_TIME, log_index=2)
        assert log.contains(1, 40)
        assert not log.contains(1, 41)
        assert log.contains(4, 7, 2)
        assert not log.contains(4, 7, 3)
        assert not log.contains(4, 7)

    def test_history_order_and_limit(self, log):
        assert [int(s.price) for s in log.history(1)] == [100, 90, 80]
        assert [int(s.price) for s in log.history(1, limit=2)] == [90, 80]

    def test_large_price_round_trips(self, log):
        huge = 2 ** 256 - 1
        log.append_snapshot(5, 1, huge, 1, BASE_TIME)
        assert int(log.last_two(5)[0].price) == huge


class TestBadgeLedger:
    """Test BadgeLedger.try_award."""

    @pytest.fixture
    def ledger(self, session):
        return BadgeLedger(session)

    def test_award_once(self, ledger, session):
        first = ledger.try_award(address(1), BadgeKind.PROMETHEAN_BACKER, artist_scope(1), {'holderRank': 1})
        second = ledger.try_award(address(1), BadgeKind.PROMETHEAN_BACKER, artist_scope(1), {'holderRank': 9})
        assert first.awarded is True
        assert second.awarded is False

        rows = session.query(UserBadge).all()
        assert len(rows) == 1
        assert rows[0].meta == {'holderRank': 1}
        assert rows[0].artist_id == 1

    def test_distinct_scopes_and_kinds(self, ledger, session):
        assert ledger.try_award(address(1), BadgeKind.TITAN_OF_SUPPORT, artist_scope(1)).awarded
        assert ledger.try_award(address(1), BadgeKind.TITAN_OF_SUPPORT, artist_scope(2)).awarded
        assert ledger.try_award(address(1), BadgeKind.NEREID_NAVIGATOR, artist_scope(1)).awarded
        assert ledger.try_award(address(2), BadgeKind.TITAN_OF_SUPPORT, artist_scope(1)).awarded
        assert session.query(UserBadge).count() == 4

    def test_global_scope(self, ledger, session):
        assert ledger.try_award(address(1), BadgeKind.MUSE_WANDERER, GLOBAL_SCOPE).awarded
        assert not ledger.try_award(address(1), BadgeKind.MUSE_WANDERER, GLOBAL_SCOPE).awarded

        award = session.query(UserBadge).one()
        assert award.scope == GLOBAL_SCOPE
        assert award.artist_id is None
        assert ledger.has_award(address(1), BadgeKind.MUSE_WANDERER, GLOBAL_SCOPE)

    def test_artist_zero_is_not_global(self, ledger):
        assert ledger.try_award(address(1), BadgeKind.MUSE_WANDERER, artist_scope(0)).awarded
        assert ledger.try_award(address(1), BadgeKind.MUSE_WANDERER, GLOBAL_SCOPE).awarded
