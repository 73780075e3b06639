"""Tests for the replay entry point."""

import json

import pytest

from clio_badges import __main__ as cli
from clio_badges.config import settings

from conftest import address, BASE_TIME


def raw(artist_id, buyer, block, /, **extra):
    data = {
        'artist_id': artist_id,
        'buyer': address(buyer),
        'token_amount': '1000',
        'new_supply': str(10 ** 9),
        'new_price': str(10 ** 18),
        'block_number': block,
        'timestamp': BASE_TIME.isoformat(),
    }
    data.update(extra)
    return data


@pytest.fixture
def dirs(tmp_path, monkeypatch):
    input_dir = tmp_path / 'input'
    output_dir = tmp_path / 'output'
    input_dir.mkdir()
    output_dir.mkdir()
    monkeypatch.setattr(settings, 'INPUT_DIR', str(input_dir))
    monkeypatch.setattr(settings, 'OUTPUT_DIR', str(output_dir))
    monkeypatch.setattr(settings, 'DATABASE_URL', 'sqlite://')
    return input_dir, output_dir


class TestReplay:
    """Test loading and replaying event files."""

    def test_load_json_and_jsonl(self, dirs):
        input_dir, _ = dirs
        (input_dir / 'a.json').write_text(json.dumps([raw(1, 1, 1), raw(1, 2, 2)]))
        (input_dir / 'b.jsonl').write_text(json.dumps(raw(1, 3, 3)) + '\n\n' + json.dumps(raw(1, 4, 4)) + '\n')
        (input_dir / 'notes.txt').write_text('ignored')

        events = cli.load_raw_events(input_dir)
        assert [e['block_number'] for e in events] == [1, 2, 3, 4]

    def test_json_must_be_array(self, dirs):
        input_dir, _ = dirs
        (input_dir / 'a.json').write_text(json.dumps(raw(1, 1, 1)))
        with pytest.raises(ValueError):
            cli.load_raw_events(input_dir)

    def test_parse_sorts_and_records_rejects(self):
        results = []
        events = cli.parse_events(
            [raw(1, 2, 5, log_index=1), raw(1, 1, 5, log_index=0), raw(1, 3, 2), raw(1, 4, 3, buyer='')],
            results
        )
        assert [(e.block_number, e.log_index) for e in events] == [(2, None), (5, 0), (5, 1)]
        assert len(results) == 1
        assert results[0]['position'] == 3

    def test_run_writes_results(self, dirs):
        input_dir, output_dir = dirs
        (input_dir / 'events.json').write_text(json.dumps([raw(1, n, n) for n in range(6, 0, -1)]))

        cli.run()

        output = json.loads((output_dir / 'results.json').read_text())
        assert [e['buyer'] for e in output['events']] == [address(n) for n in range(1, 7)]
        assert output['stats']['total_holders'] == 6
        assert output['stats']['total_badges_awarded'] == 5

    def test_run_exits_without_input(self, dirs):
        with pytest.raises(SystemExit):
            cli.run()
