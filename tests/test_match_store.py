import json

import pytest

from standings_import.match_store import InMemoryStore, JsonFileStore, MatchStore, key_for_deck
from standings_import.models import MatchRecord, MatchResult


def make_records(*opponents, result=MatchResult.WIN):
    return [MatchRecord(result=result, round=f"{i}-1", opponent=name) for i, name in enumerate(opponents, 1)]


@pytest.fixture
def store():
    return MatchStore(InMemoryStore())


def test_list_is_empty_for_unknown_deck(store):
    assert store.list('deck-1') == []
    assert store.count('deck-1') == 0


def test_bulk_add_prepends_new_records_in_order(store):
    store.bulk_add('deck-1', make_records('Old'))
    added = store.bulk_add('deck-1', make_records('Alice', 'Bob', 'Carol'))

    records = store.list('deck-1')
    assert added == 3
    assert len(records) == 4
    assert [r.opponent for r in records] == ['Alice', 'Bob', 'Carol', 'Old']


def test_bulk_add_stamps_ids_timestamps_and_deck(store):
    store.bulk_add('deck-1', make_records('Alice', 'Bob'))

    records = store.list('deck-1')
    assert all(r.deck_id == 'deck-1' for r in records)
    assert all(r.date_iso for r in records)
    assert len({r.id for r in records}) == 2


def test_bulk_add_keeps_supplied_id_and_timestamp(store):
    record = MatchRecord(result=MatchResult.DRAW, id='fixed', date_iso='2024-05-01T10:00:00+00:00')
    store.bulk_add('deck-1', [record])

    stored = store.list('deck-1')[0]
    assert stored.id == 'fixed'
    assert stored.date_iso == '2024-05-01T10:00:00+00:00'


def test_bulk_add_rejects_colliding_id_without_writing(store):
    store.bulk_add('deck-1', [MatchRecord(result=MatchResult.WIN, id='a')])

    with pytest.raises(ValueError):
        store.bulk_add('deck-1', [MatchRecord(result=MatchResult.LOSS, id='a')])
    assert store.count('deck-1') == 1


def test_persist_replaces_full_list(store):
    store.bulk_add('deck-1', make_records('Alice', 'Bob'))
    store.persist('deck-1', make_records('Zed'))

    assert [r.opponent for r in store.list('deck-1')] == ['Zed']


def test_delete_one_and_clear(store):
    store.bulk_add('deck-1', make_records('Alice', 'Bob'))
    alice = store.list('deck-1')[0]

    assert store.delete_one('deck-1', alice.id) is True
    assert store.delete_one('deck-1', alice.id) is False
    assert [r.opponent for r in store.list('deck-1')] == ['Bob']

    store.clear('deck-1')
    assert store.list('deck-1') == []


def test_decks_are_isolated(store):
    store.bulk_add('deck-1', make_records('Alice'))
    store.bulk_add('deck-2', make_records('Bob', 'Carol'))

    assert store.count('deck-1') == 1
    assert store.count('deck-2') == 2


@pytest.mark.parametrize('raw', ['not json', '{"a": 1}', '[{"opponent": "no result"}]', '[1, 2]'])
def test_corrupt_state_reads_as_empty(raw):
    store = MatchStore(InMemoryStore({key_for_deck('deck-1'): raw}))
    assert store.list('deck-1') == []


def test_persisted_form_uses_camel_case_keys():
    backing = InMemoryStore()
    MatchStore(backing).bulk_add('deck-1', make_records('Alice'))

    payload = json.loads(backing.get('ldb:results:deck-1'))
    assert payload[0]['deckId'] == 'deck-1'
    assert payload[0]['result'] == 'W'
    assert payload[0]['opponentInks'] == 'unknown'
    assert 'dateISO' in payload[0]


def test_json_file_store_round_trip(tmp_path):
    path = tmp_path / 'data' / 'results.json'
    store = MatchStore(JsonFileStore(str(path)))
    store.bulk_add('deck-1', make_records('Alice', 'Bob'))

    reopened = MatchStore(JsonFileStore(str(path)))
    assert [r.opponent for r in reopened.list('deck-1')] == ['Alice', 'Bob']
    assert list(json.loads(path.read_text(encoding='utf-8'))) == ['ldb:results:deck-1']


def test_json_file_store_reads_corrupt_file_as_empty_but_will_not_overwrite_it(tmp_path):
    path = tmp_path / 'results.json'
    path.write_text('{broken', encoding='utf-8')

    kv = JsonFileStore(str(path))
    assert kv.get('anything') is None
    assert MatchStore(kv).list('deck-1') == []

    with pytest.raises(IOError):
        kv.set('k', 'v')
    assert path.read_text(encoding='utf-8') == '{broken'


def make_store_with(items):
    backing = InMemoryStore({key_for_deck('deck-1'): json.dumps(items)})
    return backing, MatchStore(backing)


MIXED_ITEMS = [
    {'id': 'a', 'result': 'W', 'opponent': 'Old'},
    {'id': 'b', 'result': 'L', 'opponentInks': ['Purple']},
    {'id': 'c', 'opponent': 'no result'},
]


def test_list_skips_only_undecodable_items():
    _backing, store = make_store_with(MIXED_ITEMS)

    records = store.list('deck-1')
    assert [r.id for r in records] == ['a']
    assert records[0].opponent == 'Old'


def test_bulk_add_keeps_existing_items_it_cannot_decode():
    backing, store = make_store_with(MIXED_ITEMS)

    store.bulk_add('deck-1', make_records('New'))

    payload = json.loads(backing.get(key_for_deck('deck-1')))
    assert len(payload) == 4
    assert payload[0]['opponent'] == 'New'
    assert payload[1]['id'] == 'a'
    assert payload[2:] == MIXED_ITEMS[1:]
    assert [r.opponent for r in store.list('deck-1')] == ['New', 'Old']


def test_delete_one_keeps_undecodable_items_and_can_remove_them_by_id():
    backing, store = make_store_with(MIXED_ITEMS)

    assert store.delete_one('deck-1', 'a') is True
    assert json.loads(backing.get(key_for_deck('deck-1'))) == MIXED_ITEMS[1:]

    assert store.delete_one('deck-1', 'b') is True
    assert json.loads(backing.get(key_for_deck('deck-1'))) == MIXED_ITEMS[2:]


def test_bulk_add_rejects_id_taken_by_undecodable_item():
    backing, store = make_store_with(MIXED_ITEMS)

    with pytest.raises(ValueError):
        store.bulk_add('deck-1', [MatchRecord(result=MatchResult.WIN, id='b')])
    assert json.loads(backing.get(key_for_deck('deck-1'))) == MIXED_ITEMS


@pytest.mark.parametrize('raw', ['not json', '{"a": 1}'])
def test_writes_refuse_to_replace_unreadable_list(raw):
    backing = InMemoryStore({key_for_deck('deck-1'): raw})
    store = MatchStore(backing)

    with pytest.raises(ValueError):
        store.bulk_add('deck-1', make_records('New'))
    with pytest.raises(ValueError):
        store.delete_one('deck-1', 'a')
    with pytest.raises(ValueError):
        store.clear('deck-1')
    assert backing.get(key_for_deck('deck-1')) == raw

    # an explicit full replace is still allowed
    store.persist('deck-1', make_records('Fresh'))
    assert [r.opponent for r in store.list('deck-1')] == ['Fresh']
