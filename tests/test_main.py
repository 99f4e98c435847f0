import json
from pathlib import Path

import main
from standings_import.match_store import key_for_deck


def test_default_config_ships_with_the_package():
    assert Path(main.DEFAULT_CONFIG).is_absolute()
    assert Path(main.DEFAULT_CONFIG).is_file()


def test_list_works_outside_the_repo(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)

    assert main.main(['--deck-id', 'deck-1', '--list']) == 0
    assert '0 match record(s) for deck deck-1' in capsys.readouterr().out


def test_clear_and_list_stored_records(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    store_file = tmp_path / '.data' / 'match_results.json'
    store_file.parent.mkdir()
    stored = [{'id': 'a', 'result': 'W', 'round': '1-1', 'opponent': 'Alice'}]
    store_file.write_text(json.dumps({key_for_deck('deck-1'): json.dumps(stored)}), encoding='utf-8')

    assert main.main(['--deck-id', 'deck-1', '--list']) == 0
    assert 'vs Alice' in capsys.readouterr().out

    assert main.main(['--deck-id', 'deck-1', '--clear', '--list']) == 0
    assert '0 match record(s)' in capsys.readouterr().out
