import json
from pathlib import Path

import pytest

from standings_import.config_manager import ConfigManager
from standings_import.models import CropSettings, MatchResult, PreprocessMode

from conftest import write_config


REPO_CONFIG = Path(__file__).resolve().parent.parent / 'standings_import' / 'configs' / 'pipelines' / 'default.json'


def test_loads_shipped_default_config():
    manager = ConfigManager(str(REPO_CONFIG))

    assert manager.get_target_width() == 1600
    assert manager.get_preprocess_mode() is PreprocessMode.AUTO
    assert manager.get_crop() == CropSettings()
    assert manager.get_primary_engine() == 'tesseract'
    assert set(manager.get_available_engines()) == {'tesseract', 'easyocr', 'paddleocr'}
    assert manager.get_record_less_result() is MatchResult.WIN


def test_accessors(tmp_path):
    path = write_config(tmp_path, crop={'top': 10, 'right': 0, 'bottom': 5, 'left': 0},
                        preprocess_mode='colored-text', auto_recognize=False)
    manager = ConfigManager(str(path))

    assert manager.get_crop() == CropSettings(top=10, bottom=5)
    assert manager.get_preprocess_mode() is PreprocessMode.COLORED_TEXT
    assert manager.get_auto_recognize() is False
    assert manager.get_engine_config('tesseract') == {'lang': 'eng', 'psm': 6}
    assert manager.get_engine_config('easyocr') == {}


def test_missing_fields_are_reported(tmp_path):
    path = write_config(tmp_path)
    config = json.loads(path.read_text(encoding='utf-8'))
    del config['char_whitelist']
    del config['store_path']
    path.write_text(json.dumps(config), encoding='utf-8')

    with pytest.raises(ValueError, match='char_whitelist'):
        ConfigManager(str(path))


@pytest.mark.parametrize('overrides', [
    {'target_width': 0},
    {'preprocess_mode': 'sepia'},
    {'crop': {'top': 55}},
    {'accuracy_mode': 'turbo'},
    {'record_less_result': 'maybe'},
    {'output_paths': {'logs': 'x'}},
])
def test_invalid_values_are_rejected(tmp_path, overrides):
    path = write_config(tmp_path, **overrides)
    with pytest.raises(ValueError):
        ConfigManager(str(path))


def test_missing_file_raises_ioerror(tmp_path):
    with pytest.raises(IOError):
        ConfigManager(str(tmp_path / 'pipelines' / 'nope.json'))
