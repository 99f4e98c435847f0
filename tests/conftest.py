import json

import numpy as np
import pytest

from standings_import.match_store import InMemoryStore
from standings_import.orchestrator import StandingsImportProcessor


TABULAR_TEXT = "Rank,Player,Points,Record\n1,Alice,9,3-0-0\n2,Bob,6,2-1-0"
BLOCK_TEXT = "1st. Alice\nPoints: 9\nRECORD 3-0-0\n\n2nd. Bob\nPoints: 6\nRECORD 2-1-0"


class FakeOCR:
    """OCR stand-in returning canned text and reporting progress."""

    def __init__(self, text=TABULAR_TEXT, during=None):
        self.text = text
        self.during = during
        self.calls = []

    def recognize(self, image, char_whitelist, accuracy_mode, progress_callback=None):
        self.calls.append((image.shape, char_whitelist, accuracy_mode))
        if progress_callback:
            progress_callback(0)
            progress_callback(50)
        if self.during:
            self.during()
        if progress_callback:
            progress_callback(100)
        return self.text


class FailingOCR:
    def recognize(self, image, char_whitelist, accuracy_mode, progress_callback=None):
        if progress_callback:
            progress_callback(10)
        raise RuntimeError("tesseract crashed")


def write_config(config_dir, **overrides):
    """Write a pipeline config plus ocr_engines.json under config_dir; return the pipeline path."""
    pipelines = config_dir / 'pipelines'
    pipelines.mkdir(parents=True, exist_ok=True)
    config = {
        'target_width': 200,
        'preprocess_mode': 'auto',
        'crop': {'top': 0, 'right': 0, 'bottom': 0, 'left': 0},
        'primary_engine': 'tesseract',
        'char_whitelist': 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-.,:',
        'accuracy_mode': 'default',
        'auto_recognize': True,
        'save_preview': False,
        'store_path': str(config_dir / 'store.json'),
        'output_paths': {
            'preprocessed': str(config_dir / 'preprocessed'),
            'logs': str(config_dir / 'logs'),
        },
    }
    config.update(overrides)
    path = pipelines / 'test.json'
    path.write_text(json.dumps(config), encoding='utf-8')
    (config_dir / 'ocr_engines.json').write_text(
        json.dumps({'engines': {'tesseract': {'lang': 'eng', 'psm': 6}}}),
        encoding='utf-8'
    )
    return path


@pytest.fixture
def config_path(tmp_path):
    return write_config(tmp_path / 'configs')


@pytest.fixture
def screenshot():
    """Light-gray 'screenshot' with a dark band, 100 wide by 60 tall."""
    image = np.full((60, 100, 3), 220, dtype=np.uint8)
    image[20:30, 10:90] = 40
    return image


@pytest.fixture
def make_processor(tmp_path):
    def _make(ocr=None, store=None, **config_overrides):
        path = write_config(tmp_path / 'configs', **config_overrides)
        return StandingsImportProcessor(
            str(path),
            debug=True,
            ocr_service=ocr if ocr is not None else FakeOCR(),
            kv_store=store if store is not None else InMemoryStore(),
            log_dir=str(tmp_path / 'logs'),
        )
    return _make
