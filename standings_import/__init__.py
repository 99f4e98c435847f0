"""
Standings Image Import Pipeline
"""

from standings_import.models import (
    CropSettings,
    Ink,
    MatchRecord,
    MatchResult,
    ParsedRow,
    PreprocessMode,
)
from standings_import.config_manager import ConfigManager
from standings_import.preprocessor import ImagePreprocessor, preprocess
from standings_import.image_loader import load_image
from standings_import.ocr_engines import OCREngine, OCRService
from standings_import.standings_parser import parse_standings
from standings_import.record_expander import expand_rows
from standings_import.match_store import InMemoryStore, JsonFileStore, KeyValueStore, MatchStore
from standings_import.orchestrator import PipelineState, StandingsImportProcessor
from standings_import.utils import setup_logger, save_json, load_json

__all__ = [
    'CropSettings',
    'Ink',
    'MatchRecord',
    'MatchResult',
    'ParsedRow',
    'PreprocessMode',
    'ConfigManager',
    'ImagePreprocessor',
    'preprocess',
    'load_image',
    'OCREngine',
    'OCRService',
    'parse_standings',
    'expand_rows',
    'InMemoryStore',
    'JsonFileStore',
    'KeyValueStore',
    'MatchStore',
    'PipelineState',
    'StandingsImportProcessor',
    'setup_logger',
    'save_json',
    'load_json',
]
