"""
Main standings import processor orchestrating the full pipeline.
Coordinates preprocessing, OCR, parsing, record expansion and storage.
"""

import threading
import uuid
import numpy as np
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from standings_import.config_manager import ConfigManager
from standings_import.image_loader import load_image
from standings_import.match_store import JsonFileStore, KeyValueStore, MatchStore
from standings_import.models import CropSettings, ParsedRow, PreprocessMode
from standings_import.ocr_engines import OCREngine, OCRService
from standings_import.preprocessor import ImagePreprocessor
from standings_import.record_expander import expand_rows
from standings_import.standings_parser import parse_standings
from standings_import.utils import setup_logger


DEFAULT_LOG_DIR = '.logging'


class PipelineState(str, Enum):
    IDLE = 'idle'
    PREPROCESSING = 'preprocessing'
    RECOGNIZING = 'recognizing'
    PARSED = 'parsed'
    IMPORTED = 'imported'
    FAILED = 'failed'


# state -> states it may move to
ALLOWED_TRANSITIONS = {
    PipelineState.IDLE: {PipelineState.PREPROCESSING},
    PipelineState.PREPROCESSING: {
        PipelineState.PREPROCESSING, PipelineState.RECOGNIZING, PipelineState.PARSED, PipelineState.FAILED,
    },
    PipelineState.RECOGNIZING: {PipelineState.PARSED, PipelineState.FAILED},
    PipelineState.PARSED: {
        PipelineState.PARSED, PipelineState.PREPROCESSING, PipelineState.RECOGNIZING, PipelineState.IMPORTED,
    },
    PipelineState.IMPORTED: {PipelineState.PARSED, PipelineState.PREPROCESSING, PipelineState.RECOGNIZING},
    PipelineState.FAILED: {PipelineState.PARSED, PipelineState.PREPROCESSING, PipelineState.RECOGNIZING},
}


class StandingsImportProcessor:
    """Orchestrates the standings-image-to-match-record pipeline."""

    def __init__(
        self,
        config_path: str,
        debug: bool = False,
        ocr_service: Optional[OCRService] = None,
        kv_store: Optional[KeyValueStore] = None,
        log_dir: Optional[str] = None
    ):
        """
        Initialize standings import processor.

        Args:
            config_path: Path to JSON configuration file
            debug: Enable debug logging
            ocr_service: OCR implementation (built from config if None)
            kv_store: Backing store for match records (JSON file from config if None)
            log_dir: Directory for log files (output_paths.logs from config if None)

        Raises:
            IOError: If config or supporting files cannot be loaded
            ValueError: If config validation fails or debug is not a boolean
        """
        if not isinstance(debug, bool):
            raise ValueError(f"debug parameter must be a boolean, got {type(debug).__name__}")

        self.debug = debug

        # config first: it names the log directory
        config_error = None
        try:
            self.config_path = config_path
            self.config_manager = ConfigManager(config_path)
        except (IOError, ValueError) as e:
            config_error = e

        if log_dir is None:
            log_dir = DEFAULT_LOG_DIR if config_error else self.config_manager.get_output_paths()['logs']

        self.logger = setup_logger(
            name='StandingsImport',
            log_dir=log_dir,
            debug=debug,
            console_output=True
        )

        self.logger.info("=" * 80)
        self.logger.info("Starting Standings Import Processor")
        self.logger.info(f"Config path: {config_path}")
        self.logger.info("=" * 80)

        if config_error is not None:
            self.logger.error(f"Failed to load configuration: {config_error}")
            raise config_error
        self.config_manager.logger = self.logger
        self.logger.info(f"Loaded and validated config from {config_path}")

        self.output_paths = self.config_manager.get_output_paths()
        self.preprocessor = ImagePreprocessor(self.logger)

        if ocr_service is None:
            ocr_service = OCREngine(
                config_manager=self.config_manager,
                primary_engine=self.config_manager.get_primary_engine(),
                logger=self.logger
            )
        self.ocr_service = ocr_service

        if kv_store is None:
            kv_store = JsonFileStore(self.config_manager.get_store_path(), self.logger)
        self.match_store = MatchStore(kv_store, self.logger)

        # Per-image settings, seeded from config
        self.crop = self.config_manager.get_crop()
        self.mode = self.config_manager.get_preprocess_mode()
        self.target_width = self.config_manager.get_target_width()

        self.state = PipelineState.IDLE
        self.progress = 0
        self.source_image: Optional[np.ndarray] = None
        self.source_name = ''
        self.preview: Optional[np.ndarray] = None
        self.text = ''
        self.rows: List[ParsedRow] = []
        self.run_id = ''

        self._state_lock = threading.Lock()
        self._recognition_lock = threading.Lock()
        self._image_generation = 0
        self._auto_recognized_generation = 0

        self.logger.info("Standings Import Processor initialized successfully")

    def _transition(self, new_state: PipelineState) -> None:
        with self._state_lock:
            if new_state not in ALLOWED_TRANSITIONS[self.state]:
                raise RuntimeError(f"Invalid pipeline transition: {self.state.value} -> {new_state.value}")
            self.logger.debug(f"Pipeline state: {self.state.value} -> {new_state.value}")
            self.state = new_state

    def load_image(self, image: Union[str, Path, np.ndarray]) -> List[ParsedRow]:
        """
        Load a new image, build its preview and run OCR once if auto_recognize is on.

        Args:
            image: Path to an image file, or an RGB(A) array

        Returns:
            Parsed rows (empty if OCR did not run)

        Raises:
            RuntimeError: If a recognition is in flight
            ValueError: If the image cannot be preprocessed with the current settings
        """
        if self._recognition_lock.locked():
            raise RuntimeError("Cannot load a new image while recognition is in progress")

        if isinstance(image, np.ndarray):
            source = image.copy()
            self.source_name = 'image'
        else:
            source = load_image(str(image), self.logger)
            self.source_name = Path(image).stem

        self._transition(PipelineState.PREPROCESSING)
        self.source_image = source
        self.text = ''
        self.rows = []
        self.progress = 0
        self.run_id = uuid.uuid4().hex[:8]
        self._image_generation += 1
        self.logger.info(f"Loaded {self.source_name} (run {self.run_id})")

        self._refresh_preview()

        if self.config_manager.get_auto_recognize() and self._auto_recognized_generation != self._image_generation:
            self._auto_recognized_generation = self._image_generation
            return self.recognize()
        return []

    def set_crop(self, crop: Union[CropSettings, Dict[str, Any]]) -> np.ndarray:
        """Change crop settings and recompute the preview. Does not run OCR."""
        if isinstance(crop, dict):
            crop = CropSettings.from_dict(crop)
        self.crop = crop
        return self._refresh_preview()

    def set_mode(self, mode: Union[PreprocessMode, str]) -> np.ndarray:
        """Change the binarization mode and recompute the preview. Does not run OCR."""
        self.mode = PreprocessMode.from_value(mode)
        return self._refresh_preview()

    def _refresh_preview(self) -> Optional[np.ndarray]:
        if self.source_image is None:
            return None

        try:
            self.preview = self.preprocessor.preprocess(self.source_image, self.crop, self.target_width, self.mode)
        except ValueError as e:
            self.logger.error(f"Preprocessing failed: {e}")
            self.preview = None
            if self.state == PipelineState.PREPROCESSING:
                self._transition(PipelineState.FAILED)
            raise

        if self.config_manager.get_save_preview():
            preview_path = Path(self.output_paths['preprocessed']) / f"{self.source_name}_{self.run_id}_preprocessed.png"
            self.preprocessor.save_preprocessed_image(self.preview, str(preview_path))
        return self.preview

    def _on_progress(self, value: int) -> None:
        self.progress = max(0, min(100, int(value)))
        self.logger.debug(f"Recognizing... {self.progress}%")

    def recognize(self) -> List[ParsedRow]:
        """
        Run OCR on the current preview and parse the text.

        Returns:
            Parsed rows

        Raises:
            RuntimeError: If no preview exists, a recognition is already running, or OCR fails
        """
        if self.preview is None:
            raise RuntimeError("No preprocessed image to recognize")

        if not self._recognition_lock.acquire(blocking=False):
            raise RuntimeError("A recognition is already in progress")

        try:
            self._transition(PipelineState.RECOGNIZING)
            self.progress = 0
            self.text = ''
            self.rows = []

            try:
                text = self.ocr_service.recognize(
                    self.preview,
                    self.config_manager.get_char_whitelist(),
                    self.config_manager.get_accuracy_mode(),
                    self._on_progress
                )
            except Exception as e:
                self.logger.error(f"OCR failed: {e}")
                self._transition(PipelineState.FAILED)
                raise

            self.text = text or ''
            self.rows = parse_standings(self.text)
            self._transition(PipelineState.PARSED)
            self.logger.info(f"Recognized {len(self.text)} characters, parsed {len(self.rows)} rows")
            return self.rows
        finally:
            self._recognition_lock.release()

    def update_text(self, text: str) -> List[ParsedRow]:
        """Replace the recognized text (manual correction) and re-parse it."""
        if self._recognition_lock.locked():
            raise RuntimeError("Cannot edit text while recognition is in progress")
        self.text = text or ''
        self.rows = parse_standings(self.text)
        self._transition(PipelineState.PARSED)
        self.logger.info(f"Re-parsed edited text: {len(self.rows)} rows")
        return self.rows

    def import_rows(self, deck_id: str, deck_name: Optional[str] = None) -> int:
        """
        Expand parsed rows into match records and store them for a deck.

        Returns:
            Number of match records added

        Raises:
            ValueError: If there are no parsed rows
            RuntimeError: If the pipeline has no fresh parse to import
        """
        if self.state != PipelineState.PARSED:
            raise RuntimeError(f"Nothing to import in state {self.state.value}")
        if not self.rows:
            raise ValueError("No parsed rows to import")

        records = expand_rows(self.rows, self.config_manager.get_record_less_result(), self.logger)
        try:
            added = self.match_store.bulk_add(deck_id, records)
        except Exception as e:
            self.logger.error(f"Failed to store match records: {e}")
            raise

        self._transition(PipelineState.IMPORTED)
        self.logger.info(f'Imported {added} match record(s) into deck "{deck_name or deck_id}"')
        return added

    def process_image(
        self,
        image_path: str,
        deck_id: str,
        deck_name: Optional[str] = None,
        dry_run: bool = False
    ) -> Dict[str, Any]:
        """
        Process a single image through the full pipeline.

        Args:
            image_path: Path to input image
            deck_id: Deck that receives the match records
            deck_name: Display name used in log messages
            dry_run: Parse only, store nothing

        Returns:
            Dictionary with results metadata

        Raises:
            FileNotFoundError, IOError: If the image cannot be loaded
            ValueError: If preprocessing fails or nothing was parsed
            RuntimeError: If OCR fails
        """
        self.logger.info(f"\nProcessing image: {image_path}")

        rows = self.load_image(image_path)
        if self.state != PipelineState.PARSED:
            rows = self.recognize()

        added = 0
        if not dry_run:
            added = self.import_rows(deck_id, deck_name)

        return {
            'run_id': self.run_id,
            'image': str(image_path),
            'state': self.state.value,
            'text_length': len(self.text),
            'parsed_rows': len(rows),
            'records_added': added,
            'rows': rows,
        }
