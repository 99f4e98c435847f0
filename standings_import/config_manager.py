"""
Configuration management for the standings import pipeline.
Loads and validates JSON configuration files.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from standings_import.models import CropSettings, MatchResult, PreprocessMode
from standings_import.ocr_engines import ACCURACY_MODES
from standings_import.utils import load_json


class ConfigManager:
    """Manages configuration loading and validation."""

    REQUIRED_FIELDS = [
        'target_width',
        'preprocess_mode',
        'crop',
        'primary_engine',
        'char_whitelist',
        'accuracy_mode',
        'store_path',
        'output_paths',
    ]

    REQUIRED_OUTPUT_PATHS = ['preprocessed', 'logs']

    def __init__(self, config_path: str, logger: Optional[logging.Logger] = None):
        """
        Initialize config manager and load configuration.

        Args:
            config_path: Path to JSON pipeline config file
            logger: Logger instance

        Raises:
            IOError: If config file cannot be loaded
            ValueError: If config validation fails
        """
        self.logger = logger
        self.config_path = config_path
        self.config = self._load_and_validate_config(config_path)

        # OCR engine configuration lives next to the pipelines directory
        config_dir = Path(config_path).parent.parent
        self.ocr_engines_config = self._load_ocr_engines_config(str(config_dir / 'ocr_engines.json'))

    def _load_and_validate_config(self, config_path: str) -> Dict[str, Any]:
        """
        Load and validate configuration from JSON file.

        Args:
            config_path: Path to JSON config file

        Returns:
            Validated configuration dictionary

        Raises:
            IOError: If config file cannot be loaded
            ValueError: If config validation fails
        """
        try:
            config = load_json(config_path, self.logger)
        except IOError as e:
            raise IOError(f"Failed to load config from {config_path}: {e}")

        if not isinstance(config, dict):
            raise ValueError(f"Config {config_path} must contain a JSON object")

        missing_fields = [f for f in self.REQUIRED_FIELDS if f not in config]
        if missing_fields:
            raise ValueError(f"Missing required config fields: {missing_fields}")

        missing_paths = [p for p in self.REQUIRED_OUTPUT_PATHS if p not in config['output_paths']]
        if missing_paths:
            raise ValueError(f"Missing required output paths: {missing_paths}")

        target_width = config['target_width']
        if not isinstance(target_width, int) or isinstance(target_width, bool) or target_width <= 0:
            raise ValueError("target_width must be a positive integer")

        # Raise ValueError on bad values
        PreprocessMode.from_value(config['preprocess_mode'])
        CropSettings.from_dict(config['crop'])
        MatchResult.from_value(config.get('record_less_result', 'W'))

        if not isinstance(config['primary_engine'], str) or not config['primary_engine'].strip():
            raise ValueError("primary_engine must be a non-empty string")

        if config['accuracy_mode'] not in ACCURACY_MODES:
            raise ValueError(f"accuracy_mode must be one of {list(ACCURACY_MODES)}")

        if not isinstance(config['char_whitelist'], str):
            raise ValueError("char_whitelist must be a string")

        if self.logger:
            self.logger.info(f"Successfully loaded and validated config from {config_path}")

        return config

    def _load_ocr_engines_config(self, config_path: str) -> Dict[str, Any]:
        """
        Load OCR engines configuration from JSON file.

        Args:
            config_path: Path to ocr_engines.json

        Returns:
            OCR engines configuration dictionary

        Raises:
            IOError: If config file cannot be loaded
            ValueError: If config validation fails
        """
        try:
            ocr_engines_config = load_json(config_path, self.logger)
        except IOError as e:
            raise IOError(f"Failed to load OCR engines config from {config_path}: {e}")

        if 'engines' not in ocr_engines_config:
            raise ValueError("OCR engines config missing required fields: ['engines']")

        if not isinstance(ocr_engines_config['engines'], dict) or not ocr_engines_config['engines']:
            raise ValueError("engines must be a non-empty dictionary")

        if self.logger:
            self.logger.info(f"Successfully loaded OCR engines config from {config_path}")

        return ocr_engines_config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self.config.get(key, default)

    def get_target_width(self) -> int:
        return self.config['target_width']

    def get_preprocess_mode(self) -> PreprocessMode:
        return PreprocessMode.from_value(self.config['preprocess_mode'])

    def get_crop(self) -> CropSettings:
        return CropSettings.from_dict(self.config['crop'])

    def get_primary_engine(self) -> str:
        """Get the primary OCR engine name."""
        return self.config.get('primary_engine', 'tesseract')

    def get_engine_config(self, engine_name: str) -> Dict[str, Any]:
        """
        Get configuration parameters for a specific OCR engine.

        Args:
            engine_name: Name of the OCR engine (e.g., 'tesseract', 'easyocr', 'paddleocr')

        Returns:
            Engine-specific configuration dictionary
        """
        return self.ocr_engines_config.get('engines', {}).get(engine_name, {})

    def get_available_engines(self) -> List[str]:
        return list(self.ocr_engines_config.get('engines', {}).keys())

    def get_char_whitelist(self) -> str:
        return self.config['char_whitelist']

    def get_accuracy_mode(self) -> str:
        return self.config['accuracy_mode']

    def get_store_path(self) -> str:
        return self.config['store_path']

    def get_output_paths(self) -> Dict[str, str]:
        """Get output paths."""
        return self.config.get('output_paths', {})

    def get_auto_recognize(self) -> bool:
        """Whether OCR runs automatically when a new image is loaded."""
        return bool(self.config.get('auto_recognize', True))

    def get_save_preview(self) -> bool:
        return bool(self.config.get('save_preview', False))

    def get_record_less_result(self) -> MatchResult:
        """Outcome stored for rows without a W-L(-D) record."""
        return MatchResult.from_value(self.config.get('record_less_result', 'W'))
