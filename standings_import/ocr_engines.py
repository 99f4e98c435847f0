"""
OCR engine wrapper supporting multiple OCR libraries.
Handles tesseract, easyocr and paddleocr and returns the recognized text
of a whole standings image.
"""

import logging
import shlex
import numpy as np
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple, TYPE_CHECKING
import pytesseract

if TYPE_CHECKING:
    from standings_import.config_manager import ConfigManager


ProgressCallback = Callable[[int], None]

# Tesseract --oem values
ACCURACY_MODES = {
    'legacy': 0,
    'lstm': 1,
    'combined': 2,
    'default': 3,
}


class OCRService(Protocol):
    """Anything that turns a binarized image into text."""

    def recognize(
        self,
        image: np.ndarray,
        char_whitelist: str,
        accuracy_mode: str,
        progress_callback: Optional[ProgressCallback] = None
    ) -> str:
        ...


def join_detections_into_lines(
    detections: Sequence[Tuple[str, List[Tuple[float, float]]]]
) -> str:
    """
    Join positioned text fragments into reading-order lines.

    Fragments whose vertical centers are closer than half the median fragment
    height share a line; lines run top to bottom, fragments left to right.

    Args:
        detections: List of (text, coordinates) where coordinates are (x, y) points

    Returns:
        Newline-separated text
    """
    boxes = []
    for text, coords in detections:
        if not text or not coords:
            continue
        xs = [p[0] for p in coords]
        ys = [p[1] for p in coords]
        boxes.append((min(xs), (min(ys) + max(ys)) / 2, max(ys) - min(ys), text))

    if not boxes:
        return ''

    heights = sorted(box[2] for box in boxes)
    tolerance = max(heights[len(heights) // 2] / 2, 1.0)

    lines: List[List[Tuple[float, float, float, str]]] = []
    for box in sorted(boxes, key=lambda b: b[1]):
        if lines and abs(box[1] - lines[-1][-1][1]) <= tolerance:
            lines[-1].append(box)
        else:
            lines.append([box])

    return '\n'.join(' '.join(b[3] for b in sorted(line, key=lambda b: b[0])) for line in lines)


class OCREngine:
    """Unified OCR class to handle multiple different OCR libraries"""

    SUPPORTED_ENGINES = ['tesseract', 'easyocr', 'paddleocr']

    def __init__(
        self,
        config_manager: 'ConfigManager',
        primary_engine: str = 'tesseract',
        logger: Optional[logging.Logger] = None
    ):
        """
        Initializes the OCR engine specified as primary.

        Args:
            config_manager: Configuration manager instance for loading engine parameters
            primary_engine: Primary OCR engine to use
            logger: Logger instance

        Raises:
            ValueError: If engine is not supported
        """
        if primary_engine not in self.SUPPORTED_ENGINES:
            raise ValueError(f"Unsupported engine: {primary_engine}. Must be one of {self.SUPPORTED_ENGINES}")

        self.config_manager = config_manager
        self.primary_engine = primary_engine
        self.engine_config = config_manager.get_engine_config(primary_engine)
        self.logger = logger

        if self.logger:
            self.logger.info(f"Initializing {primary_engine} OCR engine")

        self.engine = self._initialize_engine(primary_engine)

    def _initialize_engine(self, engine_name: str) -> Any:
        """
        Initialize the specified OCR engine with parameters from config.

        Args:
            engine_name: Name of the engine to initialize

        Returns:
            Initialized OCR engine object

        Raises:
            RuntimeError: If engine initialization fails
        """
        try:
            if engine_name == 'tesseract':
                tesseract_cmd = self.engine_config.get('tesseract_cmd')
                if tesseract_cmd:
                    pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
                return pytesseract

            elif engine_name == 'easyocr':
                import easyocr
                languages = self.engine_config.get('languages', ['en'])
                gpu = self.engine_config.get('gpu', False)
                return easyocr.Reader(languages, gpu=gpu)

            elif engine_name == 'paddleocr':
                from paddleocr import PaddleOCR
                use_angle_cls = self.engine_config.get('use_angle_cls', True)
                lang = self.engine_config.get('lang', 'en')
                return PaddleOCR(
                    use_angle_cls=use_angle_cls,
                    lang=lang
                )

        except Exception as e:
            raise RuntimeError(f"Failed to initialize {engine_name}: {e}")

    def recognize(
        self,
        image: np.ndarray,
        char_whitelist: str,
        accuracy_mode: str = 'default',
        progress_callback: Optional[ProgressCallback] = None
    ) -> str:
        """
        Recognize all text in an image using the primary engine.

        Args:
            image: Binarized RGB(A) image as numpy array
            char_whitelist: Characters the engine may emit
            accuracy_mode: One of ACCURACY_MODES
            progress_callback: Called with progress percentages in [0, 100]

        Returns:
            Recognized text, one table line per text line

        Raises:
            ValueError: If accuracy mode is unknown
            RuntimeError: If OCR fails
        """
        if accuracy_mode not in ACCURACY_MODES:
            raise ValueError(f"Unknown accuracy mode: {accuracy_mode}. Must be one of {list(ACCURACY_MODES)}")

        rgb = image[..., :3] if image.ndim == 3 else image

        if progress_callback:
            progress_callback(0)

        try:
            if self.primary_engine == 'tesseract':
                text = self._recognize_tesseract(rgb, char_whitelist, accuracy_mode)

            elif self.primary_engine == 'easyocr':
                text = self._recognize_easyocr(rgb, char_whitelist, accuracy_mode)

            else:
                text = self._recognize_paddleocr(rgb, char_whitelist)

        except Exception as e:
            if self.logger:
                self.logger.error(f"OCR extraction failed: {e}")
            raise RuntimeError(f"{self.primary_engine} recognition failed: {e}")

        if progress_callback:
            progress_callback(100)

        if self.logger:
            self.logger.debug(f"{self.primary_engine} recognized {len(text)} characters")
        return text

    def _recognize_tesseract(self, image: np.ndarray, char_whitelist: str, accuracy_mode: str) -> str:
        """Extract text using Tesseract."""
        psm = self.engine_config.get('psm', 6)
        lang = self.engine_config.get('lang', 'eng')
        config = f"--oem {ACCURACY_MODES[accuracy_mode]} --psm {psm} -c preserve_interword_spaces=1"
        if char_whitelist:
            config += f" -c tessedit_char_whitelist={shlex.quote(char_whitelist)}"
        return self.engine.image_to_string(image, lang=lang, config=config)

    def _recognize_easyocr(self, image: np.ndarray, char_whitelist: str, accuracy_mode: str) -> str:
        """Extract text using EasyOCR."""
        decoder = 'beamsearch' if accuracy_mode in ('lstm', 'combined') else 'greedy'
        result = self.engine.readtext(
            image,
            allowlist=char_whitelist or None,
            decoder=decoder
        )

        detections = []
        for coords, text, _confidence in result or []:
            detections.append((text, [(float(p[0]), float(p[1])) for p in coords]))
        return join_detections_into_lines(detections)

    def _recognize_paddleocr(self, image: np.ndarray, char_whitelist: str) -> str:
        """Extract text using PaddleOCR."""
        result = self.engine.ocr(image)

        if not result or not result[0]:
            return ''

        allowed = set(char_whitelist) | {' '} if char_whitelist else None
        detections = []
        for line in result[0]:
            text = line[1][0]
            if allowed is not None:
                text = ''.join(ch for ch in text if ch in allowed)
            coords = [(float(p[0]), float(p[1])) for p in line[0]]
            detections.append((text, coords))
        return join_detections_into_lines(detections)
