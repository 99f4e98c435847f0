"""
Image preprocessing module for the standings OCR pipeline.
Rescales, crops and binarizes a standings screenshot before OCR.
"""

import logging
import math
import cv2
import numpy as np
from pathlib import Path
from typing import Optional, Tuple
from PIL import Image

from standings_import.models import CropSettings, PreprocessMode


DEFAULT_TARGET_WIDTH = 1600

# Any channel pair further apart than this marks the pixel as colorful
COLORFUL_CHANNEL_DIFF = 30


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_crop_box(
    width: int,
    height: int,
    crop: CropSettings
) -> Tuple[int, int, int, int]:
    """
    Convert crop percentages into a pixel box on a width x height image.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        crop: Crop percentages

    Returns:
        Tuple of (x, y, crop_width, crop_height)

    Raises:
        ValueError: If the crop leaves no pixels
    """
    x = _round_half_up(crop.left / 100 * width)
    y = _round_half_up(crop.top / 100 * height)
    crop_width = _round_half_up(width - (crop.left + crop.right) / 100 * width)
    crop_height = _round_half_up(height - (crop.top + crop.bottom) / 100 * height)

    if crop_width <= 0 or crop_height <= 0:
        raise ValueError(
            f"Crop {crop.to_dict()} leaves an empty region ({crop_width}x{crop_height}) "
            f"on a {width}x{height} image"
        )

    # rounding can push the box one pixel past the edge
    crop_width = min(crop_width, width - x)
    crop_height = min(crop_height, height - y)
    if crop_width <= 0 or crop_height <= 0:
        raise ValueError(f"Crop {crop.to_dict()} leaves an empty region on a {width}x{height} image")

    return x, y, crop_width, crop_height


class ImagePreprocessor:
    """Turns a raw RGB(A) bitmap into a black and white image tuned for OCR."""

    # Mapping of preprocess modes to their binarization handlers
    MODE_HANDLERS = {
        PreprocessMode.AUTO: 'binarize_auto',
        PreprocessMode.HIGH_CONTRAST: 'binarize_high_contrast',
        PreprocessMode.COLORED_TEXT: 'binarize_colored_text',
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize preprocessor.

        Args:
            logger: Logger instance
        """
        self.logger = logger

    def preprocess(
        self,
        image: np.ndarray,
        crop: Optional[CropSettings] = None,
        target_width: int = DEFAULT_TARGET_WIDTH,
        mode: PreprocessMode = PreprocessMode.AUTO
    ) -> np.ndarray:
        """
        Rescale, crop and binarize an image.

        The source array is left untouched; a new array is returned.

        Args:
            image: HxWx3 (RGB) or HxWx4 (RGBA) uint8 array, or HxW grayscale
            crop: Crop percentages (no crop if None)
            target_width: Width in pixels after rescaling
            mode: Binarization heuristic

        Returns:
            Binarized image with the same channel count as the (expanded) input

        Raises:
            ValueError: If the image, target width or crop is invalid
        """
        crop = crop or CropSettings()
        mode = PreprocessMode.from_value(mode)
        rgb = self._as_color_array(image)

        scaled = self.rescale(rgb, target_width)
        height, width = scaled.shape[:2]

        x, y, crop_width, crop_height = compute_crop_box(width, height, crop)
        region = scaled[y:y + crop_height, x:x + crop_width]

        if self.logger:
            self.logger.debug(
                f"Preprocessing {rgb.shape[1]}x{rgb.shape[0]} -> {width}x{height}, "
                f"crop box ({x}, {y}, {crop_width}, {crop_height}), mode={mode.value}"
            )

        handler = getattr(self, self.MODE_HANDLERS[mode])
        mask = handler(region[..., :3])

        result = np.empty_like(region)
        result[..., :3] = np.where(mask, 255, 0).astype(np.uint8)[..., np.newaxis]
        if region.shape[2] == 4:
            result[..., 3] = region[..., 3]
        return result

    @staticmethod
    def _as_color_array(image: np.ndarray) -> np.ndarray:
        if image is None or not isinstance(image, np.ndarray) or image.size == 0:
            raise ValueError("Invalid image for preprocessing")
        if image.dtype != np.uint8:
            raise ValueError(f"Image must be uint8, got {image.dtype}")
        if image.ndim == 2:
            return np.stack([image] * 3, axis=-1)
        if image.ndim == 3 and image.shape[2] in (3, 4):
            return image
        raise ValueError(f"Unsupported image shape: {image.shape}")

    @staticmethod
    def rescale(image: np.ndarray, target_width: int) -> np.ndarray:
        """Resize so width equals target_width, keeping the aspect ratio (PIL LANCZOS)."""
        if not isinstance(target_width, int) or target_width <= 0:
            raise ValueError(f"target_width must be a positive integer, got {target_width!r}")

        original_height, original_width = image.shape[:2]
        scale = target_width / original_width
        height = _round_half_up(original_height * scale)
        if height <= 0:
            raise ValueError(f"Rescaling {original_width}x{original_height} to width {target_width} leaves no rows")

        if (target_width, height) == (original_width, original_height):
            return image.copy()

        pil_image = Image.fromarray(np.ascontiguousarray(image))
        resized_image = pil_image.resize((target_width, height), Image.LANCZOS)
        return np.array(resized_image)

    # Binarization signals
    @staticmethod
    def luminance(rgb: np.ndarray) -> np.ndarray:
        """Per-pixel luminance 0.299R + 0.587G + 0.114B."""
        channels = rgb.astype(np.float32)
        return 0.299 * channels[..., 0] + 0.587 * channels[..., 1] + 0.114 * channels[..., 2]

    @staticmethod
    def colorfulness(rgb: np.ndarray) -> np.ndarray:
        """True where any two channels differ by more than COLORFUL_CHANNEL_DIFF."""
        channels = rgb.astype(np.int16)
        r, g, b = channels[..., 0], channels[..., 1], channels[..., 2]
        return (
            (np.abs(r - g) > COLORFUL_CHANNEL_DIFF)
            | (np.abs(g - b) > COLORFUL_CHANNEL_DIFF)
            | (np.abs(r - b) > COLORFUL_CHANNEL_DIFF)
        )

    # Binarization handlers: return True where the output pixel is white
    @classmethod
    def binarize_colored_text(cls, rgb: np.ndarray) -> np.ndarray:
        """Colored pixels by channel spread, gray pixels by luminance."""
        channels = rgb.astype(np.int16)
        spread = channels.max(axis=-1) - channels.min(axis=-1)
        colorful = cls.colorfulness(rgb)
        return np.where(colorful, spread > 50, cls.luminance(rgb) > 150)

    @classmethod
    def binarize_high_contrast(cls, rgb: np.ndarray) -> np.ndarray:
        """Aggressive contrast stretch for washed-out photos."""
        enhanced = np.clip((cls.luminance(rgb) - 30) * 2, 0, 255)
        return enhanced > 200

    @classmethod
    def binarize_auto(cls, rgb: np.ndarray) -> np.ndarray:
        """Mild contrast stretch with a lower threshold for colorful pixels."""
        enhanced = np.clip((cls.luminance(rgb) - 50) * 1.5 + 50, 0, 255)
        threshold = np.where(cls.colorfulness(rgb), 120, 180)
        return enhanced > threshold

    def save_preprocessed_image(
        self,
        image: np.ndarray,
        output_path: str
    ) -> None:
        """
        Save preprocessed image as PNG.

        Args:
            image: Preprocessed RGB(A) image
            output_path: Path to save PNG file

        Raises:
            IOError: If file writing fails
        """
        try:
            Path(output_path).parent.mkdir(parents=True, exist_ok=True)
            conversion = cv2.COLOR_RGBA2BGRA if image.shape[2] == 4 else cv2.COLOR_RGB2BGR
            success = cv2.imwrite(output_path, cv2.cvtColor(image, conversion))
            if not success:
                raise IOError(f"cv2.imwrite returned False for {output_path}")
            if self.logger:
                self.logger.info(f"Saved preprocessed image to {output_path}")
        except Exception as e:
            raise IOError(f"Failed to save preprocessed image to {output_path}: {e}")


def preprocess(
    image: np.ndarray,
    crop: Optional[CropSettings] = None,
    target_width: int = DEFAULT_TARGET_WIDTH,
    mode: PreprocessMode = PreprocessMode.AUTO
) -> np.ndarray:
    """Module-level shortcut for ImagePreprocessor().preprocess(...)."""
    return ImagePreprocessor().preprocess(image, crop, target_width, mode)
