"""
Image loading for the standings OCR pipeline.
Reads screenshots and photos (including Apple's HEIC/HEIF) into RGB(A) arrays.
"""

import logging
import cv2
import numpy as np
from pathlib import Path
from typing import List, Optional
from PIL import Image
import pillow_heif


HEIC_SUFFIXES = ('.heic', '.heif')
SUPPORTED_SUFFIXES = ('.png', '.jpg', '.jpeg', '.bmp', '.webp', '.tif', '.tiff') + HEIC_SUFFIXES


def load_image(
    image_path: str,
    logger: Optional[logging.Logger] = None
) -> np.ndarray:
    """
    Load an image file as an RGB or RGBA uint8 array.

    Args:
        image_path: Path to the image file
        logger: Logger instance for logging

    Returns:
        HxWx3 (RGB) or HxWx4 (RGBA) array

    Raises:
        FileNotFoundError: If the file doesn't exist
        IOError: If the file cannot be decoded
    """
    image_file = Path(image_path)
    if not image_file.exists():
        raise FileNotFoundError(f"Image not found: {image_path}")

    if image_file.suffix.lower() in HEIC_SUFFIXES:
        image = _load_heic(image_file)
    else:
        image = _load_with_opencv(image_file)

    if logger:
        logger.info(f"Loaded image {image_file.name}: {image.shape}")
    return image


def _load_with_opencv(image_file: Path) -> np.ndarray:
    # IMREAD_UNCHANGED keeps the alpha channel
    image = cv2.imread(str(image_file), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise IOError(f"cv2.imread failed for {image_file}. File may be corrupted or unsupported format.")

    if image.dtype == np.uint16:
        image = (image // 257).astype(np.uint8)
    elif image.dtype != np.uint8:
        raise IOError(f"Unsupported pixel depth {image.dtype} in {image_file}")

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def _load_heic(image_file: Path) -> np.ndarray:
    # Register HEIF/HEIC support
    pillow_heif.register_heif_opener()

    try:
        with Image.open(image_file) as image:
            if image.mode in ('RGBA', 'LA', 'P'):
                converted = image.convert('RGBA')
            else:
                converted = image.convert('RGB')
            return np.array(converted)
    except Exception as e:
        raise IOError(f"Failed to load HEIC image {image_file}: {e}")


def find_images(image_dir: str) -> List[Path]:
    """
    List supported image files in a directory, sorted by name.

    Raises:
        NotADirectoryError: If directory not found
    """
    image_dir_path = Path(image_dir)
    if not image_dir_path.is_dir():
        raise NotADirectoryError(f"Directory not found: {image_dir}")

    return sorted(
        path for path in image_dir_path.iterdir()
        if path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES
    )
