"""Contrast enhancement applied to the OCR input only.

The stored binary is never touched; these steps exist to give
Tesseract cleaner glyphs from phone photos of documents.
"""

import io

import cv2
import numpy as np
from PIL import Image

from src.utils.config import OCRConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an RGB image to grayscale; grayscale input is returned as is."""
    if len(image.shape) == 3:
        return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    return image


def apply_clahe(
    image: np.ndarray,
    clip_limit: float = 2.0,
    tile_size: int = 8,
) -> np.ndarray:
    """Equalize local contrast with CLAHE.

    Args:
        image: RGB or grayscale image.
        clip_limit: Threshold for contrast limiting.
        tile_size: Grid size for histogram equalization.

    Returns:
        Contrast-enhanced grayscale image.
    """
    clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=(tile_size, tile_size))
    return clahe.apply(to_gray(image))


def binarize_adaptive(
    image: np.ndarray, block_size: int = 31, c: int = 10
) -> np.ndarray:
    """Threshold with a Gaussian-weighted local mean.

    Returns:
        Binary image with pixel values 0 or 255.
    """
    return cv2.adaptiveThreshold(
        to_gray(image),
        255,
        cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
        cv2.THRESH_BINARY,
        block_size,
        c,
    )


def decode_image(content: bytes) -> np.ndarray:
    """Decode JPEG/PNG bytes into an RGB numpy array."""
    with Image.open(io.BytesIO(content)) as img:
        return np.array(img.convert("RGB"))


def enhance_for_ocr(image: np.ndarray, config: OCRConfig) -> np.ndarray:
    """Run the configured enhancement steps.

    Args:
        image: RGB image decoded from the normalized upload.
        config: OCR settings controlling which steps run.

    Returns:
        The image to hand to the OCR engine.
    """
    if not config.enhance_enabled:
        return image

    result = apply_clahe(image, config.clahe_clip_limit, config.clahe_tile_size)
    if config.binarize_enabled:
        result = binarize_adaptive(result)

    logger.debug(
        "Enhanced OCR input %s (binarized=%s)", result.shape, config.binarize_enabled
    )
    return result
