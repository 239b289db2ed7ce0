"""Tests for upload normalization and OCR input enhancement."""

import io

import numpy as np
import pytest
from conftest import make_image_bytes
from PIL import Image

from src.errors import ProcessingFailed
from src.preprocessing.enhance import (
    apply_clahe,
    binarize_adaptive,
    decode_image,
    enhance_for_ocr,
    to_gray,
)
from src.preprocessing.normalize import ImageNormalizer
from src.utils.config import NormalizationConfig, OCRConfig


def _size_of(content: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(content)) as img:
        return img.size


class TestImageNormalizer:
    """Tests for downsampling and re-encoding."""

    def test_large_image_fits_bounding_box(self) -> None:
        result = ImageNormalizer().normalize(make_image_bytes(3000, 1500), "image/png")
        assert result.content_type == "image/jpeg"
        assert (result.width, result.height) == (2048, 1024)
        assert _size_of(result.content) == (2048, 1024)

    def test_small_image_not_upscaled(self) -> None:
        result = ImageNormalizer().normalize(make_image_bytes(300, 200), "image/png")
        assert (result.width, result.height) == (300, 200)
        assert result.content[:2] == b"\xff\xd8"

    def test_rgba_png_converted(self) -> None:
        buf = io.BytesIO()
        Image.new("RGBA", (50, 40), (10, 20, 30, 128)).save(buf, format="PNG")
        result = ImageNormalizer().normalize(buf.getvalue(), "image/png")
        with Image.open(io.BytesIO(result.content)) as img:
            assert img.mode == "RGB"

    def test_pdf_passthrough(self) -> None:
        pdf = b"%PDF-1.7 body"
        result = ImageNormalizer().normalize(pdf, "application/pdf")
        assert result.content == pdf
        assert result.content_type == "application/pdf"
        assert result.is_image is False

    def test_corrupt_image_raises(self) -> None:
        with pytest.raises(ProcessingFailed) as exc_info:
            ImageNormalizer().normalize(b"garbage", "image/jpeg")
        assert exc_info.value.status_code == 422

    def test_decompression_bomb_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        with pytest.raises(ProcessingFailed) as exc_info:
            ImageNormalizer().normalize(make_image_bytes(100, 100), "image/png")
        assert exc_info.value.status_code == 422

    def test_custom_bound(self) -> None:
        normalizer = ImageNormalizer(NormalizationConfig(max_dimension=100))
        result = normalizer.normalize(make_image_bytes(400, 200), "image/png")
        assert (result.width, result.height) == (100, 50)

    def test_thumbnail(self) -> None:
        normalizer = ImageNormalizer()
        normalized = normalizer.normalize(make_image_bytes(1024, 512), "image/png")
        assert _size_of(normalizer.thumbnail(normalized.content)) == (256, 128)


class TestEnhance:
    """Tests for the OpenCV contrast steps."""

    def test_to_gray_color(self, sample_color_image: np.ndarray) -> None:
        assert to_gray(sample_color_image).shape == (200, 300)

    def test_to_gray_passthrough(self, sample_image: np.ndarray) -> None:
        assert to_gray(sample_image) is sample_image

    def test_clahe_with_color_image(self, sample_color_image: np.ndarray) -> None:
        result = apply_clahe(sample_color_image)
        assert result.shape == (200, 300)
        assert result.dtype == np.uint8

    def test_adaptive_produces_binary(self, sample_image: np.ndarray) -> None:
        result = binarize_adaptive(sample_image)
        assert set(np.unique(result)).issubset({0, 255})

    def test_decode_image(self) -> None:
        image = decode_image(make_image_bytes(120, 80))
        assert image.shape == (80, 120, 3)

    def test_enhance_disabled_returns_input(self, sample_color_image: np.ndarray) -> None:
        config = OCRConfig(enhance_enabled=False)
        assert enhance_for_ocr(sample_color_image, config) is sample_color_image

    def test_enhance_default_is_grayscale(self, sample_color_image: np.ndarray) -> None:
        result = enhance_for_ocr(sample_color_image, OCRConfig())
        assert result.ndim == 2

    def test_enhance_with_binarize(self, sample_color_image: np.ndarray) -> None:
        result = enhance_for_ocr(sample_color_image, OCRConfig(binarize_enabled=True))
        assert set(np.unique(result)).issubset({0, 255})
