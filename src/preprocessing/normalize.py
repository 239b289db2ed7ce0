"""Image normalization applied to uploads before storage and OCR.

Images are re-encoded as JPEG and shrunk to fit a bounding box, keeping
their aspect ratio and never upscaling. PDFs pass through untouched.
"""

import io
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from src.errors import ProcessingFailed
from src.ingest.validator import is_image
from src.utils.config import NormalizationConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)

JPEG_CONTENT_TYPE = "image/jpeg"


@dataclass
class NormalizedImage:
    """Output of the normalizer."""

    content: bytes
    content_type: str
    width: int | None = None
    height: int | None = None

    @property
    def is_image(self) -> bool:
        return is_image(self.content_type)


def _open_rgb(content: bytes) -> Image.Image:
    """Decode image bytes into an upright RGB image.

    Raises:
        ProcessingFailed: If the bytes are not a decodable image.
    """
    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as exc:
        raise ProcessingFailed(detail=str(exc)) from exc

    image = ImageOps.exif_transpose(image)
    if image.mode != "RGB":
        image = image.convert("RGB")
    return image


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=quality, optimize=True)
    return buf.getvalue()


class ImageNormalizer:
    """Downsamples and recompresses uploaded images.

    Args:
        config: Normalization settings (bounding box, JPEG quality).
    """

    def __init__(self, config: NormalizationConfig | None = None) -> None:
        self.config = config or NormalizationConfig()

    def normalize(
        self,
        content: bytes,
        content_type: str,
        quality: int | None = None,
    ) -> NormalizedImage:
        """Normalize one upload.

        Args:
            content: Raw file bytes.
            content_type: Validated MIME type of the upload.
            quality: JPEG quality override (the scan path uses a higher one).

        Returns:
            The re-encoded JPEG for images, or the original bytes for PDFs.

        Raises:
            ProcessingFailed: If an image cannot be decoded or encoded.
        """
        if not is_image(content_type):
            logger.debug("Passing %s through unchanged", content_type)
            return NormalizedImage(content=content, content_type=content_type)

        image = _open_rgb(content)
        original_size = image.size
        bound = self.config.max_dimension
        # thumbnail() keeps aspect ratio and never enlarges.
        image.thumbnail((bound, bound), Image.Resampling.LANCZOS)

        try:
            encoded = _encode_jpeg(image, quality or self.config.jpeg_quality)
        except OSError as exc:
            raise ProcessingFailed(detail=str(exc)) from exc

        logger.info(
            "Normalized image %dx%d -> %dx%d (%d bytes)",
            original_size[0],
            original_size[1],
            image.width,
            image.height,
            len(encoded),
        )
        return NormalizedImage(
            content=encoded,
            content_type=JPEG_CONTENT_TYPE,
            width=image.width,
            height=image.height,
        )

    def thumbnail(self, content: bytes) -> bytes:
        """Render a small JPEG preview of an already normalized image."""
        image = _open_rgb(content)
        size = self.config.thumbnail_size
        image.thumbnail((size, size), Image.Resampling.LANCZOS)
        return _encode_jpeg(image, self.config.jpeg_quality)
