"""Tesseract OCR engine wrapper.

Turns normalized image bytes into plain text plus an average word
confidence. Every engine failure surfaces as ``ExtractionDegraded`` so
the upload pipeline can downgrade instead of failing.
"""

from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from src.errors import ExtractionDegraded
from src.preprocessing.enhance import decode_image, enhance_for_ocr
from src.utils.config import OCRConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class OCRResult:
    """Text transcription of one image."""

    text: str
    language: str
    confidence: float
    word_count: int = 0


class TesseractEngine:
    """Wrapper around Tesseract for document text extraction.

    Args:
        config: OCR settings. ``tesseract_cmd`` overrides the binary path.
    """

    def __init__(self, config: OCRConfig | None = None) -> None:
        self.config = config or OCRConfig()
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd

    def extract_text(self, content: bytes, lang: str | None = None) -> OCRResult:
        """Transcribe an image.

        Args:
            content: JPEG or PNG bytes.
            lang: Tesseract language code. Defaults to the configured one.

        Returns:
            OCRResult with the full text and average confidence (0-1).

        Raises:
            ExtractionDegraded: If decoding or recognition fails.
        """
        lang = lang or self.config.default_lang
        try:
            image = enhance_for_ocr(decode_image(content), self.config)
            return self._recognize(image, lang)
        except Exception as exc:
            logger.debug("OCR failed on %d bytes", len(content), exc_info=True)
            raise ExtractionDegraded(detail=str(exc)) from exc

    def _recognize(self, image: np.ndarray, lang: str) -> OCRResult:
        pil_image = Image.fromarray(image)
        tess_config = f"--psm {self.config.psm}"

        text = pytesseract.image_to_string(pil_image, lang=lang, config=tess_config)
        data = pytesseract.image_to_data(
            pil_image,
            lang=lang,
            config=tess_config,
            output_type=pytesseract.Output.DICT,
        )

        confidences = [
            float(conf)
            for conf, word in zip(data["conf"], data["text"])
            if float(conf) > 0 and str(word).strip()
        ]
        avg_conf = sum(confidences) / len(confidences) / 100.0 if confidences else 0.0

        logger.info(
            "OCR extracted %d words with average confidence %.2f",
            len(confidences),
            avg_conf,
        )
        return OCRResult(
            text=text,
            language=lang,
            confidence=avg_conf,
            word_count=len(confidences),
        )
