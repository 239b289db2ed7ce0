"""Shared test fixtures for the document vault test suite."""

import io
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest
from PIL import Image

from src.ocr.tesseract_engine import OCRResult, TesseractEngine
from src.storage.document_store import InMemoryDocumentStore
from src.storage.object_store import InMemoryObjectStorage
from src.utils.config import AppConfig, AuthConfig
from src.vault.service import DocumentVault

FIXED_NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)
TEST_SECRET = "test-secret-key-with-enough-length-for-hs256"

PASSPORT_TEXT = (
    "PASSPORT\n"
    "Jane Smith\n"
    "P1234567\n"
    "Issued 01/01/2020\n"
    "Expires 31/12/2025\n"
)


def make_image_bytes(width: int = 300, height: int = 200, fmt: str = "PNG") -> bytes:
    """Encode a synthetic RGB image."""
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[height // 4 : 3 * height // 4, width // 4 : 3 * width // 4] = (255, 255, 255)
    buf = io.BytesIO()
    Image.fromarray(image).save(buf, format=fmt)
    return buf.getvalue()


class FixedClock:
    """Callable clock the tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        environment="development",
        auth=AuthConfig(jwt_secret=TEST_SECRET),
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def ocr_engine() -> MagicMock:
    """OCR engine stub returning the passport sample text."""
    engine = MagicMock(spec=TesseractEngine)
    engine.extract_text.return_value = OCRResult(
        text=PASSPORT_TEXT, language="eng", confidence=0.91, word_count=14
    )
    return engine


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def object_storage() -> InMemoryObjectStorage:
    return InMemoryObjectStorage()


@pytest.fixture
def vault(
    app_config: AppConfig,
    document_store: InMemoryDocumentStore,
    object_storage: InMemoryObjectStorage,
    ocr_engine: MagicMock,
    clock: FixedClock,
) -> DocumentVault:
    return DocumentVault(
        app_config,
        documents=document_store,
        objects=object_storage,
        ocr_engine=ocr_engine,
        clock=clock,
    )
