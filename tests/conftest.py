"""Shared pytest fixtures for SnapEdit tests."""

import io
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from google.genai import types
from PIL import Image

from snapedit.api.main import create_app
from snapedit.core.config import SnapEditConfig
from snapedit.core.gateway import GenerationGateway
from snapedit.core.image_store import ImageStore


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> SnapEditConfig:
    """Create a test configuration with a temporary data directory.

    The credential is set explicitly so a real GEMINI_API_KEY in the
    environment never reaches the tests.
    """
    return SnapEditConfig(
        _env_file=None,
        gemini_api_key="test-key",
        data_dir=str(temp_dir / "data"),
        scratch_dir=str(temp_dir / "scratch"),
        environment="development",
        public_base_url="http://testserver",
    )


@pytest.fixture
def unconfigured_config(temp_dir: Path) -> SnapEditConfig:
    """Configuration with no Gemini credential."""
    return SnapEditConfig(
        _env_file=None,
        gemini_api_key="",
        data_dir=str(temp_dir / "data"),
    )


@pytest.fixture
def image_store(test_config: SnapEditConfig) -> Generator[ImageStore, None, None]:
    """An open ImageStore backed by a temporary database."""
    store = ImageStore(test_config.db_path)
    store.open()
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def png_bytes() -> bytes:
    """A small, real PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A small, real JPEG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(0, 0, 255)).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def make_response() -> Callable[..., types.GenerateContentResponse]:
    """Factory for Gemini responses built from real SDK types.

    Call with ``parts`` (a list of ``types.Part``), ``finish_reason``, or
    ``block_reason``.  ``parts=None`` produces a response with no candidates.
    """

    def _make(
        parts: list[types.Part] | None = None,
        finish_reason: types.FinishReason = types.FinishReason.STOP,
        block_reason: types.BlockedReason | None = None,
    ) -> types.GenerateContentResponse:
        feedback = None
        if block_reason is not None:
            feedback = types.GenerateContentResponsePromptFeedback(block_reason=block_reason)
        if parts is None:
            return types.GenerateContentResponse(candidates=[], prompt_feedback=feedback)
        return types.GenerateContentResponse(
            candidates=[
                types.Candidate(
                    content=types.Content(role="model", parts=parts),
                    finish_reason=finish_reason,
                )
            ],
            prompt_feedback=feedback,
        )

    return _make


@pytest.fixture
def fake_genai_client(make_response, png_bytes) -> MagicMock:
    """A stand-in for ``google.genai.Client`` that returns a PNG by default."""
    client = MagicMock()
    client.models.generate_content.return_value = make_response(
        [types.Part(inline_data=types.Blob(data=png_bytes, mime_type="image/png"))]
    )
    return client


@pytest.fixture
def gateway(test_config: SnapEditConfig, fake_genai_client: MagicMock) -> GenerationGateway:
    return GenerationGateway(test_config, client=fake_genai_client)


@pytest.fixture
def test_client(
    test_config: SnapEditConfig, gateway: GenerationGateway
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient running the full lifespan against a temp database."""
    app = create_app(test_config, gateway=gateway)
    with TestClient(app) as client:
        yield client
