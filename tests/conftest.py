"""Shared pytest fixtures for the noot test suite."""

import logging
from unittest.mock import MagicMock

import fitz  # PyMuPDF
import pytest
from fastapi.testclient import TestClient

from noot.models import Config, Document, PDF_CONTENT_TYPE
from noot.server import create_app


# ---------------------------------------------------------------------------
# Logger isolation
# ---------------------------------------------------------------------------

_CONFIGURED_LOGGERS = ("noot", "uvicorn", "uvicorn.error", "uvicorn.access")


def _reset_loggers() -> None:
    for name in _CONFIGURED_LOGGERS:
        logger = logging.getLogger(name)
        for h in logger.handlers[:]:
            try:
                h.close()
            except Exception:
                pass
            logger.removeHandler(h)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def _reset_noot_logger():
    """Clear the noot logger between tests.

    Tests that call ``main()`` trigger ``setup_logging()``, which attaches
    handlers and sets ``propagate=False``.  Without this fixture the state
    leaks into subsequent tests and breaks ``caplog`` capture.
    """
    _reset_loggers()
    yield
    _reset_loggers()


# ---------------------------------------------------------------------------
# PDFs
# ---------------------------------------------------------------------------


def make_pdf(pages: list[str]) -> bytes:
    """Build an in-memory PDF with one A4 page per entry of ``pages``.

    An empty string produces a page with no text layer.
    """
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def two_page_pdf() -> bytes:
    return make_pdf(["Page one text", "Page two text"])


@pytest.fixture
def two_page_document(two_page_pdf) -> Document:
    return Document(name="paper.pdf", content_type=PDF_CONTENT_TYPE, data=two_page_pdf)


@pytest.fixture
def text_document() -> Document:
    return Document(name="notes.txt", content_type="text/plain", data=b"plain text")


# ---------------------------------------------------------------------------
# Server with a mocked completion client
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm() -> MagicMock:
    """Completion client double; set ``complete.return_value`` per test."""
    client = MagicMock()
    client.model = "test-model"
    client.complete.return_value = MagicMock(text="  A short summary.  ")
    return client


@pytest.fixture
def config() -> Config:
    return Config(api_key="sk-test", model="test-model")


@pytest.fixture
def app(config, mock_llm):
    return create_app(config=config, client=mock_llm)


@pytest.fixture
def api(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def pdf_factory():
    """The ``make_pdf`` builder, for tests that need custom page contents."""
    return make_pdf
