"""Tests for noot/parser.py — pypdf text extraction."""

from unittest.mock import MagicMock, patch

import pypdf
import pytest

from noot.models import ParseError
from noot.parser import extract_text


def test_extract_text_two_pages_newline_separated(two_page_pdf):
    text = extract_text(two_page_pdf)
    assert text == "Page one text\nPage two text\n"


def test_extract_text_every_page_newline_terminated(pdf_factory):
    text = extract_text(pdf_factory(["alpha", "beta", "gamma"]))
    assert text.count("\n") == 3
    assert text.endswith("gamma\n")


def test_extract_text_page_without_text_layer_is_empty_line(pdf_factory):
    text = extract_text(pdf_factory(["first", "", "third"]))
    assert text.split("\n") == ["first", "", "third", ""]


def test_extract_text_joins_items_with_single_spaces():
    """Multiple text lines on one page collapse into space-joined items."""
    page = MagicMock()
    page.extract_text.return_value = "  Title \n\nBody line one\n Body line two  "
    with patch("noot.parser.PdfReader") as MockReader:
        MockReader.return_value.pages = [page]
        text = extract_text(b"%PDF-1.4 fake")
    assert text == "Title Body line one Body line two\n"


def test_extract_text_rereads_bytes_each_call(two_page_pdf):
    with patch("noot.parser.PdfReader", wraps=pypdf.PdfReader) as spy:
        extract_text(two_page_pdf)
        extract_text(two_page_pdf)
    assert spy.call_count == 2


def test_extract_text_raises_parse_error_on_garbage():
    with pytest.raises(ParseError, match="broken.pdf"):
        extract_text(b"not a pdf at all", name="broken.pdf")


def test_extract_text_parse_error_wraps_original_exception():
    original = RuntimeError("deep failure")
    with patch("noot.parser.PdfReader", side_effect=original):
        with pytest.raises(ParseError) as exc_info:
            extract_text(b"%PDF-1.4 fake")
    assert exc_info.value.__cause__ is original
