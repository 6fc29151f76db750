"""Pydantic models, dataclass Config/state, and exceptions for noot.

The request/response models describe the JSON bodies of the two endpoints.
The dataclasses describe the runtime configuration and the viewer state kept
by ``controller.DocumentController``.
"""

import enum
import itertools
import os
from dataclasses import dataclass, field

from pydantic import BaseModel

# ---------------------------------------------------------------------------
# Endpoint bodies
# ---------------------------------------------------------------------------


class TextRequest(BaseModel):
    """Body accepted by ``/api/summary`` and ``/api/annotate``.

    ``text`` is optional at the schema level so that a missing field reaches
    the handler and is answered with ``400`` rather than a framework ``422``.
    """

    text: str | None = None


class SummaryResponse(BaseModel):
    summary: str


class AnnotationsResponse(BaseModel):
    annotations: list[str]


class ErrorResponse(BaseModel):
    error: str


# ---------------------------------------------------------------------------
# Viewer state
# ---------------------------------------------------------------------------

PDF_CONTENT_TYPE = "application/pdf"

_document_ids = itertools.count(1)


@dataclass(frozen=True)
class Document:
    """A user-supplied file.  Immutable; replaced wholesale on a new drop.

    ``document_id`` is assigned from a process-wide counter so two loads of
    the same bytes still get distinct identities.
    """

    name: str
    content_type: str
    data: bytes = field(repr=False)
    document_id: int = field(default_factory=lambda: next(_document_ids))

    @property
    def is_pdf(self) -> bool:
        return self.content_type == PDF_CONTENT_TYPE


@dataclass
class PageState:
    """Current page and page count, 1-based.  ``total_pages`` is 0 until rendered."""

    current_page: int = 1
    total_pages: int = 0

    def clamp(self, page: int) -> int:
        if self.total_pages < 1:
            return 1
        return max(1, min(page, self.total_pages))


@dataclass
class ActionSelection:
    """Actions toggled by the user, read once per ``generate()`` call.

    ``quiz`` is selectable but has no endpoint behind it.
    """

    summarize: bool = False
    quiz: bool = False
    annotate: bool = False


class RequestStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class ActionState:
    """Status of one action (summarize, annotate or render).

    Attributes:
        status:      Where the action is in its idle/loading/success/error cycle.
        error:       User-facing message when ``status`` is ``ERROR``.
        document_id: Identity of the document the status refers to.
    """

    status: RequestStatus = RequestStatus.IDLE
    error: str | None = None
    document_id: int | None = None

    @property
    def is_loading(self) -> bool:
        return self.status is RequestStatus.LOADING


@dataclass(frozen=True)
class RenderedPage:
    """One page rasterized to PNG at a fixed scale."""

    page_number: int
    total_pages: int
    width: int
    height: int
    png: bytes = field(repr=False)


# ---------------------------------------------------------------------------
# Config (dataclass, not pydantic; holds runtime settings)
# ---------------------------------------------------------------------------

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_SERVER_URL = "http://127.0.0.1:8000"


@dataclass
class Config:
    """Runtime configuration shared by the server, the controller and the CLI.

    Attributes:
        api_key:           Credential for the completion service.  Read from
                           ``OPENAI_API_KEY`` by ``from_env``.
        base_url:          OpenAI-compatible API base URL.  ``None`` uses the
                           SDK default (api.openai.com).
        model:             Model identifier sent with every completion.
        timeout_s:         Seconds before a completion call is abandoned.
        max_output_tokens: Cap on generated tokens.  ``None`` sends no cap.
        max_chars:         Truncate document text to this many characters
                           before prompting.  ``None`` sends the text whole.
        server_url:        Where the controller finds ``/api/summary`` and
                           ``/api/annotate``.
        verbose:           DEBUG logging when True.
    """

    api_key: str | None = None
    base_url: str | None = None
    model: str = DEFAULT_MODEL
    timeout_s: int = 120
    max_output_tokens: int | None = None
    max_chars: int | None = None
    server_url: str = DEFAULT_SERVER_URL
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """Build a Config from environment variables.

        Recognised variables: ``OPENAI_API_KEY``, ``OPENAI_BASE_URL``,
        ``NOOT_MODEL``, ``NOOT_TIMEOUT``, ``NOOT_MAX_CHARS``,
        ``NOOT_SERVER_URL``.  Unset variables keep the dataclass defaults.
        """
        max_chars = os.environ.get("NOOT_MAX_CHARS")
        return cls(
            api_key=os.environ.get("OPENAI_API_KEY"),
            base_url=os.environ.get("OPENAI_BASE_URL") or None,
            model=os.environ.get("NOOT_MODEL", DEFAULT_MODEL),
            timeout_s=int(os.environ.get("NOOT_TIMEOUT", "120")),
            max_chars=int(max_chars) if max_chars else None,
            server_url=os.environ.get("NOOT_SERVER_URL", DEFAULT_SERVER_URL),
        )


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ParseError(Exception):
    """Raised when text cannot be extracted from a PDF (corrupt, encrypted, etc.)."""


class RenderError(Exception):
    """Raised when a PDF page cannot be rasterized."""


class LLMError(Exception):
    """Raised when a completion call fails or returns no content."""
