"""Client-side document controller: the viewer's state and actions.

``DocumentController`` holds everything the viewer shows: the loaded
document, the current page and its rendering, the selected actions, and the
summary/annotation results with a per-action request status.  It talks to
the noot server over HTTP with an ``httpx.Client`` (any client with the same
interface works, including FastAPI's ``TestClient``).

Every action remembers the identity of the document it started against.  If
a new document is ingested while an action is in flight, the action's result
is discarded instead of overwriting the newer state.
"""

import dataclasses
import logging
import mimetypes
import threading
from pathlib import Path

import httpx
from pydantic import ValidationError

from noot import parser, viewer
from noot.llm import max_completion_seconds
from noot.models import (
    ActionSelection,
    ActionState,
    AnnotationsResponse,
    Config,
    Document,
    PageState,
    ParseError,
    RenderedPage,
    RenderError,
    RequestStatus,
    SummaryResponse,
)

logger = logging.getLogger(__name__)

ACTIONS = ("summarize", "quiz", "annotate")

# Headroom on top of the server's worst-case completion time.
_SERVER_OVERHEAD_S = 10.0


def load_document(path: Path) -> Document:
    """Read ``path`` into a ``Document``, guessing its content type from the name."""
    content_type, _ = mimetypes.guess_type(path.name)
    return Document(
        name=path.name,
        content_type=content_type or "application/octet-stream",
        data=path.read_bytes(),
    )


class DocumentController:
    """Viewer state plus the ingest / navigate / generate operations.

    Attributes:
        document:        The loaded document, or ``None``.
        page:            Current page and page count.
        rendered:        Latest rendering of the current page.
        actions:         Which actions ``generate()`` will run.
        summary:         Latest summary ("" until one succeeds).
        annotations:     Latest annotations ([] until one succeeds).
        summary_state:   Request status of the summarize action.
        annotate_state:  Request status of the annotate action.
        render_state:    Request status of the latest page render.
    """

    def __init__(
        self, http: httpx.Client | None = None, config: Config | None = None
    ) -> None:
        self.config = config if config is not None else Config()
        self._owns_http = http is None
        self._http = http if http is not None else self._build_http(self.config)
        self._lock = threading.Lock()
        self._text_cache: tuple[int, str] | None = None

        self.document: Document | None = None
        self.page = PageState()
        self.rendered: RenderedPage | None = None
        self.actions = ActionSelection()
        self.summary = ""
        self.annotations: list[str] = []
        self.summary_state = ActionState()
        self.annotate_state = ActionState()
        self.render_state = ActionState()

    @staticmethod
    def _build_http(config: Config) -> httpx.Client:
        return httpx.Client(
            base_url=config.server_url,
            timeout=httpx.Timeout(request_timeout_seconds(config), connect=5.0),
        )

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "DocumentController":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def check_server(self) -> None:
        """Raise ``httpx.HTTPError`` unless the server answers ``GET /health``."""
        self._http.get("/health").raise_for_status()

    @property
    def is_loading(self) -> bool:
        """True while a summarize or annotate request is in flight."""
        return self.summary_state.is_loading or self.annotate_state.is_loading

    # -----------------------------------------------------------------------
    # Ingestion
    # -----------------------------------------------------------------------

    def ingest(self, document: Document) -> bool:
        """Load ``document`` and render its first page.

        Non-PDF input is ignored: nothing changes and ``False`` is returned.
        """
        if not document.is_pdf:
            logger.info(
                "Ignoring %s: not a PDF (content type %s)",
                document.name,
                document.content_type,
            )
            return False

        with self._lock:
            self.document = document
            self.page = PageState()
            self.rendered = None
            self.summary = ""
            self.annotations = []
            doc_id = document.document_id
            self.summary_state = ActionState(document_id=doc_id)
            self.annotate_state = ActionState(document_id=doc_id)
            self.render_state = ActionState(document_id=doc_id)
            self._text_cache = None

        logger.info("Loaded %s (document %d)", document.name, document.document_id)
        self.render_page(1)
        return True

    def _is_current(self, document: Document) -> bool:
        return (
            self.document is not None
            and self.document.document_id == document.document_id
        )

    # -----------------------------------------------------------------------
    # Text extraction
    # -----------------------------------------------------------------------

    def extract_text(self) -> str:
        """Return the loaded document's text, extracting it on first use.

        Raises:
            ValueError: if no document is loaded.
            ParseError: if pypdf cannot read the document.
        """
        if self.document is None:
            raise ValueError("No document loaded")
        return self._text_for(self.document)

    def _text_for(self, document: Document) -> str:
        with self._lock:
            cached = self._text_cache
        if cached is not None and cached[0] == document.document_id:
            logger.debug("Using cached text for document %d", document.document_id)
            return cached[1]

        text = parser.extract_text(document.data, document.name)
        with self._lock:
            if self._is_current(document):
                self._text_cache = (document.document_id, text)
        return text

    # -----------------------------------------------------------------------
    # Rendering and navigation
    # -----------------------------------------------------------------------

    def render_page(self, page_number: int) -> RenderedPage | None:
        """Draw ``page_number`` of the loaded document, replacing the last rendering.

        On success the page state moves to ``page_number``.  On failure the
        error is recorded in ``render_state`` and ``None`` is returned.
        """
        document = self.document
        if document is None:
            return None

        with self._lock:
            self.render_state = ActionState(
                RequestStatus.LOADING, document_id=document.document_id
            )

        try:
            rendered = viewer.render_page(document.data, page_number)
        except RenderError as exc:
            logger.error("Error rendering page %d of %s: %s", page_number, document.name, exc)
            with self._lock:
                if self._is_current(document):
                    self.render_state = ActionState(
                        RequestStatus.ERROR,
                        error=f"Could not display page {page_number}.",
                        document_id=document.document_id,
                    )
            return None

        with self._lock:
            if not self._is_current(document):
                logger.info("Discarding stale rendering of %s", document.name)
                return None
            self.rendered = rendered
            self.page = PageState(
                current_page=page_number, total_pages=rendered.total_pages
            )
            self.render_state = ActionState(
                RequestStatus.SUCCESS, document_id=document.document_id
            )
        return rendered

    def go_to_page(self, delta: int) -> bool:
        """Move ``delta`` pages, clamped to ``[1, total_pages]``.

        Returns ``False`` (and renders nothing) when the clamped target is
        the current page.
        """
        with self._lock:
            if self.document is None:
                return False
            target = self.page.clamp(self.page.current_page + delta)
            if target == self.page.current_page:
                return False
        self.render_page(target)
        return True

    def next_page(self) -> bool:
        return self.go_to_page(1)

    def previous_page(self) -> bool:
        return self.go_to_page(-1)

    # -----------------------------------------------------------------------
    # Actions
    # -----------------------------------------------------------------------

    def toggle_action(self, name: str) -> bool:
        """Flip one action flag and return its new value."""
        if name not in ACTIONS:
            raise ValueError(f"Unknown action: {name!r}")
        with self._lock:
            value = not getattr(self.actions, name)
            setattr(self.actions, name, value)
        return value

    def generate(self) -> None:
        """Run the selected actions one after another: summarize, then annotate."""
        document = self.document
        if document is None:
            logger.info("Nothing to generate: no document loaded")
            return

        selection = dataclasses.replace(self.actions)
        if selection.summarize:
            self._summarize(document)
        if selection.annotate:
            self._annotate(document)
        if selection.quiz:
            logger.debug("Quiz selected; no quiz endpoint exists, skipping")

    def _summarize(self, document: Document) -> None:
        with self._lock:
            self.summary = ""
            self.summary_state = ActionState(
                RequestStatus.LOADING, document_id=document.document_id
            )

        result = self._request(document, "/api/summary", SummaryResponse)

        with self._lock:
            if not self._is_current(document):
                logger.info("Discarding stale summary for %s", document.name)
                return
            if isinstance(result, SummaryResponse):
                self.summary = result.summary
                self.summary_state = ActionState(
                    RequestStatus.SUCCESS, document_id=document.document_id
                )
            else:
                self.summary_state = ActionState(
                    RequestStatus.ERROR, error=result, document_id=document.document_id
                )

    def _annotate(self, document: Document) -> None:
        with self._lock:
            self.annotations = []
            self.annotate_state = ActionState(
                RequestStatus.LOADING, document_id=document.document_id
            )

        result = self._request(document, "/api/annotate", AnnotationsResponse)

        with self._lock:
            if not self._is_current(document):
                logger.info("Discarding stale annotations for %s", document.name)
                return
            if isinstance(result, AnnotationsResponse):
                self.annotations = list(result.annotations)
                self.annotate_state = ActionState(
                    RequestStatus.SUCCESS, document_id=document.document_id
                )
            else:
                self.annotate_state = ActionState(
                    RequestStatus.ERROR, error=result, document_id=document.document_id
                )

    def _request(self, document: Document, endpoint: str, model):
        """POST the document text to ``endpoint``.

        Returns the validated response model, or a user-facing error message
        string when any step fails.
        """
        try:
            text = self._text_for(document)
        except ParseError:
            logger.exception("Error extracting text from %s", document.name)
            return f"Could not read text from {document.name}."

        try:
            response = self._http.post(endpoint, json={"text": text})
            response.raise_for_status()
            return model.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Request to %s failed with status %d", endpoint, exc.response.status_code
            )
            return _server_message(exc.response)
        except httpx.TimeoutException as exc:
            logger.error("Request to %s timed out: %s", endpoint, exc)
            return "The server took too long to respond."
        except httpx.HTTPError as exc:
            logger.error("Request to %s failed: %s", endpoint, exc)
            return "Could not reach the server. Is `noot serve` running?"
        except (ValidationError, ValueError) as exc:
            logger.error("Unexpected response from %s: %s", endpoint, exc)
            return "The server sent a response that could not be read."


def request_timeout_seconds(config: Config) -> float:
    """Read timeout for calls to the noot server, covering its upstream retries."""
    return max_completion_seconds(config.timeout_s) + _SERVER_OVERHEAD_S

def _server_message(response: httpx.Response) -> str:
    """Pick the ``error`` field from a failed response, falling back to the status."""
    try:
        message = response.json().get("error")
    except (ValueError, AttributeError):
        message = None
    if isinstance(message, str) and message:
        return f"{message} (HTTP {response.status_code})"
    return f"Request failed (HTTP {response.status_code})"
