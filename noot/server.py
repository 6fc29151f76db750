"""FastAPI application exposing the summary and annotation endpoints.

Both endpoints are stateless single-shot handlers: validate ``text``, send
one fixed prompt to the completion service, shape the reply.  The completion
client is built once in ``create_app`` (the credential is read at process
start) and shared by all requests.

Run with ``noot serve`` or ``uvicorn --factory noot.server:create_app``.
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from noot import __version__
from noot.llm import CompletionClient, complete_chat, create_client
from noot.models import (
    AnnotationsResponse,
    Config,
    ErrorResponse,
    LLMError,
    SummaryResponse,
    TextRequest,
)
from noot.prompts import (
    ANNOTATION_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    build_annotation_prompt,
    build_summary_prompt,
    split_annotations,
)

logger = logging.getLogger(__name__)

TEXT_REQUIRED = "Text is required"
INTERNAL_ERROR = "Internal Server Error"

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def create_app(
    config: Config | None = None, client: CompletionClient | None = None
) -> FastAPI:
    """Build the FastAPI app.

    Args:
        config: Runtime settings.  Defaults to ``Config.from_env()``.
        client: Completion client to use.  Defaults to one built from
            ``config``; tests pass a mock here.
    """
    if config is None:
        config = Config.from_env()

    app = FastAPI(
        title="noot",
        description="Summaries and annotations of PDF text via a chat-completion API",
        version=__version__,
    )
    app.state.config = config
    app.state.llm = client if client is not None else create_client(config)
    logger.info("Completion client ready  model=%s", app.state.llm.model)

    app.add_exception_handler(RequestValidationError, _validation_error)

    @app.get("/health")
    def health(llm: CompletionClient = Depends(get_client)) -> dict:
        return {"status": "ok", "model": llm.model}

    @app.post(
        "/api/summary", response_model=SummaryResponse, responses=_ERROR_RESPONSES
    )
    def summary(
        body: TextRequest,
        request: Request,
        llm: CompletionClient = Depends(get_client),
    ):
        """Summarize the posted document text."""
        if not body.text:
            return _error(400, TEXT_REQUIRED)

        prompt = build_summary_prompt(body.text, request.app.state.config.max_chars)
        try:
            reply = complete_chat(llm, SUMMARY_SYSTEM_PROMPT, prompt)
        except LLMError:
            logger.exception("Error in summary route")
            return _error(500, INTERNAL_ERROR)

        return SummaryResponse(summary=reply.strip())

    @app.post(
        "/api/annotate",
        response_model=AnnotationsResponse,
        responses=_ERROR_RESPONSES,
    )
    def annotate(
        body: TextRequest,
        request: Request,
        llm: CompletionClient = Depends(get_client),
    ):
        """Return 3-5 annotations for the posted document text, one per line of reply."""
        if not body.text:
            return _error(400, TEXT_REQUIRED)

        prompt = build_annotation_prompt(
            body.text, request.app.state.config.max_chars
        )
        try:
            reply = complete_chat(llm, ANNOTATION_SYSTEM_PROMPT, prompt)
        except LLMError:
            logger.exception("Error in annotate route")
            return _error(500, INTERNAL_ERROR)

        annotations = split_annotations(reply)
        logger.info("Annotate route returning %d annotations", len(annotations))
        return AnnotationsResponse(annotations=annotations)

    return app


def get_client(request: Request) -> CompletionClient:
    return request.app.state.llm


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=ErrorResponse(error=message).model_dump()
    )


async def _validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Malformed JSON, a missing body and a non-string ``text`` all land here.
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return _error(400, TEXT_REQUIRED)
