"""Command-line interface for noot.

Entry point: ``noot`` (configured in ``pyproject.toml``).

Usage:
    noot serve [--host HOST] [--port N] [options]
    noot open PDF [--summarize] [--annotate] [--page N] [options]

``serve`` runs the FastAPI app under uvicorn.  ``open`` drives a
``DocumentController`` against a running server: it loads the PDF, renders
the requested page, runs the selected actions and prints markdown notes.

Settings not given as flags come from the environment (see
``Config.from_env``); a ``.env`` file in the working directory is loaded
first.
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

import httpx
import openai
import uvicorn
from dotenv import load_dotenv

from noot.controller import DocumentController, load_document
from noot.log import setup_logging
from noot.models import Config, RequestStatus
from noot.renderer import render_notes
from noot.server import create_app

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    parsed = int(value)
    if parsed < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return parsed


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments, build the configuration, and dispatch."""
    load_dotenv()

    parser = _build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        verbose=args.verbose,
        log_file=Path(args.log_file) if args.log_file else None,
    )

    config = _config_from_args(args)
    if args.command == "serve":
        _run_serve(args, config)
    else:
        _run_open(args, config)


def _config_from_args(args: argparse.Namespace) -> Config:
    """Environment defaults, overridden by any flag the user passed."""
    config = Config.from_env()
    overrides = {
        "model": getattr(args, "model", None),
        "base_url": getattr(args, "base_url", None),
        "timeout_s": args.timeout,
        "max_chars": getattr(args, "max_chars", None),
        "server_url": getattr(args, "server", None),
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return dataclasses.replace(config, verbose=args.verbose, **overrides)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


def _run_serve(args: argparse.Namespace, config: Config) -> None:
    try:
        app = create_app(config)
    except openai.OpenAIError as exc:
        logger.error("Cannot create completion client: %s", exc)
        sys.exit(1)

    logger.info("Starting noot on %s:%d", args.host, args.port)
    # log_config=None keeps the handlers installed by setup_logging.
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


# ---------------------------------------------------------------------------
# open
# ---------------------------------------------------------------------------


def _run_open(
    args: argparse.Namespace, config: Config, http: httpx.Client | None = None
) -> None:
    """Load one PDF into a controller, run the selected actions, emit notes."""
    pdf_path = Path(args.file)
    if not pdf_path.exists():
        logger.error("File not found: %s", pdf_path)
        sys.exit(1)

    with DocumentController(http=http, config=config) as controller:
        if not controller.ingest(load_document(pdf_path)):
            logger.error("Not a PDF: %s", pdf_path)
            sys.exit(1)

        if args.page is not None:
            controller.go_to_page(args.page - controller.page.current_page)
        logger.info(
            "Page %d of %d", controller.page.current_page, controller.page.total_pages
        )
        if args.render_out:
            _write_rendering(controller, Path(args.render_out))

        if args.summarize:
            controller.toggle_action("summarize")
        if args.annotate:
            controller.toggle_action("annotate")
        if args.summarize or args.annotate:
            _check_server(controller)
        controller.generate()

        notes = render_notes(pdf_path.name, controller.summary, controller.annotations)
        if args.output:
            output_path = Path(args.output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(notes, encoding="utf-8")
            logger.info("Written: %s", output_path)
        else:
            sys.stdout.write(notes)

        failed = [
            (name, state.error)
            for name, state in (
                ("summarize", controller.summary_state),
                ("annotate", controller.annotate_state),
                ("render", controller.render_state),
            )
            if state.status is RequestStatus.ERROR
        ]
    if failed:
        for name, error in failed:
            logger.error("%s failed: %s", name, error)
        sys.exit(1)


def _write_rendering(controller: DocumentController, path: Path) -> None:
    if controller.rendered is None:
        logger.error("No rendering to write for page %d", controller.page.current_page)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(controller.rendered.png)
    logger.info(
        "Written page %d (%dx%d): %s",
        controller.rendered.page_number,
        controller.rendered.width,
        controller.rendered.height,
        path,
    )


# ---------------------------------------------------------------------------
# Server health check
# ---------------------------------------------------------------------------


def _check_server(controller: DocumentController) -> None:
    """Verify that the noot server answers ``GET /health``."""
    try:
        controller.check_server()
    except httpx.HTTPError as exc:
        logger.error(
            "Cannot reach noot server at %s\n  Details: %s",
            controller.config.server_url,
            exc,
        )
        sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="noot",
        description="Summarize and annotate PDFs with a chat-completion model.",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--timeout",
        metavar="S",
        type=_positive_int,
        default=None,
        help="Request timeout in seconds (default: NOOT_TIMEOUT or 120).",
    )
    common.add_argument(
        "--verbose",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Enable DEBUG-level logging.",
    )
    common.add_argument(
        "--log-file",
        metavar="FILE",
        default=None,
        help="Also write log output to FILE.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", parents=[common], help="Run the API server.")
    serve.add_argument(
        "--model",
        metavar="MODEL",
        default=None,
        help="Completion model identifier (default: NOOT_MODEL env var or gpt-4o-mini).",
    )
    serve.add_argument(
        "--base-url",
        metavar="URL",
        default=None,
        help="OpenAI-compatible API base URL (default: OPENAI_BASE_URL or the SDK default).",
    )
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1).")
    serve.add_argument(
        "--port", type=_positive_int, default=8000, help="Bind port (default: 8000)."
    )
    serve.add_argument(
        "--max-chars",
        metavar="N",
        type=_positive_int,
        default=None,
        help="Truncate document text to N characters before prompting (default: no limit).",
    )

    open_ = sub.add_parser(
        "open", parents=[common], help="Load a PDF and generate notes for it."
    )
    open_.add_argument("file", metavar="PDF", help="Path to the PDF to open.")
    open_.add_argument(
        "--summarize", action="store_true", default=False, help="Request a summary."
    )
    open_.add_argument(
        "--annotate", action="store_true", default=False, help="Request annotations."
    )
    open_.add_argument(
        "--page",
        metavar="N",
        type=_positive_int,
        default=None,
        help="Navigate to page N (clamped to the document's page count).",
    )
    open_.add_argument(
        "--render-out",
        metavar="PNG",
        default=None,
        help="Write the rendered current page to PNG.",
    )
    open_.add_argument(
        "--output",
        metavar="FILE",
        default=None,
        help="Write markdown notes to FILE instead of stdout.",
    )
    open_.add_argument(
        "--server",
        metavar="URL",
        default=None,
        help="noot server URL (default: NOOT_SERVER_URL or http://127.0.0.1:8000).",
    )

    return parser


if __name__ == "__main__":
    main()
