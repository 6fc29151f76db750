"""Page rasterization, a thin wrapper around PyMuPDF.

Pages are drawn at a fixed 1.5x scale into a PNG sized to the scaled page
viewport.  Every call reopens the document from the supplied bytes.
"""

import logging
import time

import fitz  # PyMuPDF

from noot.models import RenderError, RenderedPage

logger = logging.getLogger(__name__)

RENDER_SCALE = 1.5


def render_page(
    data: bytes, page_number: int, scale: float = RENDER_SCALE
) -> RenderedPage:
    """Rasterize one page of the PDF held in ``data``.

    Args:
        data:        Raw PDF bytes.
        page_number: 1-based page to draw.
        scale:       Viewport scale factor applied to the page's natural size.

    Returns:
        A ``RenderedPage`` whose ``width``/``height`` equal the scaled
        viewport, rounded by PyMuPDF to whole pixels.

    Raises:
        RenderError: if the document cannot be opened, the page is out of
            range, or rasterization fails.
    """
    t0 = time.monotonic()
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            total = doc.page_count
            if not 1 <= page_number <= total:
                raise RenderError(
                    f"Page {page_number} out of range (document has {total} pages)"
                )
            page = doc.load_page(page_number - 1)
            pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
            rendered = RenderedPage(
                page_number=page_number,
                total_pages=total,
                width=pix.width,
                height=pix.height,
                png=pix.tobytes("png"),
            )
    except RenderError:
        raise
    except Exception as e:
        raise RenderError(f"Failed to render page {page_number}: {e}") from e

    logger.debug(
        "Rendered page %d/%d at %sx -> %dx%d (%.2fs)",
        page_number,
        total,
        scale,
        rendered.width,
        rendered.height,
        time.monotonic() - t0,
    )
    return rendered
