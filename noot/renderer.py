"""Render a controller's results to a markdown notes string.

No file I/O is performed here; the caller (``cli.py``) decides whether the
returned string is printed or written to disk.
"""

import re
from typing import Sequence

_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")


def render_notes(file_name: str, summary: str, annotations: Sequence[str]) -> str:
    """Convert a summary and annotation list into markdown.

    Sections with no content are left out, so a run with neither action
    selected yields just the title line.

    Args:
        file_name:   Name of the PDF, used as the title.
        summary:     Summary prose ("" when not generated).
        annotations: One annotation per item, bullets optional.

    Returns:
        Markdown text ending in a single newline.
    """
    blocks = [f"# {file_name}"]
    if summary:
        blocks.append(f"## Summary\n\n{summary}")
    if annotations:
        items = "\n".join(f"- {_strip_bullet(a)}" for a in annotations)
        blocks.append(f"## Annotations\n\n{items}")
    return "\n\n".join(blocks) + "\n"


def _strip_bullet(annotation: str) -> str:
    """Drop a leading ``-``, ``*``, ``•`` or ``1.`` marker so bullets are not doubled."""
    return _BULLET.sub("", annotation, count=1).strip()
