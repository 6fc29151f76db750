"""Fixed prompts for the two endpoints and parsing of the annotation reply.

Each endpoint sends one system prompt and one user prompt that embeds the
document text.  Prompts are stateless: every call carries the whole text.
"""

SUMMARY_SYSTEM_PROMPT = "You are a helpful assistant that summarizes a pdf document."

ANNOTATION_SYSTEM_PROMPT = (
    "You are an assistant that provides annotations for a document. "
    "Provide 3-5 key annotations that highlight important points or areas "
    "that need clarification."
)


def build_summary_prompt(text: str, max_chars: int | None = None) -> str:
    """Return the user prompt asking for a summary of ``text``.

    ``text`` is truncated to ``max_chars`` characters when a limit is given.
    """
    return f"Please summarize the following text:\n\n{_truncate(text, max_chars)}"


def build_annotation_prompt(text: str, max_chars: int | None = None) -> str:
    """Return the user prompt asking for annotations of ``text``."""
    return (
        "Please provide annotations for the following text:\n\n"
        f"{_truncate(text, max_chars)}"
    )


def split_annotations(reply: str) -> list[str]:
    """Split a model reply into one annotation per line.

    The reply is trimmed, split on ``\\n``, each line is stripped of trailing
    whitespace (including ``\\r``), and blank lines are dropped.  Line
    content is otherwise passed through unchanged, bullet markers and
    non-bullet prose included, so the result may hold more or fewer than the
    3-5 items the prompt asks for.

    >>> split_annotations("A\\n\\nB")
    ['A', 'B']
    """
    lines = (line.rstrip() for line in reply.strip().split("\n"))
    return [line for line in lines if line.strip()]


def _truncate(text: str, max_chars: int | None) -> str:
    if max_chars is None:
        return text
    return text[:max_chars]
