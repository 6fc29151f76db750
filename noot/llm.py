"""Completion client setup and inference: wraps the openai SDK.

Works against api.openai.com or any OpenAI-compatible backend selected by
``Config.base_url``.  The public interface is ``CompletionClient.complete``
returning an object with a ``.text`` attribute, and the module-level
``complete_chat`` helper which adds retry/backoff for transient failures.
"""

import logging
import re
import time

import openai as _openai

from noot.models import Config, LLMError

logger = logging.getLogger(__name__)

_MAX_TRANSIENT_RETRIES = 2


# ---------------------------------------------------------------------------
# Client wrapper
# ---------------------------------------------------------------------------


class _CompletionResponse:
    """Thin wrapper presenting an openai chat response as ``response.text``."""

    __slots__ = ("text",)

    def __init__(self, text: str) -> None:
        self.text = text


class CompletionClient:
    """Chat-completion client bound to one model.

    Wraps ``openai.OpenAI`` so that the model name is stored at construction
    time and call sites use ``client.complete(system, user)``.

    Attributes:
        model: The model identifier passed to every completion request.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_s: int = 120,
        max_output_tokens: int | None = None,
    ) -> None:
        self.model = model
        self.base_url = base_url
        self.timeout_s = timeout_s
        self.max_output_tokens = max_output_tokens
        # Retries happen in _complete_with_retries only.
        self._client = _openai.OpenAI(api_key=api_key, base_url=base_url, max_retries=0)

    def complete(self, system_prompt: str, user_prompt: str) -> _CompletionResponse:
        """Send a system + user chat completion request and return the reply."""
        kwargs: dict = dict(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            timeout=self.timeout_s,
        )
        if self.max_output_tokens is not None:
            kwargs["max_tokens"] = self.max_output_tokens
        response = self._client.chat.completions.create(**kwargs)
        return _CompletionResponse(text=response.choices[0].message.content)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def create_client(config: Config) -> CompletionClient:
    """Create a client from configuration.

    The API key comes from ``config.api_key``; when that is ``None`` the
    openai SDK falls back to its own ``OPENAI_API_KEY`` lookup and raises
    ``openai.OpenAIError`` if nothing is set.
    """
    return CompletionClient(
        model=config.model,
        api_key=config.api_key,
        base_url=config.base_url,
        timeout_s=config.timeout_s,
        max_output_tokens=config.max_output_tokens,
    )


def complete_chat(client: CompletionClient, system_prompt: str, user_prompt: str) -> str:
    """Run one completion and return the reply text.

    Raises:
        LLMError: if the call fails after retries or the reply is empty.
    """
    logger.info("Calling completion service  model=%s", client.model)
    logger.debug("Prompt size: %s chars", f"{len(user_prompt):,}")
    t0 = time.monotonic()
    text = _complete_with_retries(client, system_prompt, user_prompt)
    elapsed = time.monotonic() - t0
    if text is None:
        raise LLMError("Completion service returned no content")
    logger.info("Response received (%.1fs, %s chars)", elapsed, f"{len(text):,}")
    return text


def _complete_with_retries(
    client: CompletionClient, system_prompt: str, user_prompt: str
) -> str | None:
    """Run one completion with retry/backoff on transient 429/5xx errors."""
    attempts = _MAX_TRANSIENT_RETRIES + 1
    for attempt in range(1, attempts + 1):
        try:
            response = client.complete(system_prompt, user_prompt)
            return response.text
        except Exception as exc:
            if attempt >= attempts or not _is_retryable_status_error(exc):
                raise LLMError(f"Completion call failed: {exc}") from exc

            delay_s = _retry_delay_seconds(attempt)
            logger.warning(
                "Transient completion error on attempt %d/%d (%s); retrying in %.1fs",
                attempt,
                attempts,
                exc,
                delay_s,
            )
            time.sleep(delay_s)

    raise LLMError("Completion call failed after retries")


def _retry_delay_seconds(attempt: int) -> float:
    """Exponential backoff delay: 1.0s, 2.0s, ..."""
    return float(2 ** (attempt - 1))


def max_completion_seconds(timeout_s: float) -> float:
    """Longest a ``complete_chat`` call can take: every attempt times out, plus backoff."""
    attempts = _MAX_TRANSIENT_RETRIES + 1
    backoff = sum(_retry_delay_seconds(a) for a in range(1, attempts))
    return timeout_s * attempts + backoff


def _is_retryable_status_error(exc: Exception) -> bool:
    """Return True for transient API errors that should be retried."""
    status_code = _extract_status_code(exc)
    if status_code == 429:
        return True
    if status_code is not None and 500 <= status_code <= 599:
        return True
    return False


def _extract_status_code(exc: Exception) -> int | None:
    """Extract HTTP status code from common exception shapes or message text."""
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value

    message = str(exc)
    match = re.search(r"Error code:\s*(\d{3})", message, flags=re.IGNORECASE)
    if match:
        return int(match.group(1))

    return None
