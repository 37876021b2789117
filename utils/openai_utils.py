import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion, ChatCompletionMessageParam

__all__ = ["safe_chat_completion", "completion_text"]


async def safe_chat_completion(
    client: AsyncOpenAI,
    *,
    model: str,
    messages: Iterable[dict[str, Any]],
    logger: logging.Logger | None = None,
    retry_attempts: int = 3,
    retry_backoff: float = 1.0,
    **kwargs,
) -> ChatCompletion:
    """Call the chat completion endpoint, retrying with exponential back-off.

    Parameters
    ----------
    client:
        An initialised ``openai.AsyncOpenAI`` client.
    model:
        Model name, e.g. ``"gpt-4o-mini"``.
    messages:
        Chat messages forwarded unchanged.
    logger:
        Logger for diagnostics; a module logger is used when omitted.
    retry_attempts:
        Total attempts before giving up.
    retry_backoff:
        Base delay in seconds; attempt ``n`` waits ``backoff * 2**(n-1)``.
    **kwargs:
        Extra arguments for ``client.chat.completions.create`` (``temperature``,
        ``response_format``...).

    Raises
    ------
    Exception
        The last error once every attempt has failed.
    """
    if client is None:
        raise RuntimeError("OpenAI client is not initialised.")
    if not isinstance(client, AsyncOpenAI):
        raise TypeError("safe_chat_completion requires an AsyncOpenAI client.")

    logger = logger or logging.getLogger(__name__)
    typed_messages: Iterable[ChatCompletionMessageParam] = messages  # type: ignore[assignment]
    last_exc: Exception | None = None

    for attempt in range(1, retry_attempts + 1):
        try:
            loop = asyncio.get_running_loop()
            started = loop.time()
            completion = await client.chat.completions.create(
                model=model,
                messages=typed_messages,
                **kwargs,
            )
            logger.debug(
                "OpenAI completions.create call succeeded | model=%s | latency=%.2fs",
                model,
                loop.time() - started,
            )
            return completion
        except Exception as exc:  # noqa: BLE001
            last_exc = exc
            logger.warning("OpenAI call failed (attempt %s/%s): %s", attempt, retry_attempts, exc)
            if attempt < retry_attempts:
                await asyncio.sleep(retry_backoff * (2 ** (attempt - 1)))

    assert last_exc is not None
    raise last_exc


def completion_text(completion: ChatCompletion) -> str:
    """Text of the first choice, or an empty string."""
    if not completion.choices:
        return ""
    return completion.choices[0].message.content or ""
