"""Server-sent event decoding for streamed completions."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator, Iterable, Iterator
from typing import Any, Callable, Optional

import httpx

from .models import MessageEvent

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
ERROR_EVENT_PREFIX = "event: error"
DONE_MARKER = "[DONE]"


def parse_event_stream(lines: Iterable[str]) -> Iterator[MessageEvent]:
    """Decode the text/event-stream subset used by the completion endpoint.

    Args:
        lines: Lines of the response body, without line terminators

    Yields:
        A completion event per ``data:`` payload carrying a ``completion``
        string, an error event per ``event: error`` block, and a final done
        event when ``data: [DONE]`` arrives. Nothing is yielded after done.
        A stream that ends without ``[DONE]`` simply stops.
    """
    line_iter = iter(lines)
    for line in line_iter:
        if line.startswith(DATA_PREFIX):
            data = line[len(DATA_PREFIX) :]
            if data == DONE_MARKER:
                yield MessageEvent.done()
                return

            try:
                payload = json.loads(data)
            except ValueError as e:
                logger.warning("Failed to decode SSE event %r: %s", data, e)
                continue

            completion = payload.get("completion") if isinstance(payload, dict) else None
            if isinstance(completion, str):
                yield MessageEvent.completion(completion)
        elif line.startswith(ERROR_EVENT_PREFIX):
            # The error payload is on the following line
            error_line = next(line_iter, "")
            if error_line.startswith(DATA_PREFIX):
                error_line = error_line[len(DATA_PREFIX) :]
            yield MessageEvent.error(error_line)


class MessageStream:
    """Finite, single-use sequence of events for one completion request.

    The request is only sent once iteration starts. The underlying HTTP
    response is closed when the stream is exhausted, when ``close()`` is
    called, or when a ``with`` block around it exits.
    """

    def __init__(
        self,
        client: httpx.Client,
        url: str,
        payload: dict[str, Any],
        build_headers: Callable[[], dict[str, str]],
        classify_error: Optional[Callable[[int, bytes], Exception]] = None,
    ):
        self._client = client
        self._url = url
        self._payload = payload
        self._build_headers = build_headers
        self._classify_error = classify_error
        self._events: Optional[Generator[MessageEvent, None, None]] = None
        self._closed = False

    def _generate(self) -> Generator[MessageEvent, None, None]:
        # Resolved on the first next(), so a missing session key raises there
        headers = self._build_headers()
        content = json.dumps(self._payload).encode("utf-8")
        logger.debug("Streaming completion from %s", self._url)
        try:
            with self._client.stream(
                "POST", self._url, content=content, headers=headers
            ) as response:
                if response.status_code >= 400:
                    response.read()
                    yield MessageEvent.error(self._error_text(response))
                    return
                yield from parse_event_stream(response.iter_lines())
        except httpx.HTTPError as e:
            yield MessageEvent.error(f"Network error: {e}")
        finally:
            logger.debug("Completion stream closed")

    def _error_text(self, response: httpx.Response) -> str:
        if self._classify_error is None:
            return f"API request failed with status code {response.status_code}"
        return str(self._classify_error(response.status_code, response.content))

    def __iter__(self) -> "MessageStream":
        return self

    def __next__(self) -> MessageEvent:
        if self._closed:
            raise StopIteration
        if self._events is None:
            self._events = self._generate()
        try:
            return next(self._events)
        except StopIteration:
            self._closed = True
            raise

    def close(self) -> None:
        """Stop the stream and release the HTTP response."""
        if self._closed:
            return
        self._closed = True
        if self._events is not None:
            self._events.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "MessageStream":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
