"""Newline-delimited JSON decoding of an append-only byte stream."""

import json
import logging
from typing import Any, List, Union

from core.exceptions import ProtocolError

logger = logging.getLogger(__name__)

# Matches the request body limit of the HTTP transport
DEFAULT_MAX_LINE_BYTES = 10 * 1024 * 1024

DecodedItem = Union[Any, ProtocolError]

_BLANK = object()


class LineDecoder:
    """
    Incremental decoder: bytes in, one JSON value per complete line out.

    ``feed`` returns decoded values and ``ProtocolError`` instances in stream
    order. A malformed line produces an error item and is dropped; the lines
    after it are decoded normally. Bytes without a terminating newline stay
    buffered until more input arrives.
    """

    def __init__(self, max_line_bytes: int = DEFAULT_MAX_LINE_BYTES):
        self.max_line_bytes = max_line_bytes
        self._buffer = bytearray()
        self._discarding = False

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet terminated by a newline."""
        return len(self._buffer)

    def feed(self, data: bytes) -> List[DecodedItem]:
        items: List[DecodedItem] = []
        self._buffer.extend(data)

        while True:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                break
            line = bytes(self._buffer[:newline])
            del self._buffer[:newline + 1]

            if self._discarding:
                # Tail of an oversized line
                self._discarding = False
                continue

            if len(line) > self.max_line_bytes:
                items.append(self._too_long())
                continue

            item = self._decode_line(line)
            if item is not _BLANK:
                items.append(item)

        if not self._discarding and len(self._buffer) > self.max_line_bytes:
            items.append(self._too_long())
            self._buffer.clear()
            self._discarding = True
        elif self._discarding:
            self._buffer.clear()

        return items

    def finish(self) -> None:
        """End of stream: drop any unterminated remainder."""
        if self._buffer:
            logger.warning(f"Discarding {len(self._buffer)} bytes without a trailing newline at end of input")
        self._buffer.clear()
        self._discarding = False

    def _too_long(self) -> ProtocolError:
        logger.warning(f"Input line exceeds {self.max_line_bytes} bytes, discarded")
        return ProtocolError(
            f"Invalid JSON: line exceeds {self.max_line_bytes} bytes",
            {"max_line_bytes": self.max_line_bytes}
        )

    @staticmethod
    def _decode_line(line: bytes) -> Any:
        try:
            text = line.decode("utf-8")
        except UnicodeDecodeError:
            return ProtocolError(f"Invalid JSON: {line.decode('utf-8', errors='replace')}")

        if not text.strip():
            return _BLANK

        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return ProtocolError(f"Invalid JSON: {text.strip()}")
