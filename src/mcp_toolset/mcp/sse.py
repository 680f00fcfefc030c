"""Server-Sent Events parsing shared by the HTTP transports.

Both the legacy HTTP+SSE transport (a long-lived GET stream) and the
Streamable HTTP transport (POST responses that may be event streams) read
``text/event-stream`` bodies. ``SSEParser`` turns raw body chunks into
complete ``SSEEvent`` objects.
"""

import codecs
import json
import re
from dataclasses import dataclass
from typing import Any, Optional

# CRLF, lone CR and lone LF all end a line
LINE_END = re.compile(r"\r\n|\r|\n")


@dataclass
class SSEEvent:
    """A single dispatched Server-Sent Event.

    Attributes:
        event_type: Event type ("message" unless the stream names another)
        data: Event payload, multi-line data joined with newlines
        event_id: Last event ID seen on the stream, if any
    """

    event_type: str = "message"
    data: str = ""
    event_id: Optional[str] = None

    def json(self) -> Any:
        """Decode the payload as JSON.

        Raises:
            json.JSONDecodeError: If the payload is not JSON
        """
        return json.loads(self.data)


class SSEParser:
    """Incremental ``text/event-stream`` parser.

    Chunks may split lines and multi-byte characters anywhere; events are
    only emitted once their terminating blank line has been read.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._event_type = "message"
        self._data: list[str] = []
        self._event_id: Optional[str] = None
        # A chunk ended in CR; a LF opening the next chunk belongs to it
        self._pending_cr = False

    def feed(self, chunk: bytes) -> list[SSEEvent]:
        """Feed raw bytes, returning every event completed by them.

        Args:
            chunk: Bytes read from the response body

        Returns:
            Completed events in stream order
        """
        self._buffer += self._decoder.decode(chunk)
        if self._pending_cr and self._buffer:
            if self._buffer.startswith("\n"):
                self._buffer = self._buffer[1:]
            self._pending_cr = False

        events = []

        while True:
            match = LINE_END.search(self._buffer)
            if match is None:
                break
            line = self._buffer[:match.start()]
            self._buffer = self._buffer[match.end():]
            if match.group() == "\r" and not self._buffer:
                self._pending_cr = True

            event = self._process_line(line)
            if event is not None:
                events.append(event)

        return events

    def _process_line(self, line: str) -> Optional[SSEEvent]:
        if not line:
            return self._dispatch()

        # Comment / keep-alive
        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event_type = value or "message"
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            self._event_id = value

        return None

    def _dispatch(self) -> Optional[SSEEvent]:
        if not self._data:
            self._event_type = "message"
            return None

        event = SSEEvent(
            event_type=self._event_type,
            data="\n".join(self._data),
            event_id=self._event_id,
        )
        self._event_type = "message"
        self._data = []
        return event
