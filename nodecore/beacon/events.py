"""Server-sent event stream from a beacon node."""

from __future__ import annotations

import contextlib
import json
import queue
import threading
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

import httpx

EVENT_STREAM_BUFFER_SIZE = 5
EVENT_STREAM_TIMEOUT = 4.0

_EVENT_PREFIX = "event: "
_DATA_PREFIX = "data: "
_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Accept": "text/event-stream",
    "Connection": "keep-alive",
}
_HEAD_STRING_FIELDS = (
    "slot",
    "block",
    "state",
    "current_duty_dependent_root",
    "previous_duty_dependent_root",
)


@dataclass
class HeadEvent:
    """A new chain head announced by the beacon node."""

    slot: str = ""
    block: str = ""
    state: str = ""
    epoch_transition: bool = False
    current_duty_dependent_root: str = ""
    previous_duty_dependent_root: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> HeadEvent:
        if not isinstance(data, dict):
            raise ValueError("head event must be a JSON object")
        values: dict[str, Any] = {}
        for name in _HEAD_STRING_FIELDS:
            value = data.get(name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValueError(f"field '{name}' must be a string")
            values[name] = value
        transition = data.get("epoch_transition")
        if transition is not None:
            if not isinstance(transition, bool):
                raise ValueError("field 'epoch_transition' must be a boolean")
            values["epoch_transition"] = transition
        return cls(**values)


@dataclass
class Event:
    """One item from the stream: a topic with its data, or an error."""

    topic: str = ""
    data: Any = None
    error: Exception | None = None


def parse_event(event_str: str) -> Event:
    """Parse one "event:"/"data:" block; problems are reported in Event.error."""
    parts = event_str.split("\n")
    if len(parts) < 2:
        return Event(error=ValueError(f"invalid event format: Number of parts is {len(parts)}"))
    if not parts[0].startswith(_EVENT_PREFIX):
        return Event(error=ValueError("invalid event format: Missing event type"))
    if not parts[1].startswith(_DATA_PREFIX):
        return Event(error=ValueError("invalid event format: Missing event data"))

    event_type = parts[0][len(_EVENT_PREFIX):].strip()
    data = parts[1][len(_DATA_PREFIX):].strip()

    if event_type == "head":
        try:
            head = HeadEvent.from_dict(json.loads(data))
        except ValueError as exc:
            return Event(error=ValueError(f"error decoding head event data: {exc}"))
        return Event(topic=event_type, data=head)
    return Event(error=ValueError(f"unsupported event type: {event_type}"))


def split_events(lines: Iterable[str]) -> Iterator[str]:
    """Group stream lines into event blocks separated by blank lines."""
    pending: list[str] = []
    for line in lines:
        if line == "":
            if pending:
                yield "".join(pending)
                pending = []
            continue
        pending.append(line + "\n")


class EventStream:
    """Polls a beacon node's event endpoint in the background and buffers the events.

    Iterating yields events until the stream is closed and its buffer drained.
    """

    def __init__(
        self,
        url: str,
        client: httpx.Client | None = None,
        interval: float = EVENT_STREAM_TIMEOUT,
    ) -> None:
        self.url = url
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=None)
        self._interval = interval
        self._queue: queue.Queue[Event] = queue.Queue(maxsize=EVENT_STREAM_BUFFER_SIZE)
        self._stop = threading.Event()
        self._finished = threading.Event()
        self._response_lock = threading.Lock()
        self._response: httpx.Response | None = None
        self._thread = threading.Thread(target=self._run, name="beacon-event-stream", daemon=True)
        self._thread.start()

    def __iter__(self) -> Iterator[Event]:
        while True:
            try:
                event = self._queue.get(timeout=0.1)
            except queue.Empty:
                if self._finished.is_set() and self._queue.empty():
                    return
                continue
            yield event

    def __enter__(self) -> EventStream:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Stop polling; events already buffered can still be read."""
        self._stop.set()
        with self._response_lock:
            response = self._response
        if response is not None:
            with contextlib.suppress(httpx.HTTPError, RuntimeError, OSError):
                response.close()
        self._thread.join(timeout=5.0)

    def _publish(self, event: Event) -> bool:
        while not self._stop.is_set():
            try:
                self._queue.put(event, timeout=0.1)
                return True
            except queue.Full:
                continue
        return False

    def _run(self) -> None:
        try:
            while not self._stop.wait(self._interval):
                self._poll()
        finally:
            self._finished.set()
            if self._owns_client:
                self._client.close()

    def _poll(self) -> None:
        try:
            with self._client.stream("GET", self.url, headers=_STREAM_HEADERS) as response:
                if response.status_code != httpx.codes.OK:
                    self._publish(
                        Event(
                            error=ConnectionError(
                                "received unexpected status code: "
                                f"{response.status_code} {response.reason_phrase}"
                            )
                        )
                    )
                    return
                with self._response_lock:
                    self._response = response
                try:
                    for block in split_events(response.iter_lines()):
                        if self._stop.is_set() or not self._publish(parse_event(block)):
                            return
                finally:
                    with self._response_lock:
                        self._response = None
        except httpx.InvalidURL as exc:
            self._publish(Event(error=ConnectionError(f"error creating event stream request: {exc}")))
        except (httpx.HTTPError, httpx.StreamError, OSError) as exc:
            if not self._stop.is_set():
                self._publish(Event(error=ConnectionError(f"error reading event stream: {exc}")))