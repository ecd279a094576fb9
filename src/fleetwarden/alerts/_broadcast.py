"""Broadcast hub for alert and status messages.

Messages are fanned out to subscribers through bounded anyio memory
streams. Publishing never blocks: a subscriber whose buffer is full misses
the message, and a subscriber that closed its end is dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, final, runtime_checkable

import anyio
import orjson

from fleetwarden.utils import create_null_logger, get_timestamp

if TYPE_CHECKING:
    from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
    from structlog.typing import FilteringBoundLogger

DEFAULT_SUBSCRIBER_BUFFER = 100


class MessageType(StrEnum):
    """Envelope types pushed to observers."""

    UPDATE = "update"
    ALERT = "alert"
    ALERT_ACKNOWLEDGED = "alert_acknowledged"


@dataclass(frozen=True, slots=True)
class BroadcastMessage:
    """Outbound message envelope.

    Attributes:
        type: Envelope type.
        data: Message payload.
        timestamp: ISO 8601 timestamp of publication.
    """

    type: MessageType
    data: dict[str, object]
    timestamp: str = field(default_factory=get_timestamp)

    def to_dict(self) -> dict[str, object]:
        """Return the envelope as a JSON-serializable dict."""
        return {"type": self.type.value, "data": self.data, "timestamp": self.timestamp}

    def to_json(self) -> str:
        """Return the envelope serialized as JSON."""
        return orjson.dumps(self.to_dict()).decode("utf-8")


@runtime_checkable
class BroadcastSink(Protocol):
    """Protocol for anything that accepts outbound envelopes."""

    def publish(self, message: BroadcastMessage) -> None:
        """Accept a message without blocking."""
        ...


@final
class BroadcastHub:
    """Fan-out of broadcast messages to any number of subscribers."""

    __slots__ = ("_buffer", "_closed", "_logger", "_subscribers")

    def __init__(
        self,
        buffer: int = DEFAULT_SUBSCRIBER_BUFFER,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the hub.

        Args:
            buffer: Default per-subscriber buffer size.
            logger: Structured logger.
        """
        self._buffer = buffer
        self._subscribers: list[MemoryObjectSendStream[BroadcastMessage]] = []
        self._closed = False
        self._logger = (logger or create_null_logger()).bind(component="broadcast_hub")

    @property
    def subscriber_count(self) -> int:
        """Return the number of live subscribers."""
        return len(self._subscribers)

    def subscribe(self, buffer: int | None = None) -> MemoryObjectReceiveStream[BroadcastMessage]:
        """Register a subscriber.

        Closing the returned stream unsubscribes on the next publish.

        Args:
            buffer: Buffer size for this subscriber. Defaults to the hub's.

        Returns:
            The receiving end of the subscriber's channel.
        """
        send, receive = anyio.create_memory_object_stream[BroadcastMessage](
            buffer if buffer is not None else self._buffer
        )
        if self._closed:
            send.close()
        else:
            self._subscribers.append(send)
        return receive

    def publish(self, message: BroadcastMessage) -> None:
        """Deliver a message to every subscriber without waiting."""
        for send in list(self._subscribers):
            try:
                send.send_nowait(message)
            except anyio.WouldBlock:
                self._logger.warning("subscriber_lagging", message_type=message.type)
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                self._subscribers.remove(send)
                send.close()
                self._logger.debug("subscriber_removed", remaining=len(self._subscribers))

    def close(self) -> None:
        """Close every subscriber channel and refuse new subscribers."""
        self._closed = True
        for send in self._subscribers:
            send.close()
        self._subscribers.clear()
