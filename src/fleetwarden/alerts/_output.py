"""Console rendering of broadcast messages."""

from __future__ import annotations

from typing import TYPE_CHECKING, final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ._broadcast import BroadcastMessage, MessageType
from ._models import Severity

if TYPE_CHECKING:
    from anyio.streams.memory import MemoryObjectReceiveStream

_STATUS_STYLES: dict[str, Style] = {
    "healthy": Style(color="green"),
    "starting": Style(color="cyan"),
    "unhealthy": Style(color="red", bold=True),
    "stopped": Style(color="yellow"),
}


@final
class ConsoleSink:
    """Broadcast sink that prints messages to a rich console.

    Alerts are colored by severity, status updates are summarized on one
    line and acknowledgements are dimmed.
    """

    __slots__ = ("_console", "_severity_styles")

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the sink.

        Args:
            console: Rich Console instance for output. If None, creates a new one.
        """
        self._console = console or Console()
        self._severity_styles: dict[str, Style] = {
            Severity.INFO: Style(color="green"),
            Severity.WARNING: Style(color="yellow", bold=True),
            Severity.CRITICAL: Style(color="red", bold=True),
        }

    def publish(self, message: BroadcastMessage) -> None:
        """Render one message."""
        self._console.print(self.render(message))

    async def consume(self, stream: MemoryObjectReceiveStream[BroadcastMessage]) -> None:
        """Render every message received from a hub subscription until it closes."""
        async with stream:
            async for message in stream:
                self.publish(message)

    def render(self, message: BroadcastMessage) -> Text:
        """Format a message as a single styled line."""
        text = Text()
        _ = text.append(f"[{message.timestamp}]", style=Style(dim=True))
        _ = text.append(" ")

        match message.type:
            case MessageType.ALERT:
                self._render_alert(text, message.data)
            case MessageType.UPDATE:
                self._render_update(text, message.data)
            case MessageType.ALERT_ACKNOWLEDGED:
                _ = text.append(
                    f"ACK {message.data.get('alert_id')}", style=Style(dim=True, italic=True)
                )
        return text

    def _render_alert(self, text: Text, data: dict[str, object]) -> None:
        severity = str(data.get("severity", Severity.INFO))
        style = self._severity_styles.get(severity, Style())
        _ = text.append(severity.upper(), style=style)
        _ = text.append(f" p{data.get('priority')}", style=Style(dim=True))
        _ = text.append(f" [{data.get('source')}]", style=Style(color="blue", bold=True))
        _ = text.append(f" {data.get('title')}", style=style)
        if data.get("message"):
            _ = text.append(f" - {data.get('message')}")

    def _render_update(self, text: Text, data: dict[str, object]) -> None:
        _ = text.append("UPDATE", style=Style(color="blue"))
        services = data.get("services")
        if not isinstance(services, list):
            return
        for entry in services:
            if not isinstance(entry, dict):
                continue
            status = str(entry.get("status"))
            _ = text.append(f" {entry.get('name')}=")
            _ = text.append(status, style=_STATUS_STYLES.get(status, Style()))
