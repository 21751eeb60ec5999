"""Notifier protocol — an outbound channel for risk alerts and reports."""
from typing import Protocol


class Notifier(Protocol):
    """A delivery channel used by the live monitor.

    ``send_alert`` carries alerts and full reports and should reach the user
    immediately. ``send_log`` carries routine metrics snapshots and may be
    muted. Both return True only when the channel accepted the message.
    """

    async def send_alert(self, message: str, subject: str = "") -> bool: ...

    async def send_log(self, message: str, silent: bool = True) -> bool: ...
