"""
Console notifications.

Prints journal notifications with rich.
"""

import logging
from typing import Optional

from rich.console import Console

from propjournal.notify.messages import Notifier

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """Notification sink for the CLI."""

    def __init__(self, console: Optional[Console] = None, forward: Optional[Notifier] = None):
        self.console = console or Console()
        # Optional second sink, e.g. TelegramNotifier
        self.forward = forward

    def notify_success(self, text: str) -> None:
        logger.info(text)
        self.console.print(text, style="green", markup=False)
        if self.forward:
            self.forward.notify_success(text)

    def notify_error(self, text: str) -> None:
        logger.warning(text)
        self.console.print(text, style="red", markup=False)
        if self.forward:
            self.forward.notify_error(text)
