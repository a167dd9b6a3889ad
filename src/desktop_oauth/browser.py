"""Opening the authorization URL in the user's browser."""

from __future__ import annotations

import logging
import webbrowser
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class BrowserLauncher(Protocol):
    """Protocol for handing the authorization URL to the user.

    Allows different strategies:
    - System default browser
    - Printing the URL for manual opening
    - Custom UI integration
    """

    def open(self, url: str) -> bool:
        """Open url, returning False when the user must open it by hand."""
        ...


class SystemBrowserLauncher:
    """Opens the URL with the default browser, falling back to showing it."""

    def __init__(self, show_url: Callable[[str], None] | None = None):
        self.show_url = show_url or _print_url

    def open(self, url: str) -> bool:
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as e:
            logger.warning(f"Could not open browser: {e}")
            opened = False

        if not opened:
            self.show_url(url)
        return opened


class ManualBrowserLauncher:
    """Never starts a browser; only shows the URL."""

    def __init__(self, show_url: Callable[[str], None] | None = None):
        self.show_url = show_url or _print_url

    def open(self, url: str) -> bool:
        self.show_url(url)
        return False


def _print_url(url: str) -> None:
    print("Open this URL in your browser to continue:\n")
    print(url)
    print()
