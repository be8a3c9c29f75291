"""Playwright module for the taxonomy crawler."""

from .browser import (
    PlaywrightSessionProvisioner,
    build_launch_args,
    ensure_shared_playwright,
    shutdown_shared_playwright,
)
from .pages import configure_page
from .session import BrowserSession

__all__ = [
    "PlaywrightSessionProvisioner",
    "BrowserSession",
    "build_launch_args",
    "ensure_shared_playwright",
    "shutdown_shared_playwright",
    "configure_page",
]
