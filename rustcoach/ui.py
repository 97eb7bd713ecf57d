"""Terminal styling and status messages."""

from __future__ import annotations

import os

_RESET = "\x1b[0m"


def no_emoji() -> bool:
    """Return True when the NO_EMOJI environment variable is set."""
    return "NO_EMOJI" in os.environ


def _style(code: str, text: object) -> str:
    return f"\x1b[{code}m{text}{_RESET}"


def bold(text: object) -> str:
    return _style("1", text)


def red(text: object) -> str:
    return _style("31", text)


def green(text: object) -> str:
    return _style("32", text)


def blue(text: object) -> str:
    return _style("34", text)


def warn(message: str) -> None:
    """Print a warning line in red, prefixed by a warning sign."""
    symbol = "!" if no_emoji() else "⚠️ "
    print(f"{red(symbol)} {red(message)}")


def success(message: str) -> None:
    """Print a success line in green, prefixed by a check mark."""
    symbol = "✓" if no_emoji() else "✅"
    print(f"{green(symbol)} {green(message)}")