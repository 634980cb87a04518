"""Execution output stream with embedded link markup.

Gates write human-readable notices to the output of the execution they
pause.  Lines are plain text; links are embedded as markup so a console
renderer can turn them into clickable elements:

- ``[link=URL]text[/link]``: a plain (GET) link, the same syntax rich uses
- ``[post=URL]text[/post]``: an action that must be sent as a POST

Example
-------
>>> out = ExecutionOutput()
>>> out.println(f"Approved by {principal_link(Principal('alice'))}")
>>> out.lines()
['Approved by [link=/user/alice]alice[/link]']
>>> strip_markup(out.lines()[0])
'Approved by alice'
"""
from __future__ import annotations

import re
import threading
from typing import TYPE_CHECKING, TextIO
from urllib.parse import quote

if TYPE_CHECKING:
    from aumos_input_gate.permissions.principal import Principal

_MARKUP_RE = re.compile(r"\[(link|post)=([^\]]*)\](.*?)\[/\1\]")


def hyperlink(url: str, text: str) -> str:
    """Markup for a GET link."""
    return f"[link={url}]{text}[/link]"


def post_hyperlink(url: str, text: str) -> str:
    """Markup for an action link that must be POSTed."""
    return f"[post={url}]{text}[/post]"


def principal_link(principal: "Principal") -> str:
    """Markup linking to a principal's user page."""
    return hyperlink(f"/user/{quote(principal.name, safe='')}", principal.name)


def strip_markup(line: str) -> str:
    """Return *line* with link markup reduced to its text."""
    return _MARKUP_RE.sub(lambda m: m.group(3), line)


def to_rich(line: str) -> str:
    """Return *line* with POST links rewritten as rich ``[link]`` markup."""
    return _MARKUP_RE.sub(lambda m: f"[link={m.group(2)}]{m.group(3)}[/link]", line)


class ExecutionOutput:
    """Thread-safe, append-only line buffer for one execution.

    Parameters
    ----------
    sink:
        Optional text stream every line is also written to (for example
        ``sys.stdout`` or an open log file).
    """

    def __init__(self, sink: TextIO | None = None) -> None:
        self._lines: list[str] = []
        self._sink = sink
        self._lock = threading.Lock()

    def println(self, line: str = "") -> None:
        """Append one line."""
        with self._lock:
            self._lines.append(line)
            if self._sink is not None:
                self._sink.write(line + "\n")
                self._sink.flush()

    def lines(self) -> list[str]:
        """Snapshot of every line written so far."""
        with self._lock:
            return list(self._lines)

    def text(self) -> str:
        """All lines with markup stripped, newline-joined."""
        return "\n".join(strip_markup(line) for line in self.lines())
