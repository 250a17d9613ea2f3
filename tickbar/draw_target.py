"""Draw targets: where progress output is painted and how often."""

from __future__ import annotations

import enum
import os
import re
import sys
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Protocol, TextIO, Tuple

from wcwidth import wcwidth

MAX_BURST = 20
_DEFAULT_WIDTH = 79
_NANOS_PER_MILLI = 1_000_000

_ANSI_RE = re.compile(
    r"\x1b\[[0-9;?<=>]*[ -/]*[@-~]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x1b[@-Z\\-_]"
)


def measure_text_width(text: str) -> int:
    """Return the display width of ``text``, ignoring ANSI escape codes."""
    stripped = _ANSI_RE.sub("", text)
    return sum(max(wcwidth(char), 0) for char in stripped)


class MultiProgressAlignment(enum.Enum):
    """Vertical alignment of a multi progress when some of its bars are removed."""

    TOP = "top"
    BOTTOM = "bottom"


class _TermLike(Protocol):
    def width(self) -> int: ...

    def move_cursor_up(self, n: int) -> None: ...

    def move_cursor_down(self, n: int) -> None: ...

    def write_line(self, s: str) -> None: ...

    def write_str(self, s: str) -> None: ...

    def clear_line(self) -> None: ...

    def flush(self) -> None: ...


class Terminal:
    """A buffered terminal over a text stream; output is sent on ``flush``."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream if stream is not None else sys.stderr
        self._buffer: List[str] = []
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Terminal({self._stream!r})"

    def is_term(self) -> bool:
        """Return True if the stream is attached to an interactive terminal."""
        isatty = getattr(self._stream, "isatty", None)
        if isatty is None:
            return False
        try:
            return bool(isatty())
        except (OSError, ValueError):
            return False

    def width(self) -> int:
        try:
            return os.get_terminal_size(self._stream.fileno()).columns
        except (AttributeError, OSError, ValueError):
            return _DEFAULT_WIDTH

    def _write(self, text: str) -> None:
        with self._lock:
            self._buffer.append(text)

    def move_cursor_up(self, n: int) -> None:
        if n > 0:
            self._write(f"\x1b[{n}A")

    def move_cursor_down(self, n: int) -> None:
        if n > 0:
            self._write(f"\x1b[{n}B")

    def write_line(self, s: str) -> None:
        self._write(s + "\n")

    def write_str(self, s: str) -> None:
        self._write(s)

    def clear_line(self) -> None:
        self._write("\r\x1b[2K")

    def flush(self) -> None:
        with self._lock:
            pending = "".join(self._buffer)
            self._buffer.clear()
        if pending:
            self._stream.write(pending)
        self._stream.flush()


class RateLimiter:
    """Limit draws to a rate per second while allowing short bursts."""

    def __init__(self, rate: int, now: Optional[int] = None) -> None:
        if not 1 <= rate <= 255:
            raise ValueError("refresh rate must be between 1 and 255")
        self.interval = 1000 // rate  # milliseconds
        self.capacity = MAX_BURST
        self.prev = time.monotonic_ns() if now is None else now

    def allow(self, now: int) -> bool:
        """Return True if a draw at ``now`` (monotonic nanoseconds) may happen."""
        if now < self.prev:
            return False

        elapsed = now - self.prev
        if self.capacity == 0 and elapsed < self.interval * _NANOS_PER_MILLI:
            return False

        new = (elapsed // _NANOS_PER_MILLI) // self.interval
        remainder = (elapsed % self.interval) * _NANOS_PER_MILLI

        self.capacity = min(MAX_BURST, self.capacity + new - 1)
        self.prev = now - remainder
        return True


@dataclass
class DrawState:
    """The drawn state of an element."""

    lines: List[str] = field(default_factory=list)
    orphan_lines_count: int = 0
    move_cursor: bool = False
    alignment: MultiProgressAlignment = MultiProgressAlignment.TOP

    def draw_to_term(self, term: _TermLike, last_line_count: int) -> int:
        """Paint the lines to ``term`` and return the new last line count."""
        if sys.is_finalizing():
            return last_line_count

        if self.lines and self.move_cursor:
            term.move_cursor_up(last_line_count)
        else:
            n = last_line_count
            term.move_cursor_up(max(n - 1, 0))
            for i in range(n):
                term.clear_line()
                if i + 1 != n:
                    term.move_cursor_down(1)
            term.move_cursor_up(max(n - 1, 0))

        shift = 0
        if self.alignment is MultiProgressAlignment.BOTTOM and len(self.lines) < last_line_count:
            shift = last_line_count - len(self.lines)
            for _ in range(shift):
                term.write_line("")

        if self.lines:
            *head, last = self.lines
            for line in head:
                term.write_line(line)
            term.write_str(last)
            # Pad to the right edge so later prints start on a new line.
            padding = max(term.width() - measure_text_width(last), 0)
            term.write_str(" " * padding)

        term.flush()
        return len(self.lines) - self.orphan_lines_count + shift

    def reset(self) -> None:
        self.lines.clear()
        self.orphan_lines_count = 0


class _Hidden:
    pass


@dataclass
class _ScreenTarget:
    term: Any
    draw_state: DrawState = field(default_factory=DrawState)
    last_line_count: int = 0
    rate_limiter: Optional[RateLimiter] = None
    tty_only: bool = False


@dataclass
class _RemoteTarget:
    state: Any
    idx: int


class Drawable:
    """A target that is ready to be painted right now."""

    def __init__(self, kind: Any, force_draw: bool = False, now: int = 0) -> None:
        self._kind = kind
        self._force_draw = force_draw
        self._now = now

    @contextmanager
    def state(self) -> Iterator[DrawState]:
        """Yield the reset draw state to be filled with lines."""
        kind = self._kind
        if isinstance(kind, _RemoteTarget):
            with kind.state.lock, kind.state.draw_state(kind.idx) as draw_state:
                draw_state.reset()
                yield draw_state
        else:
            kind.draw_state.reset()
            yield kind.draw_state

    def clear(self) -> None:
        """Draw an empty state, erasing what was painted before."""
        with self.state():
            pass
        self.draw()

    def draw(self) -> None:
        kind = self._kind
        if isinstance(kind, _RemoteTarget):
            with kind.state.lock:
                kind.state.draw(self._force_draw, None, self._now)
        else:
            kind.last_line_count = kind.draw_state.draw_to_term(kind.term, kind.last_line_count)


class ProgressDrawTarget:
    """Where a progress bar or multi progress paints, with rate limiting."""

    def __init__(self, kind: Any) -> None:
        self._kind = kind

    def __repr__(self) -> str:
        return f"ProgressDrawTarget({type(self._kind).__name__.lstrip('_')})"

    @classmethod
    def stdout(cls) -> "ProgressDrawTarget":
        """Draw to a buffered stdout terminal at most 20 times a second."""
        return cls.term(Terminal(sys.stdout), 20)

    @classmethod
    def stderr(cls) -> "ProgressDrawTarget":
        """Draw to a buffered stderr terminal at most 20 times a second."""
        return cls.term(Terminal(sys.stderr), 20)

    @classmethod
    def stdout_with_hz(cls, refresh_rate: int) -> "ProgressDrawTarget":
        return cls.term(Terminal(sys.stdout), refresh_rate)

    @classmethod
    def stderr_with_hz(cls, refresh_rate: int) -> "ProgressDrawTarget":
        return cls.term(Terminal(sys.stderr), refresh_rate)

    @classmethod
    def term(cls, term: Terminal, refresh_rate: int) -> "ProgressDrawTarget":
        """Draw to a terminal; nothing is drawn when it is not interactive."""
        return cls(_ScreenTarget(term, rate_limiter=RateLimiter(refresh_rate), tty_only=True))

    @classmethod
    def term_like(cls, term_like: _TermLike) -> "ProgressDrawTarget":
        """Draw to any terminal-like object, without rate limiting."""
        return cls(_ScreenTarget(term_like))

    @classmethod
    def hidden(cls) -> "ProgressDrawTarget":
        """A target that draws nothing."""
        return cls(_Hidden())

    @classmethod
    def new_remote(cls, state: Any, idx: int) -> "ProgressDrawTarget":
        """A target that hands drawing over to a shared multi progress state."""
        return cls(_RemoteTarget(state, idx))

    def is_hidden(self) -> bool:
        kind = self._kind
        if isinstance(kind, _Hidden):
            return True
        if isinstance(kind, _RemoteTarget):
            with kind.state.lock:
                return kind.state.is_hidden()
        if kind.tty_only:
            return not kind.term.is_term()
        return False

    def width(self) -> int:
        kind = self._kind
        if isinstance(kind, _Hidden):
            return 0
        if isinstance(kind, _RemoteTarget):
            with kind.state.lock:
                return kind.state.width()
        return kind.term.width()

    def drawable(self, force_draw: bool, now: int) -> Optional[Drawable]:
        """Return a drawable if painting is due, else None."""
        kind = self._kind
        if isinstance(kind, _Hidden):
            return None
        if isinstance(kind, _RemoteTarget):
            return Drawable(kind, force_draw, now)
        if kind.tty_only:
            if not kind.term.is_term():
                return None
            if not (force_draw or kind.rate_limiter.allow(now)):
                return None
        return Drawable(kind, force_draw, now)

    def disconnect(self, now: int) -> None:
        """Detach from the target, clearing this element from a multi progress."""
        kind = self._kind
        if isinstance(kind, _RemoteTarget):
            with kind.state.lock:
                Drawable(kind, True, now).clear()

    def remote(self) -> Optional[Tuple[Any, int]]:
        kind = self._kind
        if isinstance(kind, _RemoteTarget):
            return kind.state, kind.idx
        return None

    @property
    def last_line_count(self) -> Optional[int]:
        """Lines painted by the last draw, or None for targets without a screen."""
        if isinstance(self._kind, _ScreenTarget):
            return self._kind.last_line_count
        return None

    @last_line_count.setter
    def last_line_count(self, value: int) -> None:
        if not isinstance(self._kind, _ScreenTarget):
            raise AttributeError("this draw target has no line count")
        self._kind.last_line_count = value