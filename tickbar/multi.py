"""Several progress displays sharing one draw target."""

from __future__ import annotations

import enum
import threading
import time
import weakref
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List, Optional, TypeVar

from tickbar.draw_target import DrawState, MultiProgressAlignment, ProgressDrawTarget

R = TypeVar("R")


@dataclass(frozen=True)
class InsertLocation:
    """Where a new member goes in the visual order of a multi progress."""

    class Kind(enum.Enum):
        END = "end"
        INDEX = "index"
        INDEX_FROM_BACK = "index_from_back"
        AFTER = "after"
        BEFORE = "before"

    kind: "InsertLocation.Kind"
    position: int = 0

    @classmethod
    def end(cls) -> "InsertLocation":
        return cls(cls.Kind.END)

    @classmethod
    def index(cls, position: int) -> "InsertLocation":
        """At ``position`` in the order, or at the end if past it."""
        return cls(cls.Kind.INDEX, position)

    @classmethod
    def index_from_back(cls, position: int) -> "InsertLocation":
        """At ``position`` counted from the back, or at the start if past it."""
        return cls(cls.Kind.INDEX_FROM_BACK, position)

    @classmethod
    def after(cls, member_idx: int) -> "InsertLocation":
        return cls(cls.Kind.AFTER, member_idx)

    @classmethod
    def before(cls, member_idx: int) -> "InsertLocation":
        return cls(cls.Kind.BEFORE, member_idx)


@dataclass
class _Member:
    draw_state: Optional[DrawState] = None
    owner: Optional[weakref.ref] = None
    is_zombie: bool = False

    def is_alive(self) -> bool:
        return self.owner is not None and self.owner() is not None


@dataclass
class MultiState:
    """The shared state behind a multi progress; guard access with ``lock``."""

    draw_target: ProgressDrawTarget
    members: List[_Member] = field(default_factory=list)
    free_set: List[int] = field(default_factory=list)
    ordering: List[int] = field(default_factory=list)
    move_cursor: bool = False
    alignment: MultiProgressAlignment = MultiProgressAlignment.TOP
    orphan_lines: List[str] = field(default_factory=list)
    lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    def draw(self, force_draw: bool, extra_lines: Optional[List[str]], now: int) -> None:
        """Paint all members, with ``extra_lines`` printed above them."""
        with self.lock:
            # Reap consecutive dead members from the head of the list.
            adjust = 0
            while self.ordering:
                index = self.ordering[0]
                member = self.members[index]
                if not member.is_zombie:
                    break
                if member.draw_state is not None:
                    adjust += len(member.draw_state.lines)
                self.remove_idx(index)

            last = self.draw_target.last_line_count
            if last is not None:
                self.draw_target.last_line_count = max(last - adjust, 0)

            orphan_count = len(self.orphan_lines)
            force_draw = force_draw or orphan_count > 0
            drawable = self.draw_target.drawable(force_draw, now)
            if drawable is None:
                return

            with drawable.state() as draw_state:
                draw_state.orphan_lines_count = orphan_count
                if extra_lines is not None:
                    draw_state.lines.extend(extra_lines)
                    draw_state.orphan_lines_count += len(extra_lines)

                # Orphaned lines go on top so that they can be forgotten.
                draw_state.lines.extend(self.orphan_lines)
                self.orphan_lines.clear()

                for index in self.ordering:
                    member = self.members[index]
                    if member.draw_state is not None:
                        draw_state.lines.extend(member.draw_state.lines)
                    # Dead members are marked now and reaped on the next draw.
                    if not member.is_alive():
                        member.is_zombie = True

            drawable.draw()

    def println(self, msg: str, now: int) -> None:
        """Print ``msg`` above the members; an empty message prints an empty line."""
        if msg:
            lines = msg.split("\n")
            if lines[-1] == "":
                lines.pop()
            lines = [line[:-1] if line.endswith("\r") else line for line in lines]
        else:
            lines = [""]
        self.draw(True, lines, now)

    @contextmanager
    def draw_state(self, idx: int) -> Iterator[DrawState]:
        """Yield the draw state of member ``idx``; orphaned lines move out on exit."""
        with self.lock:
            member = self.members[idx]
            if member.draw_state is None:
                member.draw_state = DrawState(
                    move_cursor=self.move_cursor, alignment=self.alignment
                )
            state = member.draw_state
            try:
                yield state
            finally:
                count = state.orphan_lines_count
                self.orphan_lines.extend(state.lines[:count])
                del state.lines[:count]
                state.orphan_lines_count = 0

    def is_hidden(self) -> bool:
        return self.draw_target.is_hidden()

    def suspend(self, f: Callable[[], R], now: int) -> R:
        """Clear the display, run ``f``, then draw again."""
        with self.lock:
            self.clear(now)
            result = f()
            self.draw(True, None, time.monotonic_ns())
            return result

    def width(self) -> int:
        return self.draw_target.width()

    def insert(self, location: InsertLocation) -> int:
        """Make room for a new member and return its index."""
        with self.lock:
            if self.free_set:
                idx = self.free_set.pop()
                self.members[idx] = _Member()
            else:
                self.members.append(_Member())
                idx = len(self.members) - 1

            kind = location.kind
            if kind is InsertLocation.Kind.END:
                self.ordering.append(idx)
            elif kind is InsertLocation.Kind.INDEX:
                self.ordering.insert(min(location.position, len(self.ordering)), idx)
            elif kind is InsertLocation.Kind.INDEX_FROM_BACK:
                self.ordering.insert(max(len(self.ordering) - location.position, 0), idx)
            elif kind is InsertLocation.Kind.AFTER:
                self.ordering.insert(self.ordering.index(location.position) + 1, idx)
            else:
                self.ordering.insert(self.ordering.index(location.position), idx)

            self._check_consistency()
            return idx

    def attach(self, idx: int, owner: Any) -> None:
        """Tie member ``idx`` to ``owner``; the member dies when the owner does."""
        with self.lock:
            self.members[idx].owner = weakref.ref(owner)

    def clear(self, now: int) -> None:
        """Erase everything drawn so far."""
        with self.lock:
            drawable = self.draw_target.drawable(True, now)
            if drawable is not None:
                drawable.clear()

    def remove_idx(self, idx: int) -> None:
        """Remove member ``idx``; removing it again does nothing."""
        with self.lock:
            if idx in self.free_set:
                return
            self.members[idx] = _Member()
            self.free_set.append(idx)
            self.ordering = [other for other in self.ordering if other != idx]
            self._check_consistency()

    def __len__(self) -> int:
        return len(self.members) - len(self.free_set)

    def _check_consistency(self) -> None:
        if len(self) != len(self.ordering):
            raise RuntimeError("Draw state is inconsistent")


class MultiProgress:
    """Manages several progress displays drawn together, safe across threads."""

    def __init__(self, draw_target: Optional[ProgressDrawTarget] = None) -> None:
        if draw_target is None:
            draw_target = ProgressDrawTarget.stderr()
        self.state = MultiState(draw_target)

    def __repr__(self) -> str:
        return f"MultiProgress(members={len(self.state)})"

    @classmethod
    def with_draw_target(cls, draw_target: ProgressDrawTarget) -> "MultiProgress":
        return cls(draw_target)

    def set_draw_target(self, target: ProgressDrawTarget) -> None:
        with self.state.lock:
            self.state.draw_target.disconnect(time.monotonic_ns())
            self.state.draw_target = target

    def set_move_cursor(self, move_cursor: bool) -> None:
        """Move the cursor instead of clearing lines where possible."""
        with self.state.lock:
            self.state.move_cursor = move_cursor

    def set_alignment(self, alignment: MultiProgressAlignment) -> None:
        with self.state.lock:
            self.state.alignment = alignment

    def println(self, msg: str) -> None:
        """Print a line above all members; does nothing on a hidden target."""
        with self.state.lock:
            self.state.println(msg, time.monotonic_ns())

    def suspend(self, f: Callable[[], R]) -> R:
        """Hide all members, run ``f``, redraw, and return what ``f`` returned."""
        with self.state.lock:
            return self.state.suspend(f, time.monotonic_ns())

    def clear(self) -> None:
        with self.state.lock:
            self.state.clear(time.monotonic_ns())

    def is_hidden(self) -> bool:
        with self.state.lock:
            return self.state.is_hidden()