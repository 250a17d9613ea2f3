"""A terminal that renders into memory, for inspecting drawn output."""

from __future__ import annotations

import threading
from typing import List, Optional

from wcwidth import wcwidth

# A cell holds its text, "" when blank, or None when it is the right half
# of a double-width character.
_Cell = Optional[str]


class _Screen:
    """A small VT100-style screen: a grid of cells and a cursor."""

    def __init__(self, rows: int, cols: int) -> None:
        self.rows = rows
        self.cols = cols
        self.grid: List[List[_Cell]] = [self._blank_row() for _ in range(rows)]
        self.row = 0
        self.col = 0
        self._pending = ""

    def _blank_row(self) -> List[_Cell]:
        return [""] * self.cols

    def feed(self, text: str) -> None:
        data = self._pending + text
        self._pending = ""
        position = 0
        while position < len(data):
            char = data[position]
            if char == "\x1b":
                end = self._escape_end(data, position)
                if end is None:
                    self._pending = data[position:]
                    return
                self._escape(data[position:end])
                position = end
                continue
            self._put(char)
            position += 1

    @staticmethod
    def _escape_end(data: str, start: int) -> Optional[int]:
        if start + 1 >= len(data):
            return None
        kind = data[start + 1]
        if kind == "[":
            for position in range(start + 2, len(data)):
                if "\x40" <= data[position] <= "\x7e":
                    return position + 1
            return None
        if kind == "]":
            for position in range(start + 2, len(data)):
                if data[position] == "\x07":
                    return position + 1
                if data[position] == "\x1b" and data[position + 1 : position + 2] == "\\":
                    return position + 2
            return None
        return start + 2

    def _escape(self, sequence: str) -> None:
        if sequence.startswith("\x1b["):
            self._csi(sequence[2:-1], sequence[-1])

    def _csi(self, params: str, final: str) -> None:
        if params[:1] in ("?", ">", "=", "<"):
            return
        args = [int(part) if part.isdigit() else 0 for part in params.split(";")] if params else []
        count = args[0] if args and args[0] else 1
        if final == "A":
            self.row = max(self.row - count, 0)
        elif final == "B":
            self.row = min(self.row + count, self.rows - 1)
        elif final == "C":
            self.col = min(self.col + count, self.cols - 1)
        elif final == "D":
            self.col = max(self.col - count, 0)
        elif final == "G":
            self.col = min(count, self.cols) - 1
        elif final in ("H", "f"):
            row = args[0] if args and args[0] else 1
            col = args[1] if len(args) > 1 and args[1] else 1
            self.row = min(row, self.rows) - 1
            self.col = min(col, self.cols) - 1
        elif final == "K":
            self._erase_line(args[0] if args else 0)
        elif final == "J":
            self._erase_display(args[0] if args else 0)

    def _erase_line(self, mode: int) -> None:
        line = self.grid[self.row]
        if mode == 0:
            span = range(min(self.col, self.cols), self.cols)
        elif mode == 1:
            span = range(0, min(self.col + 1, self.cols))
        else:
            span = range(self.cols)
        for col in span:
            line[col] = ""

    def _erase_display(self, mode: int) -> None:
        if mode == 0:
            self._erase_line(0)
            for row in range(self.row + 1, self.rows):
                self.grid[row] = self._blank_row()
        elif mode == 1:
            self._erase_line(1)
            for row in range(self.row):
                self.grid[row] = self._blank_row()
        else:
            self.grid = [self._blank_row() for _ in range(self.rows)]

    def _linefeed(self) -> None:
        if self.row == self.rows - 1:
            self.grid.pop(0)
            self.grid.append(self._blank_row())
        else:
            self.row += 1

    def _put(self, char: str) -> None:
        if char < " " or char == "\x7f":
            self._control(char)
            return
        width = wcwidth(char)
        if width < 0:
            return
        if width == 0:
            self._combine(char)
            return
        if width > self.cols:
            return
        if self.col + width > self.cols:
            self.col = 0
            self._linefeed()
        line = self.grid[self.row]
        line[self.col] = char
        if width == 2:
            line[self.col + 1] = None
        self.col += width

    def _combine(self, char: str) -> None:
        line = self.grid[self.row]
        col = min(self.col, self.cols) - 1
        while col >= 0 and line[col] is None:
            col -= 1
        if col >= 0 and line[col]:
            line[col] += char

    def _control(self, char: str) -> None:
        if char == "\r":
            self.col = 0
        elif char in ("\n", "\x0b", "\x0c"):
            self._linefeed()
        elif char == "\b":
            self.col = max(min(self.col, self.cols) - 1, 0)
        elif char == "\t":
            self.col = min((self.col // 8 + 1) * 8, self.cols - 1)

    def render_row(self, row: int) -> str:
        text = "".join(cell or " " for cell in self.grid[row] if cell is not None)
        return text.rstrip(" ")


class InMemoryTerm:
    """A terminal of fixed size whose screen lives in memory.

    Copies of the reference share the same screen, and all access is locked.
    """

    def __init__(self, rows: int, cols: int) -> None:
        if rows <= 0:
            raise ValueError("rows must be > 0")
        if cols <= 0:
            raise ValueError("cols must be > 0")
        self._lock = threading.Lock()
        self._screen = _Screen(rows, cols)

    def __repr__(self) -> str:
        return f"InMemoryTerm(rows={self._screen.rows}, cols={self._screen.cols})"

    def reset(self) -> None:
        """Clear the screen and move the cursor home, keeping the size."""
        with self._lock:
            self._screen = _Screen(self._screen.rows, self._screen.cols)

    def contents(self) -> str:
        """Return the visible text, one line per row, without trailing blanks."""
        with self._lock:
            lines = [self._screen.render_row(row) for row in range(self._screen.rows)]
        while lines and not lines[-1]:
            lines.pop()
        return "\n".join(lines)

    def cursor_position(self) -> tuple[int, int]:
        """Return the cursor as ``(row, column)``, both counted from zero."""
        with self._lock:
            return self._screen.row, self._screen.col

    def width(self) -> int:
        with self._lock:
            return self._screen.cols

    def _write(self, text: str) -> None:
        with self._lock:
            self._screen.feed(text)

    def move_cursor_up(self, n: int) -> None:
        if n:
            self._write(f"\x1b[{n}A")

    def move_cursor_down(self, n: int) -> None:
        if n:
            self._write(f"\x1b[{n}B")

    def move_cursor_right(self, n: int) -> None:
        if n:
            self._write(f"\x1b[{n}C")

    def move_cursor_left(self, n: int) -> None:
        if n:
            self._write(f"\x1b[{n}D")

    def write_line(self, s: str) -> None:
        """Write ``s`` and move to the start of the next line."""
        if len(s.splitlines()) > 1:
            raise ValueError("write_line does not accept embedded newlines")
        self._write(s + "\r\n")

    def write_str(self, s: str) -> None:
        self._write(s)

    def clear_line(self) -> None:
        self._write("\r\x1b[2K")

    def flush(self) -> None:
        """Nothing is buffered; present for terminal compatibility."""
        with self._lock:
            return None