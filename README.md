# tickbar

Building blocks for progress output in the terminal:

- `tickbar.format`: human-readable formatting of durations, byte sizes
  and counts.
- `tickbar.in_memory`: an in-memory terminal that interprets cursor
  movement, line clearing and wrapping, for checking exactly what would
  appear on screen.
- `tickbar.draw_target`: draw targets that paint to stdout, stderr, any
  terminal-like object, or nowhere, with rate limiting for real terminals.
- `tickbar.multi`: `MultiProgress`, which keeps several blocks of lines in
  order on one target, prints log lines above them, and supports top or
  bottom alignment when lines go away.

## Installation

```
pip install tickbar
```

## Formatting values

```python
from datetime import timedelta

from tickbar.format import (
    BinaryBytes, DecimalBytes, FormattedDuration, HumanBytes,
    HumanCount, HumanDuration, HumanFloatCount,
)

str(HumanBytes(3 * 1024 * 1024))            # '3.00 MiB'
str(BinaryBytes(3 * 1024 * 1024))           # '3.00 MiB'
str(DecimalBytes(3_000_000))                # '3.00 MB'
str(HumanDuration(timedelta(seconds=8)))    # '8 seconds'
f"{HumanDuration(timedelta(minutes=2)):#}"  # '2m'
str(FormattedDuration(timedelta(hours=26, seconds=5)))  # '1d 02:00:05'
str(HumanCount(33857009))                   # '33,857,009'
str(HumanFloatCount(33857009.123456))       # '33,857,009.1235'
```

Durations may be given as a `timedelta` or as a number of seconds;
negative durations raise `ValueError`.

`HumanDuration` rounds rather than truncates, and avoids saying "1 unit"
for anything but seconds: 89 seconds stays "89 seconds" and 90 seconds
becomes "2 minutes".

## Rendering to an in-memory terminal

```python
from tickbar.in_memory import InMemoryTerm

term = InMemoryTerm(10, 80)
term.write_line("This is a test line")
term.write_line("And another line!")
term.move_cursor_up(1)
term.write_str("TEST")
print(term.contents())
# This is a test line
# TESTanother line!
term.cursor_position()  # (1, 4)
```

Rows and columns must be positive. `write_line` refuses text with embedded
newlines, and `reset()` clears the screen while keeping its size.

## Draw targets

```python
from tickbar.draw_target import ProgressDrawTarget, Terminal
from tickbar.in_memory import InMemoryTerm

ProgressDrawTarget.stderr()              # stderr, at most 20 draws a second
ProgressDrawTarget.stdout_with_hz(5)     # stdout, at most 5 draws a second
ProgressDrawTarget.term(Terminal(), 10)  # a buffered terminal over stderr
ProgressDrawTarget.hidden()              # draws nothing
ProgressDrawTarget.term_like(InMemoryTerm(24, 80))  # any terminal-like object
```

Terminal targets count as hidden when their stream is not an interactive
terminal, so piping output to a file does not fill it with escape codes.
Refresh rates must be between 1 and 255. `measure_text_width` gives the
display width of a string with ANSI escape codes left out.

## Several blocks of lines at once

```python
import time

from tickbar.draw_target import MultiProgressAlignment, ProgressDrawTarget
from tickbar.in_memory import InMemoryTerm
from tickbar.multi import InsertLocation, MultiProgress

term = InMemoryTerm(24, 80)
multi = MultiProgress.with_draw_target(ProgressDrawTarget.term_like(term))
multi.set_alignment(MultiProgressAlignment.BOTTOM)


class Task:
    pass


task = Task()
idx = multi.state.insert(InsertLocation.end())
multi.state.attach(idx, task)  # the member is dropped once `task` is gone

target = ProgressDrawTarget.new_remote(multi.state, idx)
drawable = target.drawable(True, time.monotonic_ns())
with drawable.state() as draw_state:
    draw_state.lines.append("downloading 40%")
drawable.draw()

multi.println("starting!")  # printed above the members
multi.suspend(lambda: print("external output"))
multi.clear()
```

`InsertLocation` also offers `index`, `index_from_back`, `after` and
`before` for placing a new member relative to the others, and
`MultiState.remove_idx` takes a member out again.

## What is not included

The package has no progress bar object that tracks a position, a length
and a message and renders itself from a template, no iterator or file
wrappers that advance such a bar, and no command-line program. Lines are
produced by the caller and handed to a draw target or a `MultiProgress`
as shown above.

## Running the tests

```
pip install -e .[test]
pytest
```