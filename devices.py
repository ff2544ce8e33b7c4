"""
Intcode Controller Devices
==========================
Interpreters that sit between a controller and an ``IntcodeVM``,
turning drained output cells into domain messages and domain input
into cells.

  AsciiConsole  : line-oriented ASCII terminal (text in, text out)
  TileDisplay   : (x, y, tile) triple stream with a score register

Neither device renders anything; they only hold state for the
controller to inspect.
"""

from __future__ import annotations
from collections import deque
from typing import Callable, Iterable, Optional

from intcode import IntcodeVM, Status

ASCII_MAX = 0x7F
NEWLINE = 10

# ---------------------------------------------------------------------------
#  ASCII codec
# ---------------------------------------------------------------------------

def encode_line(text: str) -> list[int]:
    """Character codes of *text* followed by a newline.

    Raises ValueError (UnicodeEncodeError) on non-ASCII text.
    """
    return list(text.encode("ascii")) + [NEWLINE]


def decode_output(values: Iterable[int]) -> tuple[str, list[int]]:
    """Split cells into printable ASCII text and everything else."""
    chars = []
    other = []
    for v in values:
        if 0 <= v <= ASCII_MAX:
            chars.append(chr(v))
        else:
            other.append(v)
    return "".join(chars), other

# ---------------------------------------------------------------------------
#  AsciiConsole
# ---------------------------------------------------------------------------

class AsciiConsole:
    """ASCII terminal attached to a VM.

    Lines sent with ``send_line`` are queued as VM input.  Output from
    ``run()`` is collected into a TX buffer of characters; cells outside
    the ASCII range are kept in ``values`` instead.
    """

    def __init__(self, vm: IntcodeVM):
        self.vm = vm
        self.tx_buffer: deque[str] = deque()   # chars waiting to be read
        self.values: list[int] = []            # non-ASCII outputs

        # Called with each decoded character as it arrives
        self.on_tx: Optional[Callable[[str], None]] = None

    def send_line(self, text: str):
        self.vm.add_inputs(encode_line(text))

    def send_lines(self, lines: Iterable[str]):
        for line in lines:
            self.send_line(line)

    def run(self) -> Status:
        """Run the VM until it suspends and collect what it printed."""
        status = self.vm.run()
        text, other = decode_output(self.vm.drain_output())
        for ch in text:
            self.tx_buffer.append(ch)
            if self.on_tx:
                self.on_tx(ch)
        self.values.extend(other)
        return status

    @property
    def halted(self) -> bool:
        return self.vm.is_halted()

    @property
    def has_tx_data(self) -> bool:
        return len(self.tx_buffer) > 0

    def drain_text(self) -> str:
        """Return all pending text and clear the buffer."""
        out = "".join(self.tx_buffer)
        self.tx_buffer.clear()
        return out

# ---------------------------------------------------------------------------
#  TileDisplay
# ---------------------------------------------------------------------------
# Message format: three cells per update.
#   (x, y, tile)   : set tile id at (x, y)
#   (-1, 0, n)     : set score register to n

SCORE_X = -1
SCORE_Y = 0


class TileDisplay:
    """Sparse tile grid fed by a VM's output stream."""

    def __init__(self):
        self.tiles: dict[tuple[int, int], int] = {}
        self.score: int = 0
        self.updates: int = 0
        self._pending: list[int] = []

    def feed(self, values: Iterable[int]):
        """Apply complete triples; a trailing partial triple is kept."""
        self._pending.extend(values)
        n = len(self._pending) - len(self._pending) % 3
        for i in range(0, n, 3):
            x, y, v = self._pending[i:i + 3]
            if x == SCORE_X and y == SCORE_Y:
                self.score = v
            else:
                self.tiles[(x, y)] = v
            self.updates += 1
        del self._pending[:n]

    def count(self, tile_id: int) -> int:
        return sum(1 for v in self.tiles.values() if v == tile_id)

    def find(self, tile_id: int) -> Optional[tuple[int, int]]:
        """A position holding *tile_id*, or None."""
        for pos, v in self.tiles.items():
            if v == tile_id:
                return pos
        return None

    def bounds(self) -> Optional[tuple[int, int, int, int]]:
        """(min_x, min_y, max_x, max_y) over all tiles."""
        if not self.tiles:
            return None
        xs = [x for x, _ in self.tiles]
        ys = [y for _, y in self.tiles]
        return min(xs), min(ys), max(xs), max(ys)
