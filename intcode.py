"""
Intcode Virtual Machine
=======================
A step emulator for the Intcode instruction set: a flat tape of signed
integer cells, ten opcodes, three parameter addressing modes, and a
cooperative suspend/resume model driven by an external controller.

Every instruction is decoded from the tape at IP.  The run loop mirrors
a simple fetch/decode/execute CPU: read the opcode cell, split it into
operation and mode digits, resolve operands, execute, advance IP.

The VM never blocks.  It suspends by changing status and returning from
``run()``:
  - WAITING_FOR_INPUT  : a Read found the input queue empty (IP unchanged)
  - PAUSED             : a Write completed (pause-per-output mode only)
  - HALTED             : opcode 99 (terminal)

Usage:
  vm = IntcodeVM("3,0,4,0,99")
  vm.add_input(42)
  vm.run()
  vm.drain_output()   # [42]
"""

from __future__ import annotations

import enum
import logging
import os
import re
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, Union

LOGGER = logging.getLogger("intcode.vm")

# ---------------------------------------------------------------------------
#  Constants
# ---------------------------------------------------------------------------

TRACE_ENV = "INTCODE_TRACE"

_TOKEN_RE = re.compile(r"-?[0-9]+")

# ---------------------------------------------------------------------------
#  Errors
# ---------------------------------------------------------------------------

class IntcodeError(Exception):
    """Base for all VM-generated failures."""
    pass

class ParseError(IntcodeError):
    def __init__(self, index: int, token: str):
        self.index = index
        self.token = token
        super().__init__(f"Malformed program token #{index}: {token!r}")

class DecodeError(IntcodeError):
    def __init__(self, value: int, message: str = "", ip: Optional[int] = None):
        self.value = value
        self.ip = ip
        where = f" at ip={ip}" if ip is not None else ""
        super().__init__((message or f"Cannot decode instruction {value}") + where)

class AddressError(IntcodeError):
    def __init__(self, addr: int, ip: Optional[int] = None):
        self.addr = addr
        self.ip = ip
        where = f" (ip={ip})" if ip is not None else ""
        super().__init__(f"Invalid address {addr}{where}")

class WriteModeError(IntcodeError):
    def __init__(self, ip: int, param: int):
        self.ip = ip
        self.param = param
        super().__init__(f"Destination parameter {param} at ip={ip} "
                         f"uses immediate mode")

class UnfinishedProgramError(IntcodeError):
    pass

class AlreadyHalted(IntcodeError):
    pass

class InputUnderflow(IntcodeError):
    pass

# ---------------------------------------------------------------------------
#  Instruction set
# ---------------------------------------------------------------------------

class ParamMode(enum.IntEnum):
    POSITION  = 0
    IMMEDIATE = 1
    RELATIVE  = 2


class Opcode(enum.IntEnum):
    ADD           = 1
    MUL           = 2
    READ          = 3
    WRITE         = 4
    JUMP_IF_TRUE  = 5
    JUMP_IF_FALSE = 6
    LESS_THAN     = 7
    EQUALS        = 8
    ADJUST_RB     = 9
    EXIT          = 99

    @property
    def param_count(self) -> int:
        return PARAM_COUNTS[self]


PARAM_COUNTS = {
    Opcode.ADD:           3,
    Opcode.MUL:           3,
    Opcode.READ:          1,
    Opcode.WRITE:         1,
    Opcode.JUMP_IF_TRUE:  2,
    Opcode.JUMP_IF_FALSE: 2,
    Opcode.LESS_THAN:     3,
    Opcode.EQUALS:        3,
    Opcode.ADJUST_RB:     1,
    Opcode.EXIT:          0,
}

# Short names used by the tracer and the disassembler
MNEMONICS = {
    Opcode.ADD:           "add",
    Opcode.MUL:           "mul",
    Opcode.READ:          "in",
    Opcode.WRITE:         "out",
    Opcode.JUMP_IF_TRUE:  "jnz",
    Opcode.JUMP_IF_FALSE: "jz",
    Opcode.LESS_THAN:     "lt",
    Opcode.EQUALS:        "eq",
    Opcode.ADJUST_RB:     "arb",
    Opcode.EXIT:          "halt",
}


class Status(enum.Enum):
    RUNNING           = "running"
    WAITING_FOR_INPUT = "waiting_for_input"
    PAUSED            = "paused"
    HALTED            = "halted"


@dataclass(frozen=True)
class Instruction:
    opcode: Opcode
    modes: tuple[ParamMode, ...]

    @property
    def size(self) -> int:
        """Cells occupied: opcode plus parameters."""
        return 1 + len(self.modes)


def decode(value: int) -> Instruction:
    """Split an opcode cell into operation and per-parameter modes.

    The low two decimal digits select the operation; the remaining
    digits, least significant first, give one mode per parameter.
    Missing digits default to POSITION; digits past the operation's
    parameter count are ignored.
    """
    if value < 0:
        raise DecodeError(value, f"Negative opcode cell {value}")
    try:
        opcode = Opcode(value % 100)
    except ValueError:
        raise DecodeError(value, f"Unknown opcode {value % 100} in {value}") from None

    digits = value // 100
    modes = []
    for _ in range(opcode.param_count):
        digit = digits % 10
        if digit > 2:
            raise DecodeError(value, f"Unknown parameter mode {digit} in {value}")
        modes.append(ParamMode(digit))
        digits //= 10
    return Instruction(opcode, tuple(modes))

# ---------------------------------------------------------------------------
#  Program store
# ---------------------------------------------------------------------------

def parse_program(text: str) -> list[int]:
    """Parse comma-separated decimal cells, e.g. ``"1,0,0,0,99"``."""
    cells = []
    for i, raw in enumerate(text.split(",")):
        tok = raw.strip()
        if not _TOKEN_RE.fullmatch(tok):
            raise ParseError(i, raw)
        cells.append(int(tok))
    return cells


class Tape:
    """Auto-extending memory of integer cells with a reset backup.

    Any access at or beyond the current length zero-fills up to that
    address first; the live tape only shrinks through ``reset()``.
    """

    def __init__(self, cells: Iterable[int] = ()):
        self._backup: tuple[int, ...] = tuple(cells)
        self.cells: list[int] = list(self._backup)

    @classmethod
    def load(cls, text: str) -> "Tape":
        return cls(parse_program(text))

    @classmethod
    def from_cells(cls, cells: Iterable[int]) -> "Tape":
        return cls(cells)

    def __len__(self) -> int:
        return len(self.cells)

    def _extend(self, addr: int):
        if addr < 0:
            raise AddressError(addr)
        if addr >= len(self.cells):
            self.cells.extend([0] * (addr + 1 - len(self.cells)))

    def read(self, addr: int) -> int:
        self._extend(addr)
        return self.cells[addr]

    def write(self, addr: int, value: int):
        self._extend(addr)
        self.cells[addr] = value

    def reset(self):
        """Restore the live cells from the backup taken at load time."""
        self.cells = list(self._backup)

    def snapshot(self) -> list[int]:
        return list(self.cells)

    @property
    def backup(self) -> tuple[int, ...]:
        return self._backup

# ---------------------------------------------------------------------------
#  VM
# ---------------------------------------------------------------------------

def _trace_default() -> bool:
    return os.environ.get(TRACE_ENV, "") not in ("", "0")


class IntcodeVM:
    """Intcode engine: tape, IP, relative base, status and I/O queues.

    *pause_on_output* selects the pause-per-output variant: the VM
    returns from ``run()`` right after every Write so the controller can
    react to each value.  Otherwise it runs until a Read blocks or the
    program halts.
    """

    def __init__(self, program: Union[str, Sequence[int], Tape],
                 pause_on_output: bool = False,
                 trace: Optional[bool] = None):
        if isinstance(program, Tape):
            self.tape = program
        elif isinstance(program, str):
            self.tape = Tape.load(program)
        else:
            self.tape = Tape.from_cells(program)

        self.pause_on_output = pause_on_output
        self.trace = _trace_default() if trace is None else trace

        self.ip: int = 0
        self.relative_base: int = 0
        self.status: Status = Status.RUNNING
        self.inputs: deque[int] = deque()
        self.outputs: list[int] = []
        self.steps: int = 0

    @classmethod
    def from_tape(cls, tape: Tape, **kwargs) -> "IntcodeVM":
        """Build a VM over a fresh copy of *tape*'s backup cells."""
        return cls(Tape.from_cells(tape.backup), **kwargs)

    # -- Lifecycle --

    def reset(self):
        """Restore the tape from its backup and clear all runtime state."""
        self.tape.reset()
        self.ip = 0
        self.relative_base = 0
        self.status = Status.RUNNING
        self.inputs.clear()
        self.outputs.clear()
        self.steps = 0

    def is_halted(self) -> bool:
        return self.status is Status.HALTED

    def is_waiting(self) -> bool:
        return self.status is Status.WAITING_FOR_INPUT

    # -- Memory --

    def set_mem(self, addr: int, value: int):
        self.tape.write(addr, value)

    def get_mem(self, addr: int) -> int:
        return self.tape.read(addr)

    @property
    def memory(self) -> list[int]:
        return self.tape.snapshot()

    # -- I/O channels --

    def add_input(self, value: int):
        if self.status is Status.HALTED:
            LOGGER.debug("dropping input %d: machine halted", value)
            return
        self.inputs.append(value)

    def add_inputs(self, values: Iterable[int]):
        for v in values:
            self.add_input(v)

    def drain_output(self) -> list[int]:
        """Return everything written since the last drain, and clear it."""
        out = self.outputs
        self.outputs = []
        return out

    # -- Operand resolution --

    def _address(self, offset: int, mode: ParamMode) -> int:
        raw = self.tape.read(self.ip + offset)
        if mode is ParamMode.POSITION:
            addr = raw
        elif mode is ParamMode.RELATIVE:
            addr = self.relative_base + raw
        else:
            raise WriteModeError(self.ip, offset)
        if addr < 0:
            raise AddressError(addr, self.ip)
        return addr

    def _load(self, offset: int, mode: ParamMode) -> int:
        if mode is ParamMode.IMMEDIATE:
            return self.tape.read(self.ip + offset)
        return self.tape.read(self._address(offset, mode))

    def _store(self, offset: int, mode: ParamMode, value: int):
        self.tape.write(self._address(offset, mode), value)

    # =====================================================================
    #  STEP - one fetch/decode/execute cycle
    # =====================================================================

    def step(self) -> Status:
        """Execute one instruction and return the resulting status."""
        if self.status is Status.HALTED:
            raise AlreadyHalted(f"Program halted at ip={self.ip}")
        self.status = Status.RUNNING

        try:
            ins = decode(self.tape.read(self.ip))
        except DecodeError as e:
            raise DecodeError(e.value, str(e), self.ip) from None
        except AddressError:
            raise AddressError(self.ip, self.ip) from None
        op = ins.opcode
        m = ins.modes

        if self.trace:
            self._trace(ins)

        if op is Opcode.ADD:
            self._store(3, m[2], self._load(1, m[0]) + self._load(2, m[1]))
        elif op is Opcode.MUL:
            self._store(3, m[2], self._load(1, m[0]) * self._load(2, m[1]))
        elif op is Opcode.READ:
            if not self.inputs:
                # IP stays on the Read so it is retried intact on resume
                self.status = Status.WAITING_FOR_INPUT
                return self.status
            self._store(1, m[0], self.inputs.popleft())
        elif op is Opcode.WRITE:
            self.outputs.append(self._load(1, m[0]))
            if self.pause_on_output:
                self.status = Status.PAUSED
        elif op is Opcode.JUMP_IF_TRUE:
            if self._load(1, m[0]) != 0:
                self.ip = self._load(2, m[1])
                self.steps += 1
                return self.status
        elif op is Opcode.JUMP_IF_FALSE:
            if self._load(1, m[0]) == 0:
                self.ip = self._load(2, m[1])
                self.steps += 1
                return self.status
        elif op is Opcode.LESS_THAN:
            a, b = self._load(1, m[0]), self._load(2, m[1])
            self._store(3, m[2], 1 if a < b else 0)
        elif op is Opcode.EQUALS:
            a, b = self._load(1, m[0]), self._load(2, m[1])
            self._store(3, m[2], 1 if a == b else 0)
        elif op is Opcode.ADJUST_RB:
            self.relative_base += self._load(1, m[0])
        elif op is Opcode.EXIT:
            self.status = Status.HALTED
            self.steps += 1
            return self.status

        self.ip += ins.size
        self.steps += 1
        return self.status

    # =====================================================================
    #  Run loop
    # =====================================================================

    def run(self) -> Status:
        """Execute until the machine suspends or halts.

        Returns WAITING_FOR_INPUT, PAUSED or HALTED.
        """
        if self.status is Status.HALTED:
            raise AlreadyHalted(f"Program halted at ip={self.ip}")
        if self.status is Status.WAITING_FOR_INPUT and not self.inputs:
            raise InputUnderflow(
                f"Resumed at ip={self.ip} without supplying input")

        self.status = Status.RUNNING
        while self.status is Status.RUNNING:
            self.step()

        if self.inputs:
            LOGGER.debug("input not consumed completely, %d left: %s",
                         len(self.inputs), list(self.inputs))
        LOGGER.debug("run -> %s (ip=%d, outputs=%d)",
                     self.status.value, self.ip, len(self.outputs))
        return self.status

    def exec(self, on_suspend: Optional[Callable[["IntcodeVM"], None]] = None
             ) -> list[int]:
        """Run to completion and return the drained output.

        Between suspensions *on_suspend(vm)* gets a chance to drain
        output and feed input.  A machine left blocked on an empty input
        queue can never halt, so that is reported as an error.
        """
        while self.status is not Status.HALTED:
            if self.status is Status.WAITING_FOR_INPUT and not self.inputs:
                raise UnfinishedProgramError(
                    f"Program blocked on input at ip={self.ip}; "
                    f"status={self.status.value}")
            if self.run() is Status.HALTED:
                break
            if on_suspend is not None:
                on_suspend(self)
        return self.drain_output()

    # -----------------------------------------------------------------
    #  Diagnostics
    # -----------------------------------------------------------------

    def _trace(self, ins: Instruction):
        parts = []
        for i, mode in enumerate(ins.modes, 1):
            raw = self.tape.read(self.ip + i)
            if mode is ParamMode.IMMEDIATE:
                parts.append(f"#{raw}")
            elif mode is ParamMode.POSITION:
                parts.append(f"[{raw}]")
            else:
                parts.append(f"[rb{raw:+d}]")
        LOGGER.debug("[%4d] %-4s %s", self.ip, MNEMONICS[ins.opcode],
                     ", ".join(parts))

    def dump_state(self) -> str:
        lines = [
            f"  IP={self.ip}  RB={self.relative_base}  "
            f"status={self.status.value}  steps={self.steps}",
            f"  tape={len(self.tape)} cells  "
            f"pause_on_output={self.pause_on_output}",
            f"  inputs={list(self.inputs)}",
            f"  outputs={self.outputs}",
        ]
        return "\n".join(lines)
