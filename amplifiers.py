"""
Amplifier Chain
===============
Drives a series of Intcode VMs running the same program, each seeded
with a phase setting, passing a signal from one to the next.  The last
amplifier's output feeds back into the first until the last one halts,
so a plain single pass is just the degenerate case.

Every amplifier runs in pause-per-output mode: the chain must hand each
signal on before the producing amplifier computes further.
"""

from __future__ import annotations
import itertools
import logging
from typing import Iterable, Sequence, Union

from intcode import IntcodeVM, Tape

LOGGER = logging.getLogger("intcode.amplifiers")


class AmplifierChain:

    def __init__(self, program: Union[str, Sequence[int]],
                 pause_on_output: bool = True):
        self.tape = Tape.load(program) if isinstance(program, str) else Tape(program)
        self.pause_on_output = pause_on_output
        self.amps: list[IntcodeVM] = []

    def run(self, phases: Sequence[int], signal: int = 0) -> int:
        """Run one chain to completion and return the final signal."""
        if not phases:
            raise ValueError("No phase settings given")

        self.amps = [IntcodeVM.from_tape(self.tape,
                                         pause_on_output=self.pause_on_output)
                     for _ in phases]
        for amp, phase in zip(self.amps, phases):
            amp.add_input(phase)

        rounds = 0
        last = self.amps[-1]
        while not last.is_halted():
            for amp in self.amps:
                if amp.is_halted():
                    continue
                amp.add_input(signal)
                amp.run()
                out = amp.drain_output()
                if out:
                    signal = out[-1]
            rounds += 1

        LOGGER.debug("phases %s -> %d after %d round(s)",
                     list(phases), signal, rounds)
        return signal

    def search(self, phase_values: Iterable[int]) -> tuple[int, tuple[int, ...]]:
        """Best final signal over every ordering of *phase_values*."""
        best = None
        for perm in itertools.permutations(phase_values):
            signal = self.run(perm)
            if best is None or signal > best[0]:
                best = (signal, perm)
        return best
