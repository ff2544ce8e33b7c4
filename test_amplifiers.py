#!/usr/bin/env python3
"""
Amplifier chain tests.
Run with:  python -m pytest test_amplifiers.py
"""
import unittest

from amplifiers import AmplifierChain

SERIES = "3,15,3,16,1002,16,10,16,1,16,15,15,4,15,99,0,0"

SERIES_2 = ("3,23,3,24,1002,24,10,24,1002,23,-1,23,"
            "101,5,23,23,1,24,23,23,4,23,99,0,0")

FEEDBACK = ("3,26,1001,26,-4,26,3,27,1002,27,2,27,1,27,26,"
            "27,4,27,1001,28,-1,28,1005,28,6,99,0,0,5")


class TestSinglePass(unittest.TestCase):

    def test_fixed_phases(self):
        chain = AmplifierChain(SERIES)
        self.assertEqual(chain.run([4, 3, 2, 1, 0]), 43210)
        self.assertTrue(all(amp.is_halted() for amp in chain.amps))

    def test_search(self):
        self.assertEqual(AmplifierChain(SERIES).search(range(5)),
                         (43210, (4, 3, 2, 1, 0)))
        self.assertEqual(AmplifierChain(SERIES_2).search(range(5)),
                         (54321, (0, 1, 2, 3, 4)))

    def test_chain_is_reusable(self):
        chain = AmplifierChain(SERIES)
        first = chain.run([0, 1, 2, 3, 4])
        self.assertEqual(chain.run([0, 1, 2, 3, 4]), first)

    def test_without_pausing(self):
        chain = AmplifierChain(SERIES, pause_on_output=False)
        self.assertEqual(chain.run([4, 3, 2, 1, 0]), 43210)

    def test_accepts_cells(self):
        cells = [int(v) for v in SERIES.split(",")]
        self.assertEqual(AmplifierChain(cells).run([4, 3, 2, 1, 0]), 43210)


class TestFeedback(unittest.TestCase):

    def test_fixed_phases(self):
        self.assertEqual(AmplifierChain(FEEDBACK).run([9, 8, 7, 6, 5]),
                         139629729)

    def test_search(self):
        signal, phases = AmplifierChain(FEEDBACK).search(range(5, 10))
        self.assertEqual(signal, 139629729)
        self.assertEqual(phases, (9, 8, 7, 6, 5))


class TestErrors(unittest.TestCase):

    def test_empty_phases(self):
        with self.assertRaises(ValueError):
            AmplifierChain(SERIES).run([])
