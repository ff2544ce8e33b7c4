#!/usr/bin/env python3
"""
Assembler / disassembler tests.
Run with:  python -m pytest test_asm.py
"""
import unittest

from asm import assemble, disassemble, to_text, AsmError
from intcode import IntcodeVM


class TestAssemble(unittest.TestCase):

    def test_position_operands(self):
        self.assertEqual(assemble("add [0], [0], [0]\nhalt"), [1, 0, 0, 0, 99])

    def test_immediate_operands(self):
        self.assertEqual(assemble("out #42\nhalt"), [104, 42, 99])
        self.assertEqual(assemble("out 42\nhalt"), [104, 42, 99])
        self.assertEqual(assemble("mul #3, [4], [5]"), [102, 3, 4, 5])

    def test_relative_operands(self):
        self.assertEqual(assemble("arb #1\nout [rb-1]\nhalt"),
                         [109, 1, 204, -1, 99])
        self.assertEqual(assemble("in [rb]"), [203, 0])
        self.assertEqual(assemble("lt #1, #2, [rb+3]"), [21107, 1, 2, 3])

    def test_hex_literal(self):
        self.assertEqual(assemble("out #0x10"), [104, 16])

    def test_labels(self):
        src = """
            in   [value]
            out  [value]
            halt
        value:
            .data 0
        """
        cells = assemble(src)
        self.assertEqual(cells, [3, 5, 4, 5, 99, 0])
        vm = IntcodeVM(cells)
        vm.add_input(9)
        self.assertEqual(vm.exec(), [9])

    def test_forward_jump(self):
        src = """
            jz   #0, end
            out  #1
        end:
            halt
        """
        cells = assemble(src)
        self.assertEqual(cells, [1106, 0, 5, 104, 1, 99])
        self.assertEqual(IntcodeVM(cells).exec(), [])

    def test_data_with_labels(self):
        src = """
        start:
            halt
        table:
            .data 7, -3, start, table
        """
        self.assertEqual(assemble(src), [99, 7, -3, 0, 1])

    def test_ascii(self):
        self.assertEqual(assemble('.ascii "Hi\\n"'), [72, 105, 10])
        self.assertEqual(assemble('.ascii "a;b"'), [97, 59, 98])

    def test_comments_and_blank_lines(self):
        src = """
            ; leading comment

            out #1   ; trailing comment
            halt
        """
        self.assertEqual(assemble(src), [104, 1, 99])

    def test_mnemonics_are_case_insensitive(self):
        self.assertEqual(assemble("OUT #1\nHALT"), [104, 1, 99])


class TestAsmErrors(unittest.TestCase):

    def test_unknown_mnemonic(self):
        with self.assertRaises(AsmError) as cm:
            assemble("halt\nfly #1")
        self.assertEqual(cm.exception.line, 2)

    def test_wrong_operand_count(self):
        with self.assertRaises(AsmError):
            assemble("add [1], [2]")
        with self.assertRaises(AsmError):
            assemble("halt #1")

    def test_immediate_destination(self):
        with self.assertRaises(AsmError):
            assemble("add #1, #2, #3")
        with self.assertRaises(AsmError):
            assemble("in #0")

    def test_undefined_label(self):
        with self.assertRaises(AsmError):
            assemble("out [nowhere]")

    def test_duplicate_label(self):
        with self.assertRaises(AsmError):
            assemble("a:\nhalt\na:\nhalt")

    def test_bad_literal(self):
        with self.assertRaises(AsmError):
            assemble("out #1x")

    def test_unterminated_string(self):
        with self.assertRaises(AsmError):
            assemble('.ascii "abc')


class TestDisassemble(unittest.TestCase):

    def test_listing(self):
        self.assertEqual(disassemble([1, 0, 0, 0, 99]),
                         ["     0  add  [0], [0], [0]",
                          "     4  halt"])

    def test_modes(self):
        self.assertEqual(disassemble([109, 1, 204, -1, 99]),
                         ["     0  arb  #1",
                          "     2  out  [rb-1]",
                          "     4  halt"])

    def test_undecodable_cells(self):
        self.assertEqual(disassemble([98, 99]),
                         ["     0  .data 98", "     1  halt"])

    def test_truncated_instruction(self):
        self.assertEqual(disassemble([1, 0]),
                         ["     0  .data 1", "     1  .data 0"])

    def test_start_offset(self):
        self.assertEqual(disassemble([0, 0, 99], start=2), ["     2  halt"])

    def test_reassembles(self):
        cells = [1002, 4, 3, 4, 33, 109, 5, 21101, 1, 2, 0, 99]
        lines = disassemble(cells[:5]) + disassemble(cells, start=5)
        self.assertEqual(len(lines), 5)
        text = "\n".join(line.split(None, 1)[1] for line in lines
                         if not line.split(None, 1)[1].startswith(".data"))
        self.assertEqual(assemble(text), [1002, 4, 3, 4, 109, 5, 21101, 1, 2, 0, 99])


class TestToText(unittest.TestCase):

    def test_join(self):
        self.assertEqual(to_text([1, -2, 3]), "1,-2,3")

    def test_runs(self):
        text = to_text(assemble("out #7\nhalt"))
        self.assertEqual(text, "104,7,99")
        self.assertEqual(IntcodeVM(text).exec(), [7])
