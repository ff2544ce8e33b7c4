"""
Intcode Assembler
=================
Translates assembly text into Intcode cells, and cells back into a
readable listing.

Supports:
  - Labels (on their own line, terminated with ':')
  - All ten opcodes: add mul in out jnz jz lt eq arb halt
  - Operands:  #n / n       immediate (number or label)
               [n]          position  (number or label)
               [rb+n]       relative  ([rb], [rb+n], [rb-n])
  - Comments (';' to end of line)
  - .data and .ascii directives

Usage:
  from asm import assemble, to_text
  cells = assemble(source_text)
  program = to_text(cells)
"""

from __future__ import annotations
import re

from intcode import (
    DecodeError, MNEMONICS, Opcode, ParamMode, decode,
)

# ---------------------------------------------------------------------------
#  Mnemonic table
# ---------------------------------------------------------------------------

OPCODE_MAP = {name: op for op, name in MNEMONICS.items()}

# 1-based parameter index written by each opcode
DEST_PARAM = {
    Opcode.ADD:       3,
    Opcode.MUL:       3,
    Opcode.READ:      1,
    Opcode.LESS_THAN: 3,
    Opcode.EQUALS:    3,
}

_LABEL_RE = re.compile(r"[A-Za-z_.][A-Za-z0-9_.]*")

MODE_WEIGHTS = (100, 1000, 10000)

# ---------------------------------------------------------------------------
#  Parser helpers
# ---------------------------------------------------------------------------

class AsmError(Exception):
    def __init__(self, line: int, msg: str):
        self.line = line
        super().__init__(f"Line {line}: {msg}")


def _parse_imm(tok: str) -> int:
    """Parse an immediate value (decimal or 0x hex)."""
    tok = tok.strip()
    if tok.startswith("0x") or tok.startswith("0X"):
        return int(tok, 16)
    return int(tok, 10)

def _split_ops(rest: str) -> list[str]:
    """Split operand string by comma, trimming whitespace."""
    return [s.strip() for s in rest.split(",") if s.strip()]

def _split_mnemonic(text: str) -> tuple[str, str]:
    """Split 'MNEM operands' → (mnem, operands_str)."""
    parts = text.split(None, 1)
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


def _parse_string(lineno: int, text: str) -> list[int]:
    """Parse a double-quoted string literal into character codes."""
    text = text.strip()
    if not (len(text) >= 2 and text.startswith('"') and text.endswith('"')):
        raise AsmError(lineno, f"Expected quoted string, got: {text}")
    s = text[1:-1]
    result = []
    i = 0
    while i < len(s):
        if s[i] == '\\' and i + 1 < len(s):
            c = s[i + 1]
            if c == 'n':    result.append(10)
            elif c == 't':  result.append(9)
            elif c == '\\': result.append(92)
            elif c == '"':  result.append(34)
            else:           result.append(ord(c))
            i += 2
        else:
            result.append(ord(s[i]))
            i += 1
    return result


def _resolve(lineno: int, tok: str, labels: dict[str, int]) -> int:
    """Resolve a token that is either a literal or a label reference."""
    tok = tok.strip()
    if tok in labels:
        return labels[tok]
    try:
        return _parse_imm(tok)
    except ValueError:
        pass
    if _LABEL_RE.fullmatch(tok):
        raise AsmError(lineno, f"Undefined label: {tok}")
    raise AsmError(lineno, f"Bad operand value: {tok!r}")


def _parse_operand(lineno: int, tok: str,
                   labels: dict[str, int]) -> tuple[ParamMode, int]:
    if tok.startswith("[") and tok.endswith("]"):
        inner = tok[1:-1].replace(" ", "")
        if inner[:2].lower() == "rb" and (len(inner) == 2 or inner[2] in "+-"):
            if len(inner) == 2:
                return ParamMode.RELATIVE, 0
            offset = _resolve(lineno, inner[3:], labels)
            return ParamMode.RELATIVE, -offset if inner[2] == "-" else offset
        return ParamMode.POSITION, _resolve(lineno, inner, labels)
    if tok.startswith("#"):
        return ParamMode.IMMEDIATE, _resolve(lineno, tok[1:], labels)
    return ParamMode.IMMEDIATE, _resolve(lineno, tok, labels)

# ---------------------------------------------------------------------------
#  Assembler
# ---------------------------------------------------------------------------

def _clean(source: str) -> list[tuple[int, str]]:
    cleaned: list[tuple[int, str]] = []
    for i, raw in enumerate(source.split("\n"), 1):
        # Strip comments, but respect quoted strings
        result = []
        in_string = False
        for ch in raw:
            if ch == '"':
                in_string = not in_string
            if ch == ';' and not in_string:
                break
            result.append(ch)
        stripped = ''.join(result).strip()
        if stripped:
            cleaned.append((i, stripped))
    return cleaned


def assemble(source: str) -> list[int]:
    """
    Two-pass assembler.
    Pass 1: collect labels, compute instruction sizes.
    Pass 2: emit cells with resolved addresses.
    """
    cleaned = _clean(source)

    # ---- Pass 1: label collection and size computation ----
    labels: dict[str, int] = {}
    sized: list[tuple[int, str, int]] = []  # (line_no, text, size_cells)
    pc = 0

    for lineno, text in cleaned:
        if text.endswith(":"):
            lbl = text[:-1].strip()
            if not _LABEL_RE.fullmatch(lbl):
                raise AsmError(lineno, f"Invalid label: {lbl!r}")
            if lbl in labels:
                raise AsmError(lineno, f"Duplicate label: {lbl}")
            labels[lbl] = pc
            continue

        lower = text.lower()
        if lower.startswith(".data"):
            sz = len(_split_ops(text[5:]))
        elif lower.startswith(".ascii"):
            sz = len(_parse_string(lineno, text[6:]))
        else:
            sz = _instruction_size(lineno, text)
        sized.append((lineno, text, sz))
        pc += sz

    # ---- Pass 2: emit cells ----
    code: list[int] = []
    for lineno, text, sz in sized:
        lower = text.lower()
        if lower.startswith(".data"):
            emitted = [_resolve(lineno, tok, labels) for tok in _split_ops(text[5:])]
        elif lower.startswith(".ascii"):
            emitted = _parse_string(lineno, text[6:])
        else:
            emitted = _emit_instruction(lineno, text, labels)
        assert len(emitted) == sz, f"Size mismatch line {lineno}: expected {sz}, got {len(emitted)}"
        code.extend(emitted)

    return code


def _instruction_size(lineno: int, text: str) -> int:
    """Compute the cell size of one assembly instruction."""
    mnem, rest = _split_mnemonic(text)
    op = OPCODE_MAP.get(mnem.lower())
    if op is None:
        raise AsmError(lineno, f"Unknown mnemonic: {mnem}")
    ops = _split_ops(rest)
    if len(ops) != op.param_count:
        raise AsmError(lineno, f"{mnem} takes {op.param_count} operand(s), "
                               f"got {len(ops)}")
    return 1 + op.param_count


def _emit_instruction(lineno: int, text: str,
                      labels: dict[str, int]) -> list[int]:
    """Emit cells for one instruction."""
    mnem, rest = _split_mnemonic(text)
    op = OPCODE_MAP[mnem.lower()]
    head = int(op)
    params = []
    for i, tok in enumerate(_split_ops(rest)):
        mode, value = _parse_operand(lineno, tok, labels)
        if mode is ParamMode.IMMEDIATE and DEST_PARAM.get(op) == i + 1:
            raise AsmError(lineno, f"{mnem} destination cannot be immediate")
        head += MODE_WEIGHTS[i] * int(mode)
        params.append(value)
    return [head] + params

# ---------------------------------------------------------------------------
#  Text form and disassembly
# ---------------------------------------------------------------------------

def to_text(cells: list[int]) -> str:
    """Render cells in the comma-separated program format."""
    return ",".join(str(c) for c in cells)


def _format_operand(mode: ParamMode, value: int) -> str:
    if mode is ParamMode.IMMEDIATE:
        return f"#{value}"
    if mode is ParamMode.POSITION:
        return f"[{value}]"
    if value == 0:
        return "[rb]"
    return f"[rb{value:+d}]"


def disassemble(cells: list[int], start: int = 0) -> list[str]:
    """Linear-sweep listing.  Cells that do not decode become .data."""
    lines = []
    pc = start
    while pc < len(cells):
        try:
            ins = decode(cells[pc])
        except DecodeError:
            ins = None
        if ins is None or pc + ins.size > len(cells):
            lines.append(f"{pc:6d}  .data {cells[pc]}")
            pc += 1
            continue
        ops = [_format_operand(mode, cells[pc + i])
               for i, mode in enumerate(ins.modes, 1)]
        text = f"{MNEMONICS[ins.opcode]:<4s} {', '.join(ops)}".rstrip()
        lines.append(f"{pc:6d}  {text}")
        pc += ins.size
    return lines
