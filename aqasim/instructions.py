"""
AQA Assembly Instruction Table.

Each instruction is declared once as a grammar string plus an action:

    _ins('ADD', 'Add', 'ADD <register>, <register>, <operand>', _alu(operator.add))

Grammar placeholders:
  <register>  — R followed by digits          e.g. R3     captures '3'
  <memory>    — bare digits (an address)      e.g. 12     captures '12'
  <operand>   — R+digits or #+digits          e.g. R1, #5 captures ('R', '1')
  <label>     — a word (letters/digits/_)     e.g. loop   captures 'loop'

Every other character is literal, except whitespace: each literal whitespace
character in a grammar matches zero or one whitespace character, so
"ADD R0,R1,#2" and "ADD R0, R1, #2" both match. Matchers are applied to the
whole cleaned line.

Table order is priority: the first grammar that accepts a line wins. The
conditional branches (BEQ/BNE/BGT/BLT) come before the bare B, and the label
declaration form comes last.

Actions take (memory, registers, labels, fields) and return a ControlSignal:
  CONTINUE — fall through to the next line
  JUMP     — continue at ControlSignal.target (a program line index)
  HALT     — stop after this step
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Mapping, Optional, Tuple
import operator
import re

from .errors import LabelNotFoundError
from .memory import Memory
from .regs import Flag, Registers

__all__ = [
    'SignalKind', 'ControlSignal', 'InstructionSpec', 'INSTRUCTIONS', 'LABEL',
    'compile_pattern', 'match_instruction', 'get_spec',
]


# ──────────────────────────────────────────────
# Control signals
# ──────────────────────────────────────────────

class SignalKind(Enum):
    CONTINUE = 'CONTINUE'
    JUMP = 'JUMP'
    HALT = 'HALT'


@dataclass(frozen=True)
class ControlSignal:
    """Result of executing one instruction."""
    kind: SignalKind
    target: Optional[int] = None

    @classmethod
    def proceed(cls) -> 'ControlSignal':
        return cls(SignalKind.CONTINUE)

    @classmethod
    def jump(cls, target: int) -> 'ControlSignal':
        return cls(SignalKind.JUMP, target)

    @classmethod
    def halt(cls) -> 'ControlSignal':
        return cls(SignalKind.HALT)


Fields = Tuple[str, ...]
Action = Callable[[Memory, Registers, Mapping[str, int], Fields], ControlSignal]


# ──────────────────────────────────────────────
# Grammar compilation
# ──────────────────────────────────────────────

PLACEHOLDERS: Dict[str, str] = {
    '<register>': r'R(\d+)',
    '<memory>':   r'(\d+)',
    '<operand>':  r'([R#])(\d+)',
    '<label>':    r'(\w+)',
}

_GRAMMAR_TOKEN = re.compile(r'(<\w+>|\s)')


def compile_pattern(pattern: str) -> 're.Pattern[str]':
    """Turn a grammar string into a regular expression.

    >>> compile_pattern('MOV <register>, <operand>').pattern
    'MOV\\\\s?R(\\\\d+),\\\\s?([R#])(\\\\d+)'
    """
    parts = []
    for token in _GRAMMAR_TOKEN.split(pattern):
        if not token:
            continue
        if token in PLACEHOLDERS:
            parts.append(PLACEHOLDERS[token])
        elif token.isspace():
            parts.append(r'\s?')
        elif token.startswith('<') and token.endswith('>'):
            raise ValueError(f"Unknown placeholder {token} in grammar '{pattern}'")
        else:
            parts.append(re.escape(token))
    return re.compile(''.join(parts))


@dataclass(frozen=True)
class InstructionSpec:
    """One entry of the instruction table."""
    mnemonic: str
    name: str
    pattern: str
    action: Action = field(repr=False, compare=False)
    matcher: 're.Pattern[str]' = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'matcher', compile_pattern(self.pattern))

    def match(self, text: str) -> Optional[Fields]:
        """Return the captured fields if this grammar accepts the line."""
        m = self.matcher.fullmatch(text)
        return m.groups() if m else None

    def execute(self, memory: Memory, registers: Registers,
                labels: Mapping[str, int], fields: Fields) -> ControlSignal:
        return self.action(memory, registers, labels, fields)


# ──────────────────────────────────────────────
# Operand helpers
# ──────────────────────────────────────────────

def _int32(value: int) -> int:
    """Wrap to a signed 32-bit integer."""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _operand(registers: Registers, kind: str, digits: str) -> int:
    """Resolve an <operand>: Rn reads a register, #n is a literal."""
    if kind == 'R':
        return registers[int(digits)]
    return int(digits)


def _target(labels: Mapping[str, int], label: str) -> int:
    try:
        return labels[label]
    except KeyError:
        raise LabelNotFoundError(label) from None


# ──────────────────────────────────────────────
# Actions
# ──────────────────────────────────────────────

def _ldr(memory, registers, labels, fields):
    rd, addr = fields
    registers[int(rd)] = memory.read(int(addr))
    return ControlSignal.proceed()


def _str(memory, registers, labels, fields):
    rs, addr = fields
    memory.write(int(addr), registers[int(rs)])
    return ControlSignal.proceed()


def _mov(memory, registers, labels, fields):
    rd, kind, digits = fields
    registers[int(rd)] = _operand(registers, kind, digits)
    return ControlSignal.proceed()


def _mvn(memory, registers, labels, fields):
    rd, kind, digits = fields
    registers[int(rd)] = ~_int32(_operand(registers, kind, digits))
    return ControlSignal.proceed()


def _cmp(memory, registers, labels, fields):
    rn, kind, digits = fields
    registers.compare(registers[int(rn)], _operand(registers, kind, digits))
    return ControlSignal.proceed()


def _alu(op: Callable[[int, int], int]) -> Action:
    """Action for the 'OP Rd, Rn, <operand>' shape: Rd = op(Rn, operand)."""
    def action(memory, registers, labels, fields):
        rd, rn, kind, digits = fields
        registers[int(rd)] = op(registers[int(rn)], _operand(registers, kind, digits))
        return ControlSignal.proceed()
    return action


def _branch(condition: Callable[[Optional[Flag]], bool]) -> Action:
    def action(memory, registers, labels, fields):
        (label,) = fields
        if condition(registers.flag):
            return ControlSignal.jump(_target(labels, label))
        return ControlSignal.proceed()
    return action


def _halt(memory, registers, labels, fields):
    return ControlSignal.halt()


def _label(memory, registers, labels, fields):
    return ControlSignal.proceed()


# ──────────────────────────────────────────────
# The table
# ──────────────────────────────────────────────

_TABLE = []


def _ins(mnemonic: str, name: str, pattern: str, action: Action) -> InstructionSpec:
    """Register an instruction; call order sets matching priority."""
    spec = InstructionSpec(mnemonic, name, pattern, action)
    _TABLE.append(spec)
    return spec


# ── Load / store ──
_ins('LDR', 'Load to register',  'LDR <register>, <memory>', _ldr)
_ins('STR', 'Store to memory',   'STR <register>, <memory>', _str)

# ── Arithmetic ──
_ins('ADD', 'Add',               'ADD <register>, <register>, <operand>', _alu(operator.add))
_ins('SUB', 'Subtract',          'SUB <register>, <register>, <operand>', _alu(operator.sub))
_ins('MOV', 'Copy to register',  'MOV <register>, <operand>', _mov)

# ── Compare and branch ──
_ins('CMP', 'Compare',                 'CMP <register>, <operand>', _cmp)
_ins('BEQ', 'Branch if equal to',      'BEQ <label>', _branch(lambda flag: flag is Flag.EQ))
_ins('BNE', 'Branch if not equal to',  'BNE <label>', _branch(lambda flag: flag is not Flag.EQ))
_ins('BGT', 'Branch if greater than',  'BGT <label>', _branch(lambda flag: flag is Flag.GT))
_ins('BLT', 'Branch if less than',     'BLT <label>', _branch(lambda flag: flag is Flag.LT))
_ins('B',   'Branch',                  'B <label>',   _branch(lambda flag: True))

# ── Bitwise (32-bit) ──
_ins('AND', 'AND', 'AND <register>, <register>, <operand>', _alu(lambda a, b: _int32(a & b)))
_ins('ORR', 'OR',  'ORR <register>, <register>, <operand>', _alu(lambda a, b: _int32(a | b)))
_ins('EOR', 'XOR', 'EOR <register>, <register>, <operand>', _alu(lambda a, b: _int32(a ^ b)))
_ins('MVN', 'NOT', 'MVN <register>, <operand>', _mvn)

# ── Shifts (count taken modulo 32) ──
_ins('LSL', 'Logically shift left',  'LSL <register>, <register>, <operand>',
     _alu(lambda a, b: _int32(a << (b & 31))))
_ins('LSR', 'Logically shift right', 'LSR <register>, <register>, <operand>',
     _alu(lambda a, b: _int32(a) >> (b & 31)))

_ins('HALT', 'Halt', 'HALT', _halt)

# Not an instruction, but parsed as one so labels keep their line slot
LABEL = _ins('LABEL', 'Label', '<label>:', _label)

INSTRUCTIONS: Tuple[InstructionSpec, ...] = tuple(_TABLE)

_BY_MNEMONIC: Dict[str, InstructionSpec] = {spec.mnemonic: spec for spec in INSTRUCTIONS}


def get_spec(mnemonic: str) -> InstructionSpec:
    """Look up a table entry by mnemonic ('LABEL' for label declarations)."""
    return _BY_MNEMONIC[mnemonic.upper()]


def match_instruction(text: str, table: Tuple[InstructionSpec, ...] = INSTRUCTIONS
                      ) -> Optional[Tuple[InstructionSpec, Fields]]:
    """Find the first instruction whose grammar accepts the line."""
    for spec in table:
        fields = spec.match(text)
        if fields is not None:
            return spec, fields
    return None
