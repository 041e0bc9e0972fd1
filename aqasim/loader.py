"""
Program loader for the AQA assembly interpreter.

Source format:

    [3, 0, 0]            // line 1: initial memory image (JSON integer array)
    LDR R0, 0            // one instruction per line
    loop:                // label declaration on its own line...
    done: HALT           // ...or in front of an instruction

How loading works:
  1. Split on newlines, strip '//' comments and surrounding whitespace,
     drop lines that end up empty. Source line numbers are kept for errors.
  2. Parse the first surviving line as JSON → initial memory.
  3. Match every other line against the instruction table (first match wins).
     A line nothing accepts is rejected here, before anything runs.
  4. Pre-scan: record each label's program line index. Label lines occupy a
     slot in the program, so a jump lands on the label line itself.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import json
import logging
import re

from .errors import (
    DuplicateLabelError, FileReadError, MemoryParseError, UnknownInstructionError,
)
from .instructions import LABEL, Fields, InstructionSpec, match_instruction

__all__ = [
    'ParsedLine', 'Program', 'clean_lines', 'parse_memory', 'parse_line', 'parse_program',
    'resolve_labels', 'load_program', 'load_file',
]

logger = logging.getLogger(__name__)

_COMMENT = re.compile(r'//.*')
_LABEL_PREFIX = re.compile(r'(\w+):\s*(.+)')


@dataclass
class ParsedLine:
    """One program line paired with the instruction that accepted it."""
    text: str
    spec: InstructionSpec
    fields: Fields = ()
    line_num: int = 0
    label: Optional[str] = None

    @property
    def name(self) -> str:
        return self.spec.name


@dataclass
class Program:
    """Loaded program: memory image, matched lines and label positions."""
    memory: List[int]
    lines: List[ParsedLine] = field(default_factory=list)
    labels: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.lines)


def clean_lines(source: str) -> List[Tuple[int, str]]:
    """Strip comments and blanks; return (source line number, text) pairs."""
    result = []
    for line_num, line in enumerate(source.split('\n'), 1):
        text = _COMMENT.sub('', line).strip()
        if text:
            result.append((line_num, text))
    return result


def parse_memory(text: str, line_num: int = 1) -> List[int]:
    """Parse the memory image line. Must be a JSON array of integers."""
    try:
        image = json.loads(text)
    except json.JSONDecodeError as e:
        raise MemoryParseError(f"Initial memory is not valid JSON: {e.msg}",
                               line_num, text) from e
    if not isinstance(image, list):
        raise MemoryParseError("Initial memory must be a JSON array", line_num, text)
    for addr, value in enumerate(image):
        # bool is an int subclass; true/false are not memory values
        if type(value) is not int:
            raise MemoryParseError(
                f"Memory cell {addr} must be an integer, got {value!r}", line_num, text)
    return image


def parse_line(text: str, line_num: int) -> ParsedLine:
    """Match one cleaned line, allowing an optional 'label:' prefix."""
    found = match_instruction(text)
    if found is not None:
        spec, fields = found
        label = fields[0] if spec is LABEL else None
        return ParsedLine(text, spec, fields, line_num, label)

    m = _LABEL_PREFIX.fullmatch(text)
    if m:
        found = match_instruction(m.group(2))
        if found is not None and found[0] is not LABEL:
            spec, fields = found
            return ParsedLine(text, spec, fields, line_num, m.group(1))

    raise UnknownInstructionError(line_num, text)


def parse_program(lines: List[Tuple[int, str]]) -> List[ParsedLine]:
    return [parse_line(text, line_num) for line_num, text in lines]


def resolve_labels(program: List[ParsedLine],
                   allow_duplicates: bool = False) -> Dict[str, int]:
    """Map each declared label to the index of the line declaring it.

    A label declared twice is an error unless allow_duplicates is set, in
    which case the last declaration wins.
    """
    labels: Dict[str, int] = {}
    for index, line in enumerate(program):
        if line.label is None:
            continue
        if line.label in labels and not allow_duplicates:
            raise DuplicateLabelError(line.label, labels[line.label],
                                      line.line_num, line.text)
        labels[line.label] = index
    return labels


def load_program(source: str, allow_duplicate_labels: bool = False) -> Program:
    """Load program text into memory image, matched lines and labels."""
    lines = clean_lines(source)
    if not lines:
        raise MemoryParseError("Program is empty: expected a memory image on the first line")

    mem_line_num, mem_text = lines[0]
    memory = parse_memory(mem_text, mem_line_num)
    program = parse_program(lines[1:])
    labels = resolve_labels(program, allow_duplicate_labels)

    logger.debug("Loaded %d memory cells, %d instructions, %d labels",
                 len(memory), len(program), len(labels))
    for name, index in labels.items():
        logger.debug("Label %s -> %d", name, index)

    return Program(memory, program, labels)


def load_file(path: Union[str, Path], allow_duplicate_labels: bool = False) -> Program:
    """Read a UTF-8 source file and load it."""
    try:
        source = Path(path).read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise FileReadError(str(path), str(e)) from e
    logger.debug("Read %d bytes from %s", len(source), path)
    return load_program(source, allow_duplicate_labels)
