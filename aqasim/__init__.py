"""
aqasim — AQA Assembly Language Interpreter
==========================================
Runs programs written in the AQA A-level pseudo-assembly language and traces
memory and registers after every instruction.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────────┐    ┌─────────────┐
    │ Source   │───>│  Loader  │───>│ Instruction  │───>│ Interpreter │
    │ (.aqa)   │    │ (lines)  │    │ table (regex)│    │ (trace)     │
    └──────────┘    └──────────┘    └──────────────┘    └─────────────┘

    - loader.py:       comments/blank lines, memory image, label pre-scan
    - instructions.py: grammar strings → matchers, actions → ControlSignal
    - interpreter.py:  fetch/execute loop, StopReason, trace records
    - regs.py / memory.py: machine state
"""

__version__ = "1.0.0"

from .config import RunConfig
from .errors import (
    InterpreterError, FileReadError, MemoryParseError, UnknownInstructionError,
    LabelNotFoundError, DuplicateLabelError, UnsetRegisterError, MemoryAddressError,
)
from .instructions import (
    ControlSignal, SignalKind, InstructionSpec, INSTRUCTIONS, compile_pattern,
    match_instruction,
)
from .loader import ParsedLine, Program, load_program, load_file
from .interpreter import Interpreter, StopReason, TraceRecord, format_trace, trace_to_dict
from .regs import Flag, Registers
from .memory import Memory


def run_source(source: str, config: RunConfig = None) -> Interpreter:
    """Load and run program text; returns the finished interpreter.

    Full pipeline: clean lines -> memory image -> match -> labels -> execute.
    """
    config = config or RunConfig()
    program = load_program(source, allow_duplicate_labels=config.allow_duplicate_labels)
    interp = Interpreter(program, config)
    interp.run()
    return interp
