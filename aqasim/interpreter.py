"""
AQA Assembly Interpreter — fetch / execute / trace loop.

Execution model:
  1. Fetch the program line at PC
  2. Execute its action against memory, registers and labels
  3. Emit a trace record (PC, operation count, line, name, memory, registers)
  4. JUMP  → PC = target line index
     HALT  → stop (the halting step is still traced)
     else  → PC += 1

Termination reasons:
  - HALT:       HALT instruction executed
  - END:        PC ran past the last line
  - STEP_LIMIT: RunConfig.max_steps instructions executed
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union
import logging

from .config import RunConfig
from .errors import InterpreterError
from .instructions import SignalKind
from .loader import Program
from .memory import Memory
from .regs import Registers

__all__ = ['StopReason', 'TraceRecord', 'Interpreter', 'format_trace', 'trace_to_dict']

logger = logging.getLogger(__name__)

TRACE_SEPARATOR = '=============='


class StopReason(Enum):
    HALT = 'HALT'
    END = 'END'
    STEP_LIMIT = 'STEP_LIMIT'


@dataclass
class TraceRecord:
    """Machine state after one executed instruction."""
    counter: int            # PC of the executed line
    operations: int         # instructions executed so far, this one included
    line: str
    name: str
    memory: List[int] = field(default_factory=list)
    registers: Dict[str, Union[int, str, None]] = field(default_factory=dict)


def format_trace(record: TraceRecord) -> str:
    """Render a trace record as the text block printed per step."""
    regs = ' '.join(
        f"{key}={'-' if value is None else value}" for key, value in record.registers.items()
    )
    return '\n'.join([
        TRACE_SEPARATOR,
        f"Instruction Counter: {record.counter}",
        f"Operations: {record.operations}",
        f"Line: {record.line}",
        f"Type: {record.name}",
        f"Memory: {record.memory}",
        f"Registers: {regs}",
    ])


def trace_to_dict(record: TraceRecord) -> Dict[str, Any]:
    return {
        'counter': record.counter,
        'operations': record.operations,
        'line': record.line,
        'type': record.name,
        'memory': list(record.memory),
        'registers': dict(record.registers),
    }


class Interpreter:
    """Runs one loaded program.

    Usage:
        interp = Interpreter(load_program(source))
        reason = interp.run()
        interp.regs[2], interp.memory.snapshot()

    Trace records go to trace_sink when one is given, otherwise they are
    collected in trace_output.
    """

    def __init__(self, program: Program, config: Optional[RunConfig] = None,
                 trace_sink: Optional[Callable[[TraceRecord], None]] = None):
        self.program = program
        self.config = config or RunConfig()
        self.memory = Memory(program.memory)
        self.regs = Registers()
        self.labels = dict(program.labels)
        self.pc: int = 0
        self.operations: int = 0
        self.halted: bool = False
        self.trace_output: List[TraceRecord] = []
        self._trace_sink = trace_sink

    @property
    def finished(self) -> bool:
        return self.halted or self.pc >= len(self.program.lines)

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns StopReason if stopped, else None."""
        if self.halted:
            return StopReason.HALT
        if self.pc >= len(self.program.lines):
            return StopReason.END

        line = self.program.lines[self.pc]
        try:
            signal = line.spec.execute(self.memory, self.regs, self.labels, line.fields)
        except InterpreterError as e:
            raise e.at_line(line.line_num, line.text)
        self.operations += 1

        if self.config.trace:
            self._emit(TraceRecord(
                counter=self.pc,
                operations=self.operations,
                line=line.text,
                name=line.name,
                memory=self.memory.snapshot(),
                registers=self.regs.snapshot(),
            ))

        if signal.kind is SignalKind.JUMP:
            logger.debug("Jump %d -> %d (%s)", self.pc, signal.target, line.text)
            self.pc = signal.target
        elif signal.kind is SignalKind.HALT:
            logger.debug("Halt at %d after %d operations", self.pc, self.operations)
            self.halted = True
            return StopReason.HALT
        else:
            self.pc += 1
        return None

    def run(self) -> StopReason:
        """Run until HALT, the end of the program, or the step limit."""
        max_steps = self.config.max_steps
        while True:
            if max_steps is not None and self.operations >= max_steps and not self.finished:
                logger.warning("Step limit of %d reached at instruction %d", max_steps, self.pc)
                return StopReason.STEP_LIMIT
            reason = self.step()
            if reason is not None:
                return reason
            if self.pc >= len(self.program.lines):
                logger.debug("Ran off the end after %d operations", self.operations)
                return StopReason.END

    def _emit(self, record: TraceRecord):
        if self._trace_sink is not None:
            self._trace_sink(record)
        else:
            self.trace_output.append(record)
