"""
Error hierarchy for the AQA assembly interpreter.

Every failure aborts the run. Errors raised while loading or executing a
particular line carry its 1-based source line number and cleaned text so the
CLI can point at the offending instruction.
"""

from __future__ import annotations

__all__ = [
    'InterpreterError', 'FileReadError', 'MemoryParseError',
    'UnknownInstructionError', 'LabelNotFoundError', 'DuplicateLabelError',
    'UnsetRegisterError', 'MemoryAddressError',
]


class InterpreterError(Exception):
    """Base class for all interpreter errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.message = message
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(self._format())

    def _format(self) -> str:
        if not self.line_num:
            return self.message
        if self.line_text:
            return f"Line {self.line_num}: {self.message} [{self.line_text}]"
        return f"Line {self.line_num}: {self.message}"

    def at_line(self, line_num: int, line_text: str) -> 'InterpreterError':
        """Attach source position to an error raised without one."""
        if not self.line_num:
            self.line_num = line_num
            self.line_text = line_text
            self.args = (self._format(),)
        return self


class FileReadError(InterpreterError):
    """Raised when the program source cannot be read."""
    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Cannot read '{path}': {reason}")


class MemoryParseError(InterpreterError):
    """Raised when the first program line is not a JSON integer array."""


class UnknownInstructionError(InterpreterError):
    """Raised at load time for a line no instruction grammar accepts."""
    def __init__(self, line_num: int, line_text: str):
        super().__init__("Unknown instruction", line_num, line_text)


class LabelNotFoundError(InterpreterError):
    """Raised when a taken branch names a label that was never declared."""
    def __init__(self, label: str, line_num: int = 0, line_text: str = ""):
        self.label = label
        super().__init__(f"Undefined label: '{label}'", line_num, line_text)


class DuplicateLabelError(InterpreterError):
    def __init__(self, label: str, first_index: int, line_num: int = 0, line_text: str = ""):
        self.label = label
        self.first_index = first_index
        super().__init__(
            f"Label '{label}' already declared at instruction {first_index}",
            line_num, line_text)


class UnsetRegisterError(InterpreterError):
    """Raised when a register is read before anything was written to it."""
    def __init__(self, register: int):
        self.register = register
        super().__init__(f"Register R{register} read before being set")


class MemoryAddressError(InterpreterError):
    def __init__(self, address: int, size: int):
        self.address = address
        self.size = size
        super().__init__(f"Memory address {address} out of range (memory has {size} cells)")
