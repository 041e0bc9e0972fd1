"""
Register file for the AQA assembly interpreter.

Register model:
  R0, R1, ... Rn — general purpose integer registers, created on first write.
                   There is no fixed register count; any non-negative index
                   written by the program exists from then on.
  CMP            — comparison flag, set only by CMP and read only by the
                   conditional branches. One of EQ / GT / LT, or unset
                   (None) until the first CMP executes.

There are no carry/overflow flags and no width limit on register values.
"""

from __future__ import annotations
from enum import Enum
from typing import Dict, Optional, Union

from .errors import UnsetRegisterError

__all__ = ['Flag', 'Registers']


class Flag(Enum):
    EQ = 'EQ'
    GT = 'GT'
    LT = 'LT'


class Registers:
    """Numbered registers plus the comparison flag.

    Indexing reads/writes a general register:
        regs[2] = 5
        regs[2]      # -> 5
        regs[7]      # -> UnsetRegisterError
    """

    __slots__ = ('_values', 'flag')

    def __init__(self):
        self._values: Dict[int, int] = {}
        self.flag: Optional[Flag] = None

    def __getitem__(self, index: int) -> int:
        try:
            return self._values[index]
        except KeyError:
            raise UnsetRegisterError(index) from None

    def __setitem__(self, index: int, value: int):
        self._values[index] = value

    def __contains__(self, index: int) -> bool:
        return index in self._values

    def __len__(self) -> int:
        return len(self._values)

    def compare(self, left: int, right: int) -> Flag:
        """Set the flag from comparing left against right, and return it."""
        if left == right:
            self.flag = Flag.EQ
        elif left > right:
            self.flag = Flag.GT
        else:
            self.flag = Flag.LT
        return self.flag

    def snapshot(self) -> Dict[str, Union[int, str, None]]:
        """Copy of the register file, ordered by register number.

        Keys are 'R0'.. plus 'CMP' for the flag (None when unset).
        """
        snap: Dict[str, Union[int, str, None]] = {
            f"R{index}": self._values[index] for index in sorted(self._values)
        }
        snap['CMP'] = self.flag.value if self.flag is not None else None
        return snap

    def display(self) -> str:
        """Single-line register dump for traces, e.g. 'R0=5 R1=1 CMP=EQ'."""
        parts = [f"R{index}={self._values[index]}" for index in sorted(self._values)]
        parts.append(f"CMP={self.flag.value if self.flag is not None else '-'}")
        return ' '.join(parts)
