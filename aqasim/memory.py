"""
Word-addressed memory for the AQA assembly interpreter.

The initial image comes from the JSON array on the first program line:
index = address, element = value. LDR may only read addresses inside the
image. STR past the end grows the image, filling any gap with zeros.
"""

from __future__ import annotations
from typing import Iterable, List

from .errors import MemoryAddressError

__all__ = ['Memory']


class Memory:
    """Flat list of integer cells."""

    def __init__(self, image: Iterable[int] = ()):
        self._cells: List[int] = list(image)

    def __len__(self) -> int:
        return len(self._cells)

    def __getitem__(self, addr: int) -> int:
        return self.read(addr)

    def __setitem__(self, addr: int, value: int):
        self.write(addr, value)

    def read(self, addr: int) -> int:
        if not 0 <= addr < len(self._cells):
            raise MemoryAddressError(addr, len(self._cells))
        return self._cells[addr]

    def write(self, addr: int, value: int):
        if addr < 0:
            raise MemoryAddressError(addr, len(self._cells))
        if addr >= len(self._cells):
            self._cells.extend([0] * (addr + 1 - len(self._cells)))
        self._cells[addr] = value

    def snapshot(self) -> List[int]:
        return list(self._cells)
