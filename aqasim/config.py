"""Run options for the AQA assembly interpreter."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

__all__ = ['RunConfig', 'TRACE_FORMATS']

TRACE_FORMATS = ('text', 'json')


@dataclass
class RunConfig:
    """Options controlling one interpreter run.

    max_steps:              stop with STEP_LIMIT after this many executed
                            instructions (None = run until HALT or the end)
    allow_duplicate_labels: let a redeclared label silently replace the earlier
                            one instead of failing the load
    trace:                  record a TraceRecord for every executed step
    """
    max_steps: Optional[int] = None
    allow_duplicate_labels: bool = False
    trace: bool = True

    def __post_init__(self):
        if self.max_steps is not None and self.max_steps < 1:
            raise ValueError(f"max_steps must be positive, got {self.max_steps}")

    @classmethod
    def from_args(cls, args) -> 'RunConfig':
        """Build from an argparse namespace (missing attributes keep defaults)."""
        return cls(
            max_steps=getattr(args, 'max_steps', None),
            allow_duplicate_labels=getattr(args, 'allow_duplicate_labels', False),
            trace=not getattr(args, 'quiet', False),
        )
