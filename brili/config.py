"""
brili/config.py
===============

Tuning knobs for one interpreter run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass
class InterpreterConfig:
    """Configuration for ``run_program`` and the command-line driver."""
    check_leaks: bool = True
    recycle_block_ids: bool = True
    profile: bool = False
    recursion_limit: Optional[int] = None

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.recursion_limit is not None and self.recursion_limit < 100:
            warnings.append("recursion_limit below 100 is ignored")
        if not self.check_leaks:
            warnings.append("leak checking disabled; unfreed memory will not be reported")
        return warnings


__all__ = ["InterpreterConfig"]
