"""Structured varprice error taxonomy.

Engine operations report problems as data (validation lists, ``None`` lookups,
clamped quantities). These exceptions exist for the boundaries that must stop:
strict option checks, malformed persisted records and bad configuration.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class VarPriceError(Exception):
    """Base class for all varprice domain exceptions.

    Subclasses pin ``error_code`` and ``category``; the CLI reports them as
    ``[CATEGORY:CODE]``.
    """

    error_code = "ENGINE_ERROR"
    category = "ENGINE"

    def __init__(self, explanation: str, *, error_code: Optional[str] = None, actionable: bool = True):
        if error_code is not None:
            self.error_code = error_code
        self.explanation = explanation
        self.actionable = actionable
        super().__init__(explanation)

    def __str__(self) -> str:
        return f"[{self.category}:{self.error_code}] {self.explanation}"


class OptionValidationError(VarPriceError):
    error_code = "OPTIONS_INVALID"
    category = "OPTIONS"

    def __init__(self, errors: Sequence[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid options")


class RecordFormatError(VarPriceError):
    error_code = "RECORD_FORMAT"
    category = "RECORD"


class ConfigError(VarPriceError):
    error_code = "CONFIG_INVALID"
    category = "CONFIG"
