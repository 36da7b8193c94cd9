"""
modules/validation package — completeness checks that gate wizard steps.
"""
from modules.validation.step_validator import (
    ValidationResult,
    check_step,
    is_step_complete,
    strip_rich_text,
)

__all__ = [
    "ValidationResult",
    "check_step",
    "is_step_complete",
    "strip_rich_text",
]
