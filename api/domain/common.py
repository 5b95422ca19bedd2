# SPDX-License-Identifier: Apache-2.0

"""
Result types shared by the domain modules.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass
class ValidationResult:
    """Result of a validation pass."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str], warnings: List[str] = None) -> "ValidationResult":
        return cls(is_valid=not errors, errors=errors, warnings=warnings or [])


@dataclass
class WorkflowResult:
    """Result of a workflow operation on an entity."""
    success: bool
    entity: Optional[Any] = None
    error_message: Optional[str] = None
    validation_errors: List[str] = field(default_factory=list)
    details: Optional[dict] = None


def format_rate(part: float, whole: float) -> str:
    """Percentage string with two decimals, '0%' when whole is 0."""
    if not whole:
        return "0%"
    return f"{part / whole * 100:.2f}%"
