# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Reusable validation utilities for configuration models.

This module provides standardized checks for:
- Conditional requirements (if X then Y must be provided)
- Forbidden fields (if X then Y must not be provided)
- Totals that must match (equity percentages, tier shares)
- Strictly increasing threshold sequences (tier hurdles)

All helpers raise ConfigurationError so that validation failures reach the
caller unchanged, even when invoked from inside a pydantic validator.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence, Union

from ..errors import ConfigurationError


class ValidationMixin:
    """
    Mixin class providing reusable validation methods for configuration models.

    This class can be inherited alongside the base Model to add common
    validation patterns without code duplication.
    """

    @classmethod
    def validate_conditional_requirement(
        cls,
        data: Any,
        condition_field: str,
        condition_values: Union[Any, Sequence[Any]],
        required_field: str,
        error_message: Optional[str] = None,
    ) -> Any:
        """
        Validate that a field is provided when a condition is met.

        Args:
            data: Model instance being validated
            condition_field: Field name to check condition on
            condition_values: Value(s) that trigger the requirement
            required_field: Field that becomes required
            error_message: Custom error message

        Returns:
            The validated model instance

        Raises:
            ConfigurationError: If the required field is missing when the condition is met
        """
        condition_value = getattr(data, condition_field, None)
        required_value = getattr(data, required_field, None)

        if not isinstance(condition_values, (list, tuple, set)):
            condition_values = [condition_values]

        if condition_value in condition_values and required_value is None:
            msg = error_message or (
                f"{required_field} is required when {condition_field} is "
                f"{_display(condition_value)}"
            )
            raise ConfigurationError(msg)

        return data

    @classmethod
    def validate_forbidden_unless(
        cls,
        data: Any,
        condition_field: str,
        allowed_values: Union[Any, Sequence[Any]],
        forbidden_field: str,
        error_message: Optional[str] = None,
    ) -> Any:
        """
        Validate that a field is only provided for specific condition values.

        Raises:
            ConfigurationError: If the field is set while the condition does not allow it
        """
        condition_value = getattr(data, condition_field, None)
        forbidden_value = getattr(data, forbidden_field, None)

        if not isinstance(allowed_values, (list, tuple, set)):
            allowed_values = [allowed_values]

        if forbidden_value is not None and condition_value not in allowed_values:
            msg = error_message or (
                f"{forbidden_field} is only allowed when {condition_field} is "
                f"{' or '.join(_display(v) for v in allowed_values)}"
            )
            raise ConfigurationError(msg)

        return data


def validate_total(
    values: Iterable[float],
    expected: float,
    label: str,
    tolerance: float = 1e-9,
) -> None:
    """
    Validate that values sum to an expected total.

    Example:
        ```python
        validate_total([90.0, 10.0], 100.0, "Equity percentages")  # OK
        validate_total([0.8, 0.3], 1.0, "Tier shares")  # Raises ConfigurationError
        ```
    """
    total = sum(values)
    if abs(total - expected) > tolerance:
        raise ConfigurationError(f"{label} must sum to {expected:g}, got {total:g}")


def validate_strictly_increasing(values: Sequence[float], label: str) -> None:
    """Validate that a threshold sequence is strictly increasing."""
    for previous, current in zip(values, values[1:]):
        if current <= previous:
            raise ConfigurationError(
                f"{label} must be strictly increasing, got {previous:g} then {current:g}"
            )


def _display(value: Any) -> str:
    return str(getattr(value, "value", value))


__all__ = [
    "ValidationMixin",
    "validate_strictly_increasing",
    "validate_total",
]
