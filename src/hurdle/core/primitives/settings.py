# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pydantic import Field, model_validator

from ..errors import ConfigurationError
from .model import Model
from .types import PositiveFloat, PositiveInt


class EngineSettings(Model):
    """
    Configuration settings for the calculation engine behavior.

    These settings control numerical tolerances and iteration caps of the
    IRR solver and the tier boundary search. They never change the business
    rules of the waterfall, only how precisely they are resolved.

    Usage Examples:
        # Standard analysis (default settings)
        settings = EngineSettings()

        # Tighter hurdle boundaries for large institutional schedules
        settings = EngineSettings(boundary_search_iterations=200)
    """

    irr_tolerance: PositiveFloat = Field(
        default=1e-6,
        description="Absolute NPV tolerance at which the IRR solver accepts a rate.",
    )
    irr_max_iterations: PositiveInt = Field(
        default=200,
        description="Hard cap on solver iterations; exceeding it raises NoConvergence.",
    )
    irr_lower_bound: float = Field(
        default=-0.99,
        gt=-1.0,
        description="Lower end of the bounded IRR search domain (-99%).",
    )
    irr_upper_bound: float = Field(
        default=10.0,
        description="Upper end of the bounded IRR search domain (+1000%).",
    )
    irr_initial_guess: float = Field(
        default=0.1,
        description="Starting rate for Newton-Raphson iterations.",
    )
    boundary_search_iterations: PositiveInt = Field(
        default=100,
        description=(
            "Maximum bisection steps used to locate the cash amount at which an "
            "IRR hurdle is crossed inside a single distribution event."
        ),
    )
    amount_tolerance: PositiveFloat = Field(
        default=1e-9,
        description=(
            "Dollar amounts at or below this value are treated as zero when "
            "deciding whether a balance is current or cash is exhausted."
        ),
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> "EngineSettings":
        if self.irr_upper_bound <= self.irr_lower_bound:
            raise ConfigurationError(
                "irr_upper_bound must be greater than irr_lower_bound"
            )
        if not self.irr_lower_bound < self.irr_initial_guess < self.irr_upper_bound:
            raise ConfigurationError(
                "irr_initial_guess must lie inside the IRR search domain"
            )
        return self
