# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Constrained numeric types shared by configuration and schedule models."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

FloatBetween0And1 = Annotated[float, Field(strict=True, ge=0.0, le=1.0)]
PositiveFloat = Annotated[float, Field(strict=True, gt=0.0)]
PositiveInt = Annotated[int, Field(strict=True, gt=0)]
# Editor-facing percentages (0-100); converted to fractions at the engine boundary
Percent = Annotated[float, Field(strict=True, ge=0.0, le=100.0)]
# Engine-computed amounts and times; numpy and pandas scalars are coerced
NonNegativeFloat = Annotated[float, Field(ge=0.0)]

__all__ = [
    "FloatBetween0And1",
    "NonNegativeFloat",
    "Percent",
    "PositiveFloat",
    "PositiveInt",
]
