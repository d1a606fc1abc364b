# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Hurdle Core Primitives

Essential building blocks shared by the waterfall engine: the immutable base
model, constrained numeric types, enums, validation helpers and engine settings.
"""

from .enums import (
    AccrualTypeEnum,
    FeeTypeEnum,
    HurdleLogicEnum,
    HurdleTypeEnum,
    PaymentFrequencyEnum,
    PoolEnum,
    StructureTypeEnum,
    TrueUpFrequencyEnum,
    WaterfallStepEnum,
)
from .model import Model
from .settings import EngineSettings
from .types import (
    FloatBetween0And1,
    NonNegativeFloat,
    Percent,
    PositiveFloat,
    PositiveInt,
)
from .validation import (
    ValidationMixin,
    validate_strictly_increasing,
    validate_total,
)

__all__ = [
    # Base model
    "Model",
    # Settings
    "EngineSettings",
    # Types
    "FloatBetween0And1",
    "NonNegativeFloat",
    "Percent",
    "PositiveFloat",
    "PositiveInt",
    # Enums
    "AccrualTypeEnum",
    "FeeTypeEnum",
    "HurdleLogicEnum",
    "HurdleTypeEnum",
    "PaymentFrequencyEnum",
    "PoolEnum",
    "StructureTypeEnum",
    "TrueUpFrequencyEnum",
    "WaterfallStepEnum",
    # Validation
    "ValidationMixin",
    "validate_strictly_increasing",
    "validate_total",
]
