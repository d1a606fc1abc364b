# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Waterfall Configuration Models

This module defines the single, strongly-typed configuration value consumed by
the waterfall engine. It is validated completely at construction: tier
ordering, share totals, hurdle fields and the capital structure are all checked
before any cash flow is processed, so the engine never sees a partially valid
configuration.

Units:
- `CapitalStructure` percentages are expressed 0-100, as authored in the editor
- Every other rate, share and fee is a fraction (0.08 for 8%)

`WaterfallConfiguration.from_editor_payload()` converts the editor's all-
percentage payload into this representation.

Example:
    ```python
    configuration = WaterfallConfiguration(
        capital_structure=CapitalStructure(lp_equity_percent=90, gp_equity_percent=10),
        preferred_return=PreferredReturnTerms(lp_rate=0.08),
        promote_tiers=[
            PromoteTier(tier_number=1, hurdle_type="irr", irr_hurdle=0.12,
                        lp_share=0.80, gp_share=0.20),
            PromoteTier(tier_number=2, lp_share=0.70, gp_share=0.30),
        ],
    )
    ```
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import Field, ValidationError, field_validator, model_validator

from ..core.errors import ConfigurationError
from ..core.primitives import (
    AccrualTypeEnum,
    FloatBetween0And1,
    HurdleLogicEnum,
    HurdleTypeEnum,
    Model,
    NonNegativeFloat,
    PaymentFrequencyEnum,
    Percent,
    PoolEnum,
    PositiveFloat,
    PositiveInt,
    StructureTypeEnum,
    TrueUpFrequencyEnum,
    ValidationMixin,
    validate_strictly_increasing,
    validate_total,
)

logger = logging.getLogger(__name__)

SHARE_TOLERANCE = 1e-9


# =============================================================================
# CAPITAL STRUCTURE
# =============================================================================


class CapitalStructure(Model):
    """
    LP / GP equity split, in editor percentages (0-100).

    Untagged contributions are split between the pools by these percentages and
    the GP's pro-rata share of promote tiers is measured against them.
    """

    lp_equity_percent: Percent = Field(default=90.0, description="LP share of equity (0-100)")
    gp_equity_percent: Percent = Field(default=10.0, description="GP share of equity (0-100)")
    gp_co_invest_required: bool = Field(
        default=False, description="GP must fund its equity share alongside the LP"
    )

    @model_validator(mode="after")
    def _check_percentages(self) -> "CapitalStructure":
        validate_total(
            [self.lp_equity_percent, self.gp_equity_percent],
            100.0,
            "lp_equity_percent + gp_equity_percent",
            tolerance=SHARE_TOLERANCE,
        )
        if self.gp_co_invest_required and self.gp_equity_percent <= 0:
            raise ConfigurationError(
                "gp_equity_percent must be greater than 0 when gp_co_invest_required is set"
            )
        return self

    @property
    def lp_fraction(self) -> float:
        return self.lp_equity_percent / 100.0

    @property
    def gp_fraction(self) -> float:
        return self.gp_equity_percent / 100.0

    def fraction_for(self, pool: PoolEnum) -> float:
        """Equity fraction (0-1) held by a pool."""
        return self.lp_fraction if pool == PoolEnum.LP else self.gp_fraction


# =============================================================================
# PREFERRED RETURN
# =============================================================================


class PreferredReturnTerms(Model):
    """
    Preferred return and catch-up terms.

    A `gp_rate` of None means no GP preferred return is configured; the GP
    preferred step still runs but always distributes zero.
    """

    enabled: bool = Field(default=True, description="Preferred return applies")
    lp_rate: NonNegativeFloat = Field(default=0.08, description="LP preferred rate (0.08 = 8%)")
    gp_rate: Optional[NonNegativeFloat] = Field(
        default=None, description="GP preferred rate on co-invest capital, if configured"
    )
    accrual_type: AccrualTypeEnum = Field(default=AccrualTypeEnum.CUMULATIVE)
    payment_frequency: PaymentFrequencyEnum = Field(default=PaymentFrequencyEnum.AT_EXIT)
    catch_up_enabled: bool = Field(default=False)
    catch_up_percent: float = Field(
        default=1.0,
        gt=0.0,
        le=1.0,
        description="Share of catch-up cash paid to the GP (1.0 = full catch-up)",
    )
    catch_up_target_share: float = Field(
        default=0.20,
        ge=0.0,
        lt=1.0,
        description="GP share of preferred-plus-catch-up profit targeted by the catch-up",
    )
    accrues_during_construction: bool = Field(
        default=True, description="Preferred accrues on capital before construction_end"
    )

    @property
    def gp_configured(self) -> bool:
        """Check if a GP preferred return is in effect."""
        return self.enabled and self.gp_rate is not None

    def rate_for(self, pool: PoolEnum) -> float:
        """Preferred rate applied to a pool (0.0 when not in effect)."""
        if not self.enabled:
            return 0.0
        if pool == PoolEnum.LP:
            return self.lp_rate
        return self.gp_rate or 0.0


# =============================================================================
# PROMOTE TIERS
# =============================================================================


class PromoteTier(Model, ValidationMixin):
    """
    One tier of the promote cascade.

    A tier's hurdle is the ceiling of the tier: cash is split `lp_share` /
    `gp_share` until the LP reaches the hurdle, and the excess flows to the
    next tier. A tier with `hurdle_type="none"` has no ceiling and absorbs all
    remaining cash, so it must be the final tier.
    """

    tier_number: PositiveInt = Field(..., description="1-based position in the cascade")
    name: Optional[str] = Field(default=None, description="Display name (defaults to 'Tier N')")
    hurdle_type: HurdleTypeEnum = Field(default=HurdleTypeEnum.NONE)
    hurdle_logic: Optional[HurdleLogicEnum] = Field(
        default=None, description="How IRR and multiple hurdles combine (both only)"
    )
    irr_hurdle: Optional[float] = Field(
        default=None, gt=-1.0, description="LP IRR ceiling as a fraction (0.12 = 12%)"
    )
    multiple_hurdle: Optional[PositiveFloat] = Field(
        default=None, description="LP equity multiple ceiling (1.5 = 1.5x)"
    )
    lp_share: FloatBetween0And1 = Field(..., description="LP share of tier cash")
    gp_share: FloatBetween0And1 = Field(..., description="GP share of tier cash")

    @model_validator(mode="after")
    def _validate_tier(self) -> "PromoteTier":
        validate_total(
            [self.lp_share, self.gp_share],
            1.0,
            f"Tier {self.tier_number} lp_share + gp_share",
            tolerance=SHARE_TOLERANCE,
        )
        irr_types = [HurdleTypeEnum.IRR, HurdleTypeEnum.BOTH]
        multiple_types = [HurdleTypeEnum.EQUITY_MULTIPLE, HurdleTypeEnum.BOTH]

        self.validate_conditional_requirement(self, "hurdle_type", irr_types, "irr_hurdle")
        self.validate_conditional_requirement(
            self, "hurdle_type", multiple_types, "multiple_hurdle"
        )
        self.validate_conditional_requirement(
            self, "hurdle_type", HurdleTypeEnum.BOTH, "hurdle_logic"
        )
        self.validate_forbidden_unless(self, "hurdle_type", irr_types, "irr_hurdle")
        self.validate_forbidden_unless(self, "hurdle_type", multiple_types, "multiple_hurdle")
        self.validate_forbidden_unless(
            self, "hurdle_type", HurdleTypeEnum.BOTH, "hurdle_logic"
        )
        return self

    @property
    def display_name(self) -> str:
        return self.name or f"Tier {self.tier_number}"

    @property
    def is_bounded(self) -> bool:
        """Check if the tier has a hurdle ceiling."""
        return self.hurdle_type != HurdleTypeEnum.NONE

    @property
    def has_irr_hurdle(self) -> bool:
        return self.irr_hurdle is not None

    @property
    def has_multiple_hurdle(self) -> bool:
        return self.multiple_hurdle is not None


# =============================================================================
# FEES AND CLAWBACK
# =============================================================================


class ManagementFees(Model):
    """
    Percentage-of-basis sponsor fees deducted from gross cash before the cascade.

    All values are fractions; the asset management fee is per annum on
    contributed equity.
    """

    acquisition_fee_percent: FloatBetween0And1 = Field(
        default=0.0, description="Of total project cost, due at the first distribution"
    )
    asset_management_fee_percent: FloatBetween0And1 = Field(
        default=0.0, description="Of contributed equity per year"
    )
    construction_management_fee_percent: FloatBetween0And1 = Field(
        default=0.0, description="Of hard costs, due at the first distribution"
    )
    disposition_fee_percent: FloatBetween0And1 = Field(
        default=0.0, description="Of gross cash at the exit event"
    )

    @property
    def any_fees(self) -> bool:
        """Check if any fee percentage is non-zero."""
        return any(
            value > 0
            for value in (
                self.acquisition_fee_percent,
                self.asset_management_fee_percent,
                self.construction_management_fee_percent,
                self.disposition_fee_percent,
            )
        )


class ClawbackTerms(Model):
    """GP clawback of promote not justified by realized results."""

    enabled: bool = Field(default=False)
    escrow_percent: FloatBetween0And1 = Field(
        default=0.10, description="Cap on clawback as a fraction of promote paid"
    )
    true_up_frequency: TrueUpFrequencyEnum = Field(default=TrueUpFrequencyEnum.AT_EXIT)


# =============================================================================
# WATERFALL CONFIGURATION
# =============================================================================


class WaterfallConfiguration(Model):
    """
    Complete, validated distribution waterfall configuration.

    Validation (raises ConfigurationError):
    - Capital percentages sum to 100
    - At least one promote tier, numbered 1..n in ascending order
    - Every tier's shares sum to 1.0 and carries the fields its hurdle type needs
    - IRR hurdles strictly increase across the tiers that carry one (multiples likewise)
    - Only the final tier is unbounded (`hurdle_type="none"`), and it must be
    """

    structure_type: StructureTypeEnum = Field(default=StructureTypeEnum.AMERICAN)
    capital_structure: CapitalStructure = Field(default_factory=CapitalStructure)
    preferred_return: PreferredReturnTerms = Field(default_factory=PreferredReturnTerms)
    promote_tiers: List[PromoteTier] = Field(..., description="Ordered promote tiers")
    management_fees: ManagementFees = Field(default_factory=ManagementFees)
    clawback: ClawbackTerms = Field(default_factory=ClawbackTerms)

    @field_validator("promote_tiers")
    @classmethod
    def _validate_tier_cascade(cls, v: List[PromoteTier]) -> List[PromoteTier]:
        if not v:
            raise ConfigurationError("At least one promote tier is required")

        numbers = [tier.tier_number for tier in v]
        if numbers != list(range(1, len(v) + 1)):
            raise ConfigurationError(
                f"Tier numbers must be contiguous and ascending from 1, got {numbers}"
            )

        for tier in v[:-1]:
            if not tier.is_bounded:
                raise ConfigurationError(
                    f"{tier.display_name} has hurdle_type 'none' and must be the last tier"
                )
        if v[-1].is_bounded:
            raise ConfigurationError(
                f"Final tier ({v[-1].display_name}) must be unbounded (hurdle_type 'none')"
            )

        validate_strictly_increasing(
            [tier.irr_hurdle for tier in v if tier.has_irr_hurdle], "Tier IRR hurdles"
        )
        validate_strictly_increasing(
            [tier.multiple_hurdle for tier in v if tier.has_multiple_hurdle],
            "Tier multiple hurdles",
        )
        return v

    @property
    def final_tier(self) -> PromoteTier:
        return self.promote_tiers[-1]

    @classmethod
    def validate_payload(cls, payload: Mapping[str, Any]) -> "WaterfallConfiguration":
        """
        Validate a fraction-based payload, reporting every failure as ConfigurationError.

        Pydantic field errors (wrong types, out-of-range values) are re-raised
        as ConfigurationError with the original message.
        """
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def from_editor_payload(cls, payload: Mapping[str, Any]) -> "WaterfallConfiguration":
        """
        Build a configuration from the editor's percentage (0-100) payload.

        Accepts the editor's key names (`lp_pref_rate`, `gp_pref_rate`,
        `type`, `catch_up_target`, `clawback_provisions.gp_clawback_enabled`)
        as well as this package's names. Editor-only keys (`enabled`, tier
        `id` and `description`) are ignored, and tiers are renumbered in list
        order.

        Example:
            ```python
            configuration = WaterfallConfiguration.from_editor_payload({
                "structure_type": "american",
                "capital_structure": {"lp_equity_percent": 90, "gp_equity_percent": 10},
                "preferred_return": {"enabled": True, "lp_pref_rate": 8, "type": "cumulative"},
                "promote_tiers": [{"hurdle_type": "none", "lp_share": 80, "gp_share": 20}],
            })
            ```
        """
        converted = _convert_editor_payload(payload)
        logger.debug(
            f"Converted editor payload with {len(converted['promote_tiers'])} promote tiers"
        )
        return cls.validate_payload(converted)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dump of the configuration (fractions, enum values)."""
        return self.model_dump(mode="json")


# =============================================================================
# EDITOR PAYLOAD CONVERSION
# =============================================================================


def _percent(value: Optional[float]) -> Optional[float]:
    return None if value is None else float(value) / 100.0


def _first_present(section: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in section:
            return section[key]
    return None


def _convert_editor_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    converted: Dict[str, Any] = {}

    if "structure_type" in payload:
        converted["structure_type"] = payload["structure_type"]

    if payload.get("capital_structure") is not None:
        converted["capital_structure"] = dict(payload["capital_structure"])

    pref = payload.get("preferred_return")
    if pref is not None:
        terms: Dict[str, Any] = {}
        for key in ("enabled", "payment_frequency", "catch_up_enabled",
                    "accrues_during_construction"):
            if key in pref:
                terms[key] = pref[key]
        accrual = _first_present(pref, "accrual_type", "type")
        if accrual is not None:
            terms["accrual_type"] = accrual
        lp_rate = _first_present(pref, "lp_rate", "lp_pref_rate")
        if lp_rate is not None:
            terms["lp_rate"] = _percent(lp_rate)
        gp_rate = _first_present(pref, "gp_rate", "gp_pref_rate")
        if gp_rate is not None:
            terms["gp_rate"] = _percent(gp_rate)
        if pref.get("catch_up_percent") is not None:
            terms["catch_up_percent"] = _percent(pref["catch_up_percent"])
        target = _first_present(pref, "catch_up_target_share", "catch_up_target")
        if target is not None:
            terms["catch_up_target_share"] = _percent(target)
        converted["preferred_return"] = terms

    converted["promote_tiers"] = [
        _convert_editor_tier(number, tier)
        for number, tier in enumerate(payload.get("promote_tiers") or [], start=1)
    ]

    fees = payload.get("management_fees")
    if fees is not None:
        converted["management_fees"] = {
            key: _percent(value) for key, value in fees.items() if value is not None
        }

    clawback = _first_present(payload, "clawback", "clawback_provisions")
    if clawback is not None:
        terms = {}
        enabled = _first_present(clawback, "enabled", "gp_clawback_enabled")
        if enabled is not None:
            terms["enabled"] = enabled
        if clawback.get("escrow_percent") is not None:
            terms["escrow_percent"] = _percent(clawback["escrow_percent"])
        if "true_up_frequency" in clawback:
            terms["true_up_frequency"] = clawback["true_up_frequency"]
        converted["clawback"] = terms

    return converted


def _convert_editor_tier(number: int, tier: Mapping[str, Any]) -> Dict[str, Any]:
    hurdle_type = tier.get("hurdle_type", HurdleTypeEnum.NONE.value)
    hurdle_type = getattr(hurdle_type, "value", hurdle_type)
    converted: Dict[str, Any] = {
        "tier_number": number,
        "hurdle_type": hurdle_type,
        "lp_share": _percent(tier.get("lp_share")),
        "gp_share": _percent(tier.get("gp_share")),
    }
    if tier.get("name"):
        converted["name"] = tier["name"]
    # The editor keeps a default logic and stale thresholds on every tier
    if hurdle_type in (HurdleTypeEnum.IRR.value, HurdleTypeEnum.BOTH.value):
        converted["irr_hurdle"] = _percent(tier.get("irr_hurdle"))
    if hurdle_type in (HurdleTypeEnum.EQUITY_MULTIPLE.value, HurdleTypeEnum.BOTH.value):
        converted["multiple_hurdle"] = tier.get("multiple_hurdle")
    if hurdle_type == HurdleTypeEnum.BOTH.value:
        converted["hurdle_logic"] = tier.get("hurdle_logic")
    return converted


__all__ = [
    "CapitalStructure",
    "ClawbackTerms",
    "ManagementFees",
    "PreferredReturnTerms",
    "PromoteTier",
    "WaterfallConfiguration",
]
