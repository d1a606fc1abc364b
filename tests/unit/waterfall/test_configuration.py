# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tests for waterfall configuration validation and editor payload conversion.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from hurdle.core import ConfigurationError
from hurdle.core.primitives import (
    AccrualTypeEnum,
    HurdleLogicEnum,
    HurdleTypeEnum,
    PoolEnum,
    StructureTypeEnum,
    TrueUpFrequencyEnum,
)
from hurdle.waterfall import (
    CapitalStructure,
    ManagementFees,
    PreferredReturnTerms,
    PromoteTier,
    WaterfallConfiguration,
)


def _tier(number, hurdle_type="none", **kwargs):
    kwargs.setdefault("lp_share", 0.80)
    kwargs.setdefault("gp_share", 0.20)
    return PromoteTier(tier_number=number, hurdle_type=hurdle_type, **kwargs)


class TestCapitalStructure:
    """Tests for the LP/GP equity split."""

    def test_defaults(self):
        capital = CapitalStructure()
        assert capital.lp_fraction == pytest.approx(0.90)
        assert capital.gp_fraction == pytest.approx(0.10)
        assert capital.fraction_for(PoolEnum.GP) == pytest.approx(0.10)

    def test_percentages_must_sum_to_100(self):
        with pytest.raises(ConfigurationError, match="must sum to 100"):
            CapitalStructure(lp_equity_percent=85, gp_equity_percent=10)

    def test_percent_out_of_range(self):
        with pytest.raises(ValidationError):
            CapitalStructure(lp_equity_percent=110, gp_equity_percent=-10)

    def test_co_invest_requires_gp_equity(self):
        with pytest.raises(ConfigurationError, match="gp_co_invest_required"):
            CapitalStructure(
                lp_equity_percent=100, gp_equity_percent=0, gp_co_invest_required=True
            )

    def test_percent_strings_are_not_coerced(self):
        with pytest.raises(ValidationError):
            CapitalStructure(lp_equity_percent="90", gp_equity_percent="10")


class TestPreferredReturnTerms:
    """Tests for preferred return terms."""

    def test_defaults(self):
        terms = PreferredReturnTerms()
        assert terms.lp_rate == 0.08
        assert terms.gp_rate is None
        assert terms.accrual_type == AccrualTypeEnum.CUMULATIVE
        assert not terms.catch_up_enabled

    def test_gp_rate_not_configured_is_zero(self):
        terms = PreferredReturnTerms(lp_rate=0.08)
        assert not terms.gp_configured
        assert terms.rate_for(PoolEnum.GP) == 0.0
        assert terms.rate_for(PoolEnum.LP) == 0.08

    def test_disabled_terms_have_zero_rate(self):
        terms = PreferredReturnTerms(enabled=False, lp_rate=0.08, gp_rate=0.06)
        assert terms.rate_for(PoolEnum.LP) == 0.0
        assert terms.rate_for(PoolEnum.GP) == 0.0

    def test_catch_up_target_below_one(self):
        with pytest.raises(ValidationError):
            PreferredReturnTerms(catch_up_target_share=1.0)


class TestPromoteTier:
    """Tests for individual promote tier validation."""

    def test_shares_must_sum_to_one(self):
        with pytest.raises(ConfigurationError, match="lp_share \\+ gp_share"):
            PromoteTier(tier_number=1, lp_share=0.8, gp_share=0.3)

    def test_numeric_strings_are_not_coerced(self):
        with pytest.raises(ValidationError):
            PromoteTier(tier_number=1, lp_share="0.8", gp_share="0.2")
        with pytest.raises(ValidationError):
            _tier(1, "equity_multiple", multiple_hurdle="1.5")

    def test_irr_tier_requires_irr_hurdle(self):
        with pytest.raises(ConfigurationError, match="irr_hurdle is required"):
            _tier(1, "irr")

    def test_both_tier_requires_logic(self):
        with pytest.raises(ConfigurationError, match="hurdle_logic is required"):
            _tier(1, "both", irr_hurdle=0.12, multiple_hurdle=1.5)

    def test_hurdle_fields_forbidden_for_other_types(self):
        with pytest.raises(ConfigurationError, match="multiple_hurdle is only allowed"):
            _tier(1, "irr", irr_hurdle=0.12, multiple_hurdle=1.5)
        with pytest.raises(ConfigurationError, match="irr_hurdle is only allowed"):
            _tier(1, "none", irr_hurdle=0.12)

    def test_display_name(self):
        assert _tier(2).display_name == "Tier 2"
        assert _tier(2, name="Super promote").display_name == "Super promote"

    def test_bounded(self):
        assert _tier(1, "equity_multiple", multiple_hurdle=1.5).is_bounded
        assert not _tier(1).is_bounded


class TestWaterfallConfiguration:
    """Tests for whole-configuration validation."""

    def test_valid_configuration(self):
        configuration = WaterfallConfiguration(
            promote_tiers=[
                _tier(1, "irr", irr_hurdle=0.12),
                _tier(2, "irr", irr_hurdle=0.18, lp_share=0.70, gp_share=0.30),
                _tier(3, lp_share=0.50, gp_share=0.50),
            ]
        )
        assert configuration.structure_type == StructureTypeEnum.AMERICAN
        assert configuration.final_tier.tier_number == 3
        assert not configuration.clawback.enabled
        assert not configuration.management_fees.any_fees

    def test_requires_a_tier(self):
        with pytest.raises(ConfigurationError, match="At least one promote tier"):
            WaterfallConfiguration(promote_tiers=[])

    def test_unbounded_tier_must_be_last(self):
        with pytest.raises(ConfigurationError, match="must be the last tier"):
            WaterfallConfiguration(
                promote_tiers=[_tier(1), _tier(2, "irr", irr_hurdle=0.12)]
            )

    def test_final_tier_must_be_unbounded(self):
        with pytest.raises(ConfigurationError, match="must be unbounded"):
            WaterfallConfiguration(promote_tiers=[_tier(1, "irr", irr_hurdle=0.12)])

    def test_tier_numbers_contiguous(self):
        with pytest.raises(ConfigurationError, match="contiguous"):
            WaterfallConfiguration(
                promote_tiers=[_tier(1, "irr", irr_hurdle=0.12), _tier(3)]
            )

    def test_irr_hurdles_strictly_increasing(self):
        with pytest.raises(ConfigurationError, match="strictly increasing"):
            WaterfallConfiguration(
                promote_tiers=[
                    _tier(1, "irr", irr_hurdle=0.15),
                    _tier(2, "irr", irr_hurdle=0.12),
                    _tier(3),
                ]
            )

    def test_validate_payload_wraps_field_errors(self):
        with pytest.raises(ConfigurationError):
            WaterfallConfiguration.validate_payload(
                {"promote_tiers": [{"tier_number": 1, "lp_share": "lots", "gp_share": 0.2}]}
            )

    def test_to_dict_round_trips(self):
        configuration = WaterfallConfiguration(
            management_fees=ManagementFees(asset_management_fee_percent=0.02),
            promote_tiers=[_tier(1, "irr", irr_hurdle=0.12), _tier(2)],
        )
        data = configuration.to_dict()
        assert data["promote_tiers"][0]["hurdle_type"] == "irr"
        assert WaterfallConfiguration.model_validate(data) == configuration


class TestEditorPayload:
    """Tests for converting the editor's percentage payload."""

    @pytest.fixture
    def payload(self):
        return {
            "structure_type": "european",
            "capital_structure": {
                "lp_equity_percent": 90,
                "gp_equity_percent": 10,
                "gp_co_invest_required": True,
            },
            "preferred_return": {
                "enabled": True,
                "lp_pref_rate": 8,
                "gp_pref_rate": 6,
                "type": "compounding",
                "payment_frequency": "quarterly",
                "catch_up_enabled": True,
                "catch_up_percent": 100,
                "catch_up_target": 20,
            },
            "promote_tiers": [
                {
                    "id": "tier-a",
                    "description": "First hurdle",
                    "hurdle_type": "irr",
                    "irr_hurdle": 12,
                    "multiple_hurdle": 1.5,
                    "hurdle_logic": "and",
                    "lp_share": 80,
                    "gp_share": 20,
                },
                {
                    "id": "tier-b",
                    "hurdle_type": "both",
                    "irr_hurdle": 18,
                    "multiple_hurdle": 2.0,
                    "hurdle_logic": "or",
                    "lp_share": 70,
                    "gp_share": 30,
                },
                {"id": "tier-c", "hurdle_type": "none", "lp_share": 50, "gp_share": 50},
            ],
            "management_fees": {
                "acquisition_fee_percent": 1,
                "asset_management_fee_percent": 2,
                "construction_management_fee_percent": 0,
                "disposition_fee_percent": 0.5,
            },
            "clawback_provisions": {
                "gp_clawback_enabled": True,
                "escrow_percent": 10,
                "true_up_frequency": "annual",
            },
        }

    def test_percentages_become_fractions(self, payload):
        configuration = WaterfallConfiguration.from_editor_payload(payload)

        pref = configuration.preferred_return
        assert pref.lp_rate == pytest.approx(0.08)
        assert pref.gp_rate == pytest.approx(0.06)
        assert pref.accrual_type == AccrualTypeEnum.COMPOUNDING
        assert pref.catch_up_percent == pytest.approx(1.0)
        assert pref.catch_up_target_share == pytest.approx(0.20)

        fees = configuration.management_fees
        assert fees.acquisition_fee_percent == pytest.approx(0.01)
        assert fees.disposition_fee_percent == pytest.approx(0.005)

        assert configuration.clawback.enabled
        assert configuration.clawback.escrow_percent == pytest.approx(0.10)
        assert configuration.clawback.true_up_frequency == TrueUpFrequencyEnum.ANNUAL

        # Capital stays in percent
        assert configuration.capital_structure.lp_equity_percent == 90

    def test_tiers_keep_only_fields_for_their_hurdle_type(self, payload):
        tiers = WaterfallConfiguration.from_editor_payload(payload).promote_tiers

        assert [tier.tier_number for tier in tiers] == [1, 2, 3]
        assert tiers[0].irr_hurdle == pytest.approx(0.12)
        assert tiers[0].multiple_hurdle is None
        assert tiers[0].hurdle_logic is None
        assert tiers[1].hurdle_type == HurdleTypeEnum.BOTH
        assert tiers[1].multiple_hurdle == 2.0
        assert tiers[1].hurdle_logic == HurdleLogicEnum.OR
        assert tiers[2].lp_share == pytest.approx(0.50)

    def test_invalid_editor_tier_order(self, payload):
        payload["promote_tiers"].reverse()
        with pytest.raises(ConfigurationError, match="must be the last tier"):
            WaterfallConfiguration.from_editor_payload(payload)
