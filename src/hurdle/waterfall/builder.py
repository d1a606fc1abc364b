# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Incremental waterfall configuration assembly.

The editor assembles a configuration through many small nested updates, most
of which leave it temporarily invalid. WaterfallConfigurationBuilder accepts
those updates as plain values and validates exactly once, in `build()`; no
partially valid configuration ever reaches the engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.primitives import HurdleLogicEnum, HurdleTypeEnum
from .configuration import WaterfallConfiguration

logger = logging.getLogger(__name__)


@dataclass
class WaterfallConfigurationBuilder:
    """
    Fluent builder for WaterfallConfiguration.

    Each method records its section and returns the builder. Tier numbers are
    assigned in the order tiers are added.

    Example:
        ```python
        configuration = (
            WaterfallConfigurationBuilder()
            .structure("european")
            .capital(lp_equity_percent=90, gp_equity_percent=10)
            .preferred_return(lp_rate=0.08)
            .catch_up(target_share=0.20)
            .add_tier(lp_share=0.80, gp_share=0.20, irr_hurdle=0.15)
            .add_tier(lp_share=0.70, gp_share=0.30)
            .build()
        )
        ```
    """

    _sections: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _tiers: List[Dict[str, Any]] = field(default_factory=list, init=False, repr=False)

    def structure(self, structure_type: str) -> "WaterfallConfigurationBuilder":
        self._sections["structure_type"] = structure_type
        return self

    def capital(
        self,
        lp_equity_percent: float,
        gp_equity_percent: float,
        gp_co_invest_required: bool = False,
    ) -> "WaterfallConfigurationBuilder":
        """Set the LP/GP equity split in percentages (0-100)."""
        self._sections["capital_structure"] = {
            "lp_equity_percent": lp_equity_percent,
            "gp_equity_percent": gp_equity_percent,
            "gp_co_invest_required": gp_co_invest_required,
        }
        return self

    def preferred_return(
        self,
        lp_rate: float,
        gp_rate: Optional[float] = None,
        accrual_type: str = "cumulative",
        payment_frequency: str = "at_exit",
        accrues_during_construction: bool = True,
    ) -> "WaterfallConfigurationBuilder":
        """Set preferred return terms; rates are fractions (0.08 = 8%)."""
        terms = self._sections.setdefault("preferred_return", {})
        terms.update(
            enabled=True,
            lp_rate=lp_rate,
            gp_rate=gp_rate,
            accrual_type=accrual_type,
            payment_frequency=payment_frequency,
            accrues_during_construction=accrues_during_construction,
        )
        return self

    def no_preferred_return(self) -> "WaterfallConfigurationBuilder":
        self._sections.setdefault("preferred_return", {})["enabled"] = False
        return self

    def catch_up(
        self, target_share: float = 0.20, percent: float = 1.0
    ) -> "WaterfallConfigurationBuilder":
        """Enable the GP catch-up toward `target_share` of distributed profit."""
        terms = self._sections.setdefault("preferred_return", {})
        terms.update(
            catch_up_enabled=True,
            catch_up_target_share=target_share,
            catch_up_percent=percent,
        )
        return self

    def add_tier(
        self,
        lp_share: float,
        gp_share: float,
        irr_hurdle: Optional[float] = None,
        multiple_hurdle: Optional[float] = None,
        hurdle_logic: Optional[str] = None,
        name: Optional[str] = None,
    ) -> "WaterfallConfigurationBuilder":
        """
        Append a promote tier.

        The hurdle type follows from the thresholds given: none, irr,
        equity_multiple, or both. Tiers with both thresholds default to
        `hurdle_logic="and"`.
        """
        if irr_hurdle is not None and multiple_hurdle is not None:
            hurdle_type = HurdleTypeEnum.BOTH
            hurdle_logic = hurdle_logic or HurdleLogicEnum.AND.value
        elif irr_hurdle is not None:
            hurdle_type = HurdleTypeEnum.IRR
        elif multiple_hurdle is not None:
            hurdle_type = HurdleTypeEnum.EQUITY_MULTIPLE
        else:
            hurdle_type = HurdleTypeEnum.NONE

        self._tiers.append(
            {
                "tier_number": len(self._tiers) + 1,
                "name": name,
                "hurdle_type": hurdle_type.value,
                "hurdle_logic": hurdle_logic,
                "irr_hurdle": irr_hurdle,
                "multiple_hurdle": multiple_hurdle,
                "lp_share": lp_share,
                "gp_share": gp_share,
            }
        )
        return self

    def management_fees(self, **fees: float) -> "WaterfallConfigurationBuilder":
        """Set management fee fractions by field name (e.g. `asset_management_fee_percent=0.02`)."""
        self._sections["management_fees"] = dict(fees)
        return self

    def clawback(
        self, escrow_percent: float = 0.10, true_up_frequency: str = "at_exit"
    ) -> "WaterfallConfigurationBuilder":
        self._sections["clawback"] = {
            "enabled": True,
            "escrow_percent": escrow_percent,
            "true_up_frequency": true_up_frequency,
        }
        return self

    def build(self) -> WaterfallConfiguration:
        """
        Validate and return the configuration.

        Raises:
            ConfigurationError: If any section is invalid
        """
        payload = dict(self._sections)
        payload["promote_tiers"] = [dict(tier) for tier in self._tiers]
        configuration = WaterfallConfiguration.validate_payload(payload)
        logger.debug(
            f"Built {configuration.structure_type.value} waterfall with "
            f"{len(configuration.promote_tiers)} tiers"
        )
        return configuration


__all__ = ["WaterfallConfigurationBuilder"]
