"""Per-deal bonus rules - what a single new client is worth to the rep"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from commission_gateway.domain.exceptions import UnknownRuleSetError
from commission_gateway.domain.models import ClientType, Deal, TrafficSource, ZERO


@dataclass(frozen=True)
class DealBonusRules:
    """
    One revision of the per-deal bonus rules.

    Thresholds are compared against the deposit in deposit currency (USD) while
    the bonus amounts are paid in payout currency (ILS). No conversion happens.

    Evaluation order:
    1. EQ deposits below eq_minimum_deposit earn nothing (CFD has no minimum).
    2. Base tier: large deposits earn large_deposit_base whatever the channel,
       otherwise the channel tier applies.
    3. EQ deposits at or above large_deposit_threshold add large_eq_bonus.

    aff_large_eq_base, when set, replaces the base for AFF + EQ + large deposit
    and that deal skips the large-EQ bonus.
    """

    name: str
    eq_minimum_deposit: Decimal = Decimal("2950")
    large_deposit_threshold: Decimal = Decimal("10000")
    large_deposit_base: Decimal = Decimal("700")
    high_tier_base: Decimal = Decimal("700")
    standard_tier_base: Decimal = Decimal("400")
    large_eq_bonus: Decimal = Decimal("500")
    aff_large_eq_base: Optional[Decimal] = None

    def channel_base(self, source: TrafficSource) -> Decimal:
        if source in (TrafficSource.RFF, TrafficSource.PPC):
            return self.high_tier_base
        if source in (TrafficSource.ORG, TrafficSource.AFF):
            return self.standard_tier_base
        raise ValueError(f"Unhandled traffic source: {source!r}")

    def bonus_for(self, deal: Deal) -> Decimal:
        deposit = deal.initial_deposit
        is_eq = deal.client_type is ClientType.EQ

        if is_eq and deposit < self.eq_minimum_deposit:
            return ZERO

        is_large = deposit >= self.large_deposit_threshold
        if is_eq and is_large and self.aff_large_eq_base is not None and deal.traffic_source is TrafficSource.AFF:
            return self.aff_large_eq_base

        base = self.large_deposit_base if is_large else self.channel_base(deal.traffic_source)
        size_bonus = self.large_eq_bonus if is_eq and is_large else ZERO
        return base + size_bonus


# Earlier revision: large deposits always take the flat 700 base
TIERED_RULES = DealBonusRules(name="tiered")

# Latest revision: AFF brings large EQ deposits at 900 with no size bonus
TIERED_AFF_OVERRIDE_RULES = DealBonusRules(name="tiered-aff-override", aff_large_eq_base=Decimal("900"))

CANONICAL_RULES = TIERED_AFF_OVERRIDE_RULES

RULE_SETS: Dict[str, DealBonusRules] = {
    rules.name: rules for rules in (TIERED_RULES, TIERED_AFF_OVERRIDE_RULES)
}


def get_rule_set(name: str) -> DealBonusRules:
    """Look up a registered rule revision by name"""
    try:
        return RULE_SETS[name]
    except KeyError:
        known = ", ".join(sorted(RULE_SETS))
        raise UnknownRuleSetError(f"Unknown deal bonus rule set {name!r} (known: {known})") from None


def compute_deal_bonus(deal: Deal, rules: DealBonusRules = CANONICAL_RULES) -> Decimal:
    """
    Bonus one deal contributes, in payout currency.

    The new-client filter is applied by the aggregator, not here: this answers
    what the deal is worth if it counts.

    Examples (canonical rules):
        EQ, $5,000, RFF   -> 700
        EQ, $12,000, ORG  -> 700 + 500 = 1200
        EQ, $12,000, AFF  -> 900
        EQ, $2,000, AFF   -> 0 (below EQ minimum)
        CFD, $1,000, PPC  -> 700
    """
    return rules.bonus_for(deal)
