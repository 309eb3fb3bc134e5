"""Compensation engine - turns deals, targets and KPIs into a salary breakdown"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from commission_gateway.domain.deal_bonus import CANONICAL_RULES, DealBonusRules, compute_deal_bonus
from commission_gateway.domain.models import (
    ZERO,
    ClientType,
    CompensationBreakdown,
    Deal,
    KpiRecord,
    PeriodAchievement,
    PeriodContext,
    PeriodTarget,
    RepresentativeProfile,
    TrackProgress,
)
from commission_gateway.domain.periods import PeriodKey, PeriodStatus, deals_in_period, period_status
from commission_gateway.domain.validation import validate_inputs
from commission_gateway.utils.date_utils import DEFAULT_REST_DAYS, count_workdays

HUNDRED = Decimal("100")

# (minimum achievement percentage, bonus), highest tier first
Tier = Tuple[Decimal, Decimal]


@dataclass(frozen=True)
class QuotaTiers:
    general: Tuple[Tier, ...]
    cfd: Tuple[Tier, ...]


MONTHLY_TIERS = QuotaTiers(
    general=((Decimal("100"), Decimal("2000")), (Decimal("90"), Decimal("1000"))),
    cfd=((Decimal("100"), Decimal("1000")), (Decimal("90"), Decimal("500"))),
)

QUARTERLY_TIERS = QuotaTiers(
    general=((Decimal("100"), Decimal("6000")), (Decimal("90"), Decimal("3000"))),
    cfd=((Decimal("100"), Decimal("3000")), (Decimal("90"), Decimal("1500"))),
)


@dataclass(frozen=True)
class CompensationPlan:
    """
    Every constant of the pay plan in one place.

    The time-boxed monthly bonus and the quarterly program are gated on the
    reference date (today), not on the period being evaluated: recomputing an
    old month after the cutoff no longer pays the time-boxed bonus.
    """

    deal_rules: DealBonusRules = CANONICAL_RULES
    monthly_tiers: QuotaTiers = MONTHLY_TIERS
    quarterly_tiers: QuotaTiers = QUARTERLY_TIERS
    time_boxed_threshold: Decimal = Decimal("70")
    time_boxed_bonus: Decimal = Decimal("2000")
    # Exclusive: the incentive ends as the cutoff day starts, so Sep 29 is the last paying day
    time_boxed_cutoff: Optional[date] = date(2025, 9, 30)
    quarterly_program_start: Optional[date] = date(2025, 7, 1)
    kpi_flag_bonus: Decimal = Decimal("600")
    kpi_excellence_bonus: Decimal = Decimal("1600")  # paid in proportion to the 0-100 score
    rest_days: FrozenSet[int] = DEFAULT_REST_DAYS

    def time_boxed_active(self, today: date) -> bool:
        return self.time_boxed_cutoff is not None and today < self.time_boxed_cutoff

    def quarterly_active(self, today: date) -> bool:
        return self.quarterly_program_start is None or today >= self.quarterly_program_start


DEFAULT_PLAN = CompensationPlan()


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def achievement_percentage(count: int, target: Optional[int]) -> Optional[Decimal]:
    """
    count / target as a percentage; None when the track has no target.

    A target of 0 is met by any client at all: 100% once count is positive,
    0% while it is still 0.
    """
    if target is None:
        return None
    if target <= 0:
        return HUNDRED if count > 0 else ZERO
    return Decimal(count) * HUNDRED / Decimal(target)


def tier_bonus(percentage: Optional[Decimal], tiers: Iterable[Tier]) -> Decimal:
    """Bonus of the highest tier reached, 0 below every tier"""
    if percentage is None:
        return ZERO
    for minimum, bonus in sorted(tiers, key=lambda tier: tier[0], reverse=True):
        if percentage >= minimum:
            return bonus
    return ZERO


def project_count(actual: int, workdays_elapsed: int, workdays_remaining: int) -> int:
    """
    Forecast the period-end count from the pace so far.

    daily rate = actual / workdays elapsed (0 before the first workday),
    projected = actual + daily rate * workdays remaining, rounded half up.
    """
    if workdays_elapsed <= 0:
        return actual
    daily_rate = Decimal(actual) / Decimal(workdays_elapsed)
    return round_half_up(Decimal(actual) + daily_rate * max(workdays_remaining, 0))


def compute_kpi_bonus(kpi: Optional[KpiRecord], plan: CompensationPlan = DEFAULT_PLAN) -> Decimal:
    if kpi is None:
        return ZERO
    flags_met = sum(1 for met in kpi.flags.values() if met)
    excellence = round_half_up(plan.kpi_excellence_bonus * kpi.work_excellence / HUNDRED)
    return plan.kpi_flag_bonus * flags_met + Decimal(excellence)


def _track(
    actual: int,
    projected: int,
    target: Optional[int],
    tiers: Tuple[Tier, ...],
    bonuses_enabled: bool,
) -> TrackProgress:
    percentage = achievement_percentage(actual, target)
    projected_percentage = achievement_percentage(projected, target)
    return TrackProgress(
        actual_count=actual,
        target_count=target,
        percentage=percentage,
        bonus=tier_bonus(percentage, tiers) if bonuses_enabled else ZERO,
        projected_count=projected,
        projected_percentage=projected_percentage,
        projected_bonus=tier_bonus(projected_percentage, tiers) if bonuses_enabled else ZERO,
    )


def evaluate_period(
    period: PeriodKey,
    target: PeriodTarget,
    new_client_deals: List[Deal],
    tiers: QuotaTiers,
    today: date,
    plan: CompensationPlan = DEFAULT_PLAN,
    time_boxed: bool = False,
    bonuses_enabled: bool = True,
) -> PeriodAchievement:
    """
    Quota achievement for one period.

    new_client_deals must already be restricted to new clients inside period.
    Projection only extrapolates the period in progress; closed and upcoming
    periods project exactly their realized figures.
    """
    start, end = period.bounds
    status = period_status(period, today)

    if target.workdays_in_period is not None:
        workdays_total = target.workdays_in_period
    else:
        workdays_total = count_workdays(start, end, plan.rest_days)

    if status is PeriodStatus.CURRENT:
        workdays_elapsed = count_workdays(start, today, plan.rest_days)
    elif status is PeriodStatus.CLOSED:
        workdays_elapsed = workdays_total
    else:
        workdays_elapsed = 0
    workdays_remaining = max(workdays_total - workdays_elapsed, 0)

    general_count = len(new_client_deals)
    cfd_count = sum(1 for deal in new_client_deals if deal.client_type is ClientType.CFD)

    if status is PeriodStatus.CURRENT:
        general_projected = project_count(general_count, workdays_elapsed, workdays_remaining)
        cfd_projected = project_count(cfd_count, workdays_elapsed, workdays_remaining)
    else:
        general_projected, cfd_projected = general_count, cfd_count

    general = _track(general_count, general_projected, target.general_target_amount, tiers.general, bonuses_enabled)
    cfd = _track(cfd_count, cfd_projected, target.cfd_target_amount, tiers.cfd, bonuses_enabled)

    time_boxed_bonus = projected_time_boxed_bonus = ZERO
    if time_boxed and bonuses_enabled and plan.time_boxed_active(today):
        if general.percentage is not None and general.percentage >= plan.time_boxed_threshold:
            time_boxed_bonus = plan.time_boxed_bonus
        if general.projected_percentage is not None and general.projected_percentage >= plan.time_boxed_threshold:
            projected_time_boxed_bonus = plan.time_boxed_bonus

    return PeriodAchievement(
        period=period,
        status=status,
        workdays_total=workdays_total,
        workdays_elapsed=workdays_elapsed,
        general=general,
        cfd=cfd,
        time_boxed_bonus=time_boxed_bonus,
        projected_time_boxed_bonus=projected_time_boxed_bonus,
    )


def compute_breakdown(
    profile: RepresentativeProfile,
    deals: Iterable[Deal],
    monthly_target: Optional[PeriodTarget] = None,
    quarterly_target: Optional[PeriodTarget] = None,
    kpi: Optional[KpiRecord] = None,
    *,
    context: PeriodContext,
    plan: CompensationPlan = DEFAULT_PLAN,
) -> CompensationBreakdown:
    """
    Main entry point: the full salary breakdown of one rep for one month.

    Steps:
    1. Keep new clients only; deal bonuses come from the evaluated month,
       quarterly counts from the month's quarter.
    2. Sum per-deal bonuses into EQ and CFD subtotals.
    3. Deduction comes off the EQ subtotal only, never below zero.
    4. Monthly quota bonuses (general, CFD, time-boxed) if a monthly target exists.
    5. Quarterly quota bonuses if a quarterly target exists and the program has started.
    6. KPI bonus.
    7. Projected figures for the period in progress.

    Missing targets mean no quota bonus for that period, not an error.

    Raises:
        InvalidInputError: If any input record is ill-formed
    """
    deals = list(deals)
    validate_inputs(profile, deals, monthly_target, quarterly_target, kpi, context)

    new_clients = [deal for deal in deals if deal.is_new_client]
    month_deals = deals_in_period(new_clients, context.monthly_period)

    eq_bonus_raw = cfd_bonus = ZERO
    eq_count = cfd_count = 0
    deal_bonuses: Dict[str, Decimal] = {}
    for position, deal in enumerate(month_deals):
        bonus = compute_deal_bonus(deal, plan.deal_rules)
        deal_bonuses[deal.deal_id or f"#{position}"] = bonus
        if deal.client_type is ClientType.EQ:
            eq_bonus_raw += bonus
            eq_count += 1
        else:
            cfd_bonus += bonus
            cfd_count += 1

    eq_bonus = max(ZERO, eq_bonus_raw - profile.deduction_amount)
    deduction_applied = eq_bonus_raw - eq_bonus

    monthly = None
    if monthly_target is not None:
        monthly = evaluate_period(
            context.monthly_period,
            monthly_target,
            month_deals,
            plan.monthly_tiers,
            context.today,
            plan,
            time_boxed=True,
        )

    quarterly = None
    if quarterly_target is not None:
        quarterly = evaluate_period(
            context.quarterly_period,
            quarterly_target,
            deals_in_period(new_clients, context.quarterly_period),
            plan.quarterly_tiers,
            context.today,
            plan,
            bonuses_enabled=plan.quarterly_active(context.today),
        )

    kpi_bonus = compute_kpi_bonus(kpi, plan)

    fixed = profile.base_salary + eq_bonus + cfd_bonus + kpi_bonus
    realized_targets = sum((p.total_bonus for p in (monthly, quarterly) if p is not None), ZERO)
    projected_targets = sum((p.projected_total_bonus for p in (monthly, quarterly) if p is not None), ZERO)

    return CompensationBreakdown(
        context=context,
        base_salary=profile.base_salary,
        eq_bonus_raw=eq_bonus_raw,
        deduction_applied=deduction_applied,
        eq_bonus=eq_bonus,
        cfd_bonus=cfd_bonus,
        eq_new_clients=eq_count,
        cfd_new_clients=cfd_count,
        kpi_bonus=kpi_bonus,
        total=fixed + realized_targets,
        projected_total=fixed + projected_targets,
        monthly=monthly,
        quarterly=quarterly,
        deal_bonuses=deal_bonuses,
    )
