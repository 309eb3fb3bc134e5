"""Unit tests for the compensation aggregator"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from commission_gateway.domain.compensation import (
    DEFAULT_PLAN,
    MONTHLY_TIERS,
    QUARTERLY_TIERS,
    CompensationPlan,
    achievement_percentage,
    compute_breakdown,
    compute_kpi_bonus,
    project_count,
    tier_bonus,
)
from commission_gateway.domain.deal_bonus import TIERED_RULES
from commission_gateway.domain.exceptions import InvalidTargetError
from commission_gateway.domain.models import KpiRecord, PeriodContext, RepresentativeProfile
from commission_gateway.domain.periods import PeriodStatus


def _deals_on(make_deal, count, client_type="EQ", created_at=datetime(2025, 9, 10, 12, 0)):
    return [make_deal(client_type, "RFF", 5000, created_at=created_at) for _ in range(count)]


# --- deal subtotals and deduction ---------------------------------------------


def test_only_new_clients_earn_bonus(profile, september, make_deal):
    deals = [
        make_deal("EQ", "RFF", 5000),
        make_deal("EQ", "RFF", 5000, is_new_client=False),
        make_deal("CFD", "PPC", 1000, is_new_client=False),
    ]
    breakdown = compute_breakdown(profile, deals, context=september)

    assert breakdown.eq_bonus == Decimal("700")
    assert breakdown.cfd_bonus == Decimal("0")
    assert breakdown.new_client_count == 1


def test_subtotals_partitioned_by_client_type(profile, september, make_deal):
    deals = [
        make_deal("EQ", "ORG", 12000),  # 1200
        make_deal("EQ", "AFF", 2000),  # gated
        make_deal("CFD", "PPC", 1000),  # 700
        make_deal("CFD", "AFF", 3000),  # 400
    ]
    breakdown = compute_breakdown(profile, deals, context=september)

    assert breakdown.eq_bonus_raw == Decimal("1200")
    assert breakdown.cfd_bonus == Decimal("1100")
    assert breakdown.eq_new_clients == 2
    assert breakdown.cfd_new_clients == 2
    assert breakdown.total == Decimal("8000") + Decimal("2300")


def test_deduction_comes_off_eq_subtotal(september, make_deal):
    """Deduction 1000 against a 1200 EQ subtotal leaves 200"""
    profile = RepresentativeProfile(base_salary=Decimal("8000"), deduction_amount=Decimal("1000"))
    deals = [make_deal("EQ", "ORG", 12000), make_deal("CFD", "RFF", 5000)]

    breakdown = compute_breakdown(profile, deals, context=september)

    assert breakdown.eq_bonus_raw == Decimal("1200")
    assert breakdown.eq_bonus == Decimal("200")
    assert breakdown.deduction_applied == Decimal("1000")
    assert breakdown.cfd_bonus == Decimal("700")
    assert breakdown.total == Decimal("8000") + Decimal("200") + Decimal("700")


def test_deduction_never_below_zero_nor_touches_cfd(september, make_deal):
    profile = RepresentativeProfile(base_salary=Decimal("8000"), deduction_amount=Decimal("5000"))
    deals = [make_deal("EQ", "RFF", 5000), make_deal("CFD", "RFF", 5000)]

    breakdown = compute_breakdown(profile, deals, context=september)

    assert breakdown.eq_bonus == Decimal("0")
    assert breakdown.deduction_applied == Decimal("700")
    assert breakdown.cfd_bonus == Decimal("700")
    assert breakdown.base_salary == Decimal("8000")


def test_deal_bonuses_only_from_evaluated_month(profile, september, make_deal):
    deals = [
        make_deal("EQ", "RFF", 5000, deal_id="sep"),
        make_deal("EQ", "RFF", 5000, created_at=datetime(2025, 8, 20, 9, 0), deal_id="aug"),
    ]
    breakdown = compute_breakdown(profile, deals, context=september)

    assert breakdown.eq_bonus == Decimal("700")
    assert breakdown.deal_bonuses == {"sep": Decimal("700")}


def test_plan_selects_rule_revision(profile, september, make_deal):
    deals = [make_deal("EQ", "AFF", 15000)]

    canonical = compute_breakdown(profile, deals, context=september)
    earlier = compute_breakdown(profile, deals, context=september, plan=CompensationPlan(deal_rules=TIERED_RULES))

    assert canonical.eq_bonus == Decimal("900")
    assert earlier.eq_bonus == Decimal("1200")


def test_inputs_not_mutated(profile, september, make_deal):
    deals = [make_deal("EQ", "RFF", 5000), make_deal("CFD", "ORG", 100, is_new_client=False)]
    snapshot = list(deals)

    compute_breakdown(profile, deals, context=september)

    assert deals == snapshot


def test_accepts_any_iterable_of_deals(profile, september, make_deal):
    breakdown = compute_breakdown(profile, (d for d in [make_deal()]), context=september)
    assert breakdown.eq_bonus == Decimal("700")


# --- monthly quota bonuses ------------------------------------------------------


def test_no_targets_means_no_quota_bonus(profile, september, make_deal):
    breakdown = compute_breakdown(profile, _deals_on(make_deal, 20), context=september)

    assert breakdown.monthly is None
    assert breakdown.quarterly is None
    assert breakdown.monthly_general_bonus == Decimal("0")
    assert breakdown.target_bonus_total == Decimal("0")


def test_monthly_target_hit_with_time_boxed_bonus(profile, september, make_deal, monthly_target):
    """10 of 10 before the cutoff: 2000 general tier + 2000 time-boxed"""
    deals = _deals_on(make_deal, 10)
    breakdown = compute_breakdown(profile, deals, monthly_target(general=10), context=september)

    assert breakdown.monthly_general_bonus == Decimal("2000")
    assert breakdown.monthly_time_boxed_bonus == Decimal("2000")
    assert breakdown.monthly_cfd_bonus == Decimal("0")
    assert breakdown.monthly.total_bonus == Decimal("4000")
    assert breakdown.total == Decimal("8000") + Decimal("7000") + Decimal("4000")


def test_monthly_ninety_percent_tier(profile, september, make_deal, monthly_target):
    deals = _deals_on(make_deal, 9)
    breakdown = compute_breakdown(profile, deals, monthly_target(general=10), context=september)

    assert breakdown.monthly.general.percentage == Decimal("90")
    assert breakdown.monthly_general_bonus == Decimal("1000")
    assert breakdown.monthly_time_boxed_bonus == Decimal("2000")


def test_monthly_cfd_track_independent(profile, september, make_deal, monthly_target):
    deals = _deals_on(make_deal, 2, "EQ") + _deals_on(make_deal, 4, "CFD")
    breakdown = compute_breakdown(profile, deals, monthly_target(general=20, cfd=4), context=september)

    assert breakdown.monthly.general.percentage == Decimal("30")
    assert breakdown.monthly_general_bonus == Decimal("0")
    assert breakdown.monthly_time_boxed_bonus == Decimal("0")
    assert breakdown.monthly.cfd.actual_count == 4
    assert breakdown.monthly_cfd_bonus == Decimal("1000")


def test_monthly_cfd_ninety_percent(profile, september, make_deal, monthly_target):
    deals = _deals_on(make_deal, 9, "CFD")
    breakdown = compute_breakdown(profile, deals, monthly_target(general=100, cfd=10), context=september)
    assert breakdown.monthly_cfd_bonus == Decimal("500")


def test_cfd_track_skipped_without_cfd_target(profile, september, make_deal, monthly_target):
    deals = _deals_on(make_deal, 3, "CFD")
    breakdown = compute_breakdown(profile, deals, monthly_target(general=3, cfd=None), context=september)

    assert breakdown.monthly.cfd.percentage is None
    assert breakdown.monthly_cfd_bonus == Decimal("0")
    assert breakdown.monthly.cfd.display_percentage == Decimal("0")


def test_zero_cfd_target_met_by_any_cfd_client(profile, september, make_deal, monthly_target):
    deals = _deals_on(make_deal, 3, "CFD")
    breakdown = compute_breakdown(profile, deals, monthly_target(general=3, cfd=0), context=september)

    assert breakdown.monthly.cfd.percentage == Decimal("100")
    assert breakdown.monthly_cfd_bonus == Decimal("1000")


def test_zero_cfd_target_without_cfd_clients(profile, september, make_deal, monthly_target):
    deals = _deals_on(make_deal, 3, "EQ")
    breakdown = compute_breakdown(profile, deals, monthly_target(general=3, cfd=0), context=september)

    assert breakdown.monthly.cfd.percentage == Decimal("0")
    assert breakdown.monthly_cfd_bonus == Decimal("0")


def test_zero_general_target_pays_top_tier(profile, september, make_deal, monthly_target):
    """One client against a target of 0: 2000 general tier + 2000 time-boxed"""
    breakdown = compute_breakdown(profile, _deals_on(make_deal, 1), monthly_target(general=0), context=september)

    assert breakdown.monthly_general_bonus == Decimal("2000")
    assert breakdown.monthly_time_boxed_bonus == Decimal("2000")
    assert breakdown.total == Decimal("8000") + Decimal("700") + Decimal("4000")


def test_display_percentage_capped(profile, september, make_deal, monthly_target):
    deals = _deals_on(make_deal, 15)
    breakdown = compute_breakdown(profile, deals, monthly_target(general=10), context=september)

    assert breakdown.monthly.general.percentage == Decimal("150")
    assert breakdown.monthly.general.display_percentage == Decimal("100")


def test_time_boxed_bonus_gated_on_today_not_period(profile, make_deal, monthly_target):
    """August at 80%: paid when computed before the cutoff, not after"""
    deals = _deals_on(make_deal, 8, created_at=datetime(2025, 8, 12, 10, 0))
    target = monthly_target(general=10, month=8)

    before = compute_breakdown(profile, deals, target, context=PeriodContext(date(2025, 9, 2), 8, 2025))
    after = compute_breakdown(profile, deals, target, context=PeriodContext(date(2025, 10, 5), 8, 2025))

    assert before.monthly_time_boxed_bonus == Decimal("2000")
    assert after.monthly_time_boxed_bonus == Decimal("0")
    assert after.monthly_general_bonus == Decimal("0")


def test_time_boxed_bonus_ends_as_cutoff_day_starts(profile, make_deal, monthly_target):
    deals = _deals_on(make_deal, 7)
    target = monthly_target(general=10)

    last_day = compute_breakdown(profile, deals, target, context=PeriodContext(date(2025, 9, 29), 9, 2025))
    cutoff_day = compute_breakdown(profile, deals, target, context=PeriodContext(date(2025, 9, 30), 9, 2025))

    assert last_day.monthly_time_boxed_bonus == Decimal("2000")
    assert cutoff_day.monthly_time_boxed_bonus == Decimal("0")


def test_time_boxed_bonus_below_seventy_percent(profile, september, make_deal, monthly_target):
    deals = _deals_on(make_deal, 6)
    breakdown = compute_breakdown(profile, deals, monthly_target(general=10), context=september)
    assert breakdown.monthly_time_boxed_bonus == Decimal("0")


# --- quarterly quota bonuses ----------------------------------------------------


def test_quarterly_bonuses_count_whole_quarter(profile, september, make_deal, quarterly_target):
    deals = (
        _deals_on(make_deal, 20, "EQ", datetime(2025, 7, 14, 10, 0))
        + _deals_on(make_deal, 7, "CFD", datetime(2025, 8, 4, 10, 0))
        + _deals_on(make_deal, 3, "CFD")
    )
    breakdown = compute_breakdown(profile, deals, None, quarterly_target(general=30, cfd=10), context=september)

    assert breakdown.quarterly.general.actual_count == 30
    assert breakdown.quarterly.cfd.actual_count == 10
    assert breakdown.quarterly_general_bonus == Decimal("6000")
    assert breakdown.quarterly_cfd_bonus == Decimal("3000")
    # Only September deals pay per-deal bonuses
    assert breakdown.cfd_bonus == Decimal("2100")
    assert breakdown.eq_bonus == Decimal("0")
    assert breakdown.total == Decimal("8000") + Decimal("2100") + Decimal("9000")


def test_quarterly_ninety_percent_tiers(profile, september, make_deal, quarterly_target):
    deals = _deals_on(make_deal, 18, "EQ", datetime(2025, 7, 14, 10, 0)) + _deals_on(make_deal, 9, "CFD")
    breakdown = compute_breakdown(profile, deals, None, quarterly_target(general=30, cfd=10), context=september)

    assert breakdown.quarterly_general_bonus == Decimal("3000")
    assert breakdown.quarterly_cfd_bonus == Decimal("1500")


def test_quarterly_bonus_zero_before_program_start(profile, make_deal, quarterly_target):
    june = PeriodContext(date(2025, 6, 20), 6, 2025)
    deals = _deals_on(make_deal, 5, "CFD", datetime(2025, 6, 2, 10, 0))
    breakdown = compute_breakdown(profile, deals, None, quarterly_target(general=1, cfd=1, quarter=2), context=june)

    assert breakdown.quarterly.general.percentage == Decimal("500")
    assert breakdown.quarterly_general_bonus == Decimal("0")
    assert breakdown.quarterly_cfd_bonus == Decimal("0")
    assert breakdown.quarterly.projected_total_bonus == Decimal("0")


# --- KPI ------------------------------------------------------------------------


def test_kpi_bonus_flags_and_excellence():
    kpi = KpiRecord(
        month=9,
        year=2025,
        avg_call_time_met=True,
        avg_calls_count_met=True,
        ppc_conversion_met=True,
        aff_conversion_met=True,
        work_excellence=Decimal("50"),
    )
    assert compute_kpi_bonus(kpi) == Decimal("3200")


def test_kpi_bonus_partial_flags():
    kpi = KpiRecord(month=9, year=2025, ppc_conversion_met=True, work_excellence=Decimal("33"))
    assert compute_kpi_bonus(kpi) == Decimal("600") + Decimal("528")


def test_kpi_excellence_rounds_half_up():
    kpi = KpiRecord(month=9, year=2025, work_excellence=Decimal("0.03125"))  # 0.5 ILS
    assert compute_kpi_bonus(kpi) == Decimal("1")


def test_no_kpi_record():
    assert compute_kpi_bonus(None) == Decimal("0")


def test_kpi_in_total(profile, september):
    kpi = KpiRecord(month=9, year=2025, avg_call_time_met=True, work_excellence=Decimal("100"))
    breakdown = compute_breakdown(profile, [], kpi=kpi, context=september)

    assert breakdown.kpi_bonus == Decimal("2200")
    assert breakdown.total == Decimal("10200")


# --- projection -----------------------------------------------------------------


def test_projection_for_current_month(profile, september, make_deal, monthly_target):
    """5 clients in 11 of 22 workdays projects to 10; 2 CFD projects to 4"""
    deals = _deals_on(make_deal, 3, "EQ") + _deals_on(make_deal, 2, "CFD")
    breakdown = compute_breakdown(profile, deals, monthly_target(general=10, cfd=4), context=september)
    monthly = breakdown.monthly

    assert monthly.status is PeriodStatus.CURRENT
    assert monthly.workdays_total == 22
    assert monthly.workdays_elapsed == 11
    assert monthly.workdays_remaining == 11

    assert monthly.general.bonus == Decimal("0")
    assert monthly.general.projected_count == 10
    assert monthly.general.projected_bonus == Decimal("2000")
    assert monthly.cfd.projected_count == 4
    assert monthly.cfd.projected_bonus == Decimal("1000")
    assert monthly.time_boxed_bonus == Decimal("0")
    assert monthly.projected_time_boxed_bonus == Decimal("2000")

    assert breakdown.total == Decimal("11500")
    assert breakdown.projected_total == Decimal("16500")


def test_projection_for_current_quarter(profile, september, make_deal, quarterly_target):
    """
    Q3 2025 has 66 workdays (23 + 21 + 22); 55 have elapsed by September 15.

    30 clients in 55 workdays projects to 36 of 40 (90%), 5 CFD projects to 6 of 6.
    """
    deals = (
        _deals_on(make_deal, 20, "EQ", datetime(2025, 7, 14, 10, 0))
        + _deals_on(make_deal, 5, "CFD", datetime(2025, 8, 4, 10, 0))
        + _deals_on(make_deal, 5, "EQ")
    )
    breakdown = compute_breakdown(profile, deals, None, quarterly_target(general=40, cfd=6), context=september)
    quarterly = breakdown.quarterly

    assert quarterly.status is PeriodStatus.CURRENT
    assert quarterly.workdays_total == 66
    assert quarterly.workdays_elapsed == 55
    assert quarterly.workdays_remaining == 11

    assert quarterly.general.actual_count == 30
    assert quarterly.general.bonus == Decimal("0")
    assert quarterly.general.projected_count == 36
    assert quarterly.general.projected_percentage == Decimal("90")
    assert quarterly.general.projected_bonus == Decimal("3000")

    assert quarterly.cfd.actual_count == 5
    assert quarterly.cfd.bonus == Decimal("0")
    assert quarterly.cfd.projected_count == 6
    assert quarterly.cfd.projected_bonus == Decimal("3000")
    assert quarterly.projected_time_boxed_bonus == Decimal("0")

    # Only the five September EQ deals pay per-deal bonuses
    assert breakdown.total == Decimal("8000") + Decimal("3500")
    assert breakdown.projected_total == Decimal("8000") + Decimal("3500") + Decimal("6000")


def test_projection_uses_workday_override(profile, september, make_deal, monthly_target):
    """20 workdays configured, 11 elapsed: 5 + 5/11 * 9 rounds to 9"""
    deals = _deals_on(make_deal, 5)
    breakdown = compute_breakdown(profile, deals, monthly_target(general=10, workdays=20), context=september)

    assert breakdown.monthly.workdays_total == 20
    assert breakdown.monthly.general.projected_count == 9
    assert breakdown.monthly.general.projected_bonus == Decimal("1000")


def test_closed_period_projection_equals_realized(profile, make_deal, monthly_target, quarterly_target):
    march = PeriodContext(date(2025, 8, 10), 3, 2025)
    deals = _deals_on(make_deal, 6, "EQ", datetime(2025, 3, 3, 10, 0)) + _deals_on(
        make_deal, 4, "CFD", datetime(2025, 3, 20, 10, 0)
    )
    breakdown = compute_breakdown(
        profile,
        deals,
        monthly_target(general=12, cfd=5, month=3),
        quarterly_target(general=10, cfd=4, quarter=1),
        context=march,
    )

    for achievement in (breakdown.monthly, breakdown.quarterly):
        assert achievement.status is PeriodStatus.CLOSED
        assert achievement.general.projected_count == achievement.general.actual_count
        assert achievement.cfd.projected_count == achievement.cfd.actual_count
        assert achievement.projected_total_bonus == achievement.total_bonus
    assert breakdown.projected_total == breakdown.total
    assert breakdown.quarterly_general_bonus == Decimal("6000")


def test_upcoming_period_has_no_extrapolation(profile, make_deal, monthly_target):
    october = PeriodContext(date(2025, 9, 15), 10, 2025)
    deals = _deals_on(make_deal, 2, created_at=datetime(2025, 10, 1, 9, 0))
    breakdown = compute_breakdown(profile, deals, monthly_target(general=10, month=10), context=october)

    assert breakdown.monthly.status is PeriodStatus.UPCOMING
    assert breakdown.monthly.workdays_elapsed == 0
    assert breakdown.monthly.general.projected_count == 2


def test_project_count_before_first_workday():
    assert project_count(3, 0, 22) == 3


def test_project_count_rounds_half_up():
    # 1 + 1/2 * 1 = 1.5
    assert project_count(1, 2, 1) == 2


# --- helpers --------------------------------------------------------------------


def test_achievement_percentage():
    assert achievement_percentage(9, 10) == Decimal("90")
    assert achievement_percentage(5, None) is None
    assert achievement_percentage(5, 0) == Decimal("100")
    assert achievement_percentage(0, 0) == Decimal("0")


@pytest.mark.parametrize("tiers", [MONTHLY_TIERS.general, MONTHLY_TIERS.cfd, QUARTERLY_TIERS.general, QUARTERLY_TIERS.cfd])
def test_tier_bonus_monotonic(tiers):
    percentages = [Decimal(p) for p in ("0", "50", "89.99", "90", "95", "99.99", "100", "150")]
    bonuses = [tier_bonus(p, tiers) for p in percentages]

    assert bonuses == sorted(bonuses)
    assert bonuses[0] == Decimal("0")
    assert tier_bonus(Decimal("100"), tiers) >= tier_bonus(Decimal("90"), tiers) > 0


def test_tier_amounts():
    assert tier_bonus(Decimal("100"), MONTHLY_TIERS.general) == Decimal("2000")
    assert tier_bonus(Decimal("90"), MONTHLY_TIERS.cfd) == Decimal("500")
    assert tier_bonus(Decimal("100"), QUARTERLY_TIERS.general) == Decimal("6000")
    assert tier_bonus(Decimal("90"), QUARTERLY_TIERS.cfd) == Decimal("1500")
    assert tier_bonus(None, QUARTERLY_TIERS.cfd) == Decimal("0")


def test_plan_gates():
    assert DEFAULT_PLAN.time_boxed_active(date(2025, 9, 29))
    assert not DEFAULT_PLAN.time_boxed_active(date(2025, 9, 30))
    assert not DEFAULT_PLAN.quarterly_active(date(2025, 6, 30))
    assert DEFAULT_PLAN.quarterly_active(date(2025, 7, 1))


def test_target_for_another_month_rejected(profile, september, monthly_target):
    with pytest.raises(InvalidTargetError) as exc_info:
        compute_breakdown(profile, [], monthly_target(month=8), context=september)
    assert exc_info.value.field == "period"
