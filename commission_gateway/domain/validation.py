"""Input contract checks run before any compensation is computed"""

from datetime import MAXYEAR, MINYEAR, date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from commission_gateway.domain.exceptions import (
    InvalidContextError,
    InvalidDealError,
    InvalidKpiError,
    InvalidProfileError,
    InvalidTargetError,
)
from commission_gateway.domain.models import (
    ClientType,
    Deal,
    KpiRecord,
    PeriodContext,
    PeriodTarget,
    RepresentativeProfile,
    TrafficSource,
)
from commission_gateway.domain.periods import PeriodKey


def _is_amount(value) -> bool:
    return isinstance(value, Decimal) and value.is_finite() and value >= 0


def validate_deal(deal: Deal) -> None:
    ref = deal.deal_id
    if not isinstance(deal.client_type, ClientType):
        raise InvalidDealError("client_type", f"must be a ClientType, got {deal.client_type!r}", ref)
    if not isinstance(deal.traffic_source, TrafficSource):
        raise InvalidDealError("traffic_source", f"must be a TrafficSource, got {deal.traffic_source!r}", ref)
    if not _is_amount(deal.initial_deposit):
        raise InvalidDealError("initial_deposit", f"must be a non-negative amount, got {deal.initial_deposit!r}", ref)
    if not isinstance(deal.is_new_client, bool):
        raise InvalidDealError("is_new_client", f"must be a boolean, got {deal.is_new_client!r}", ref)
    if not isinstance(deal.created_at, datetime):
        raise InvalidDealError("created_at", f"must be a datetime, got {deal.created_at!r}", ref)


def validate_profile(profile: RepresentativeProfile) -> None:
    ref = profile.rep_id
    if not _is_amount(profile.base_salary):
        raise InvalidProfileError("base_salary", f"must be a non-negative amount, got {profile.base_salary!r}", ref)
    if not _is_amount(profile.deduction_amount):
        raise InvalidProfileError(
            "deduction_amount", f"must be a non-negative amount, got {profile.deduction_amount!r}", ref
        )


def validate_target(target: PeriodTarget, expected: Optional[PeriodKey] = None) -> None:
    ref = target.target_id
    if expected is not None and target.period != expected:
        raise InvalidTargetError(
            "period", f"is {target.period.label()} but {expected.label()} is being evaluated", ref
        )
    if isinstance(target.general_target_amount, bool) or not isinstance(target.general_target_amount, int):
        raise InvalidTargetError("general_target_amount", "must be a whole number", ref)
    if target.general_target_amount < 0:
        raise InvalidTargetError(
            "general_target_amount", f"must not be negative, got {target.general_target_amount}", ref
        )
    if target.cfd_target_amount is not None and (
        isinstance(target.cfd_target_amount, bool)
        or not isinstance(target.cfd_target_amount, int)
        or target.cfd_target_amount < 0
    ):
        raise InvalidTargetError(
            "cfd_target_amount", f"must be a non-negative whole number, got {target.cfd_target_amount!r}", ref
        )
    if target.workdays_in_period is not None and (
        isinstance(target.workdays_in_period, bool)
        or not isinstance(target.workdays_in_period, int)
        or target.workdays_in_period < 0
    ):
        raise InvalidTargetError(
            "workdays_in_period", f"must be a non-negative whole number, got {target.workdays_in_period!r}", ref
        )


def validate_kpi(kpi: KpiRecord, context: Optional[PeriodContext] = None) -> None:
    if context is not None and (kpi.month, kpi.year) != (context.month, context.year):
        raise InvalidKpiError(
            "month", f"is {kpi.year}-{kpi.month:02d} but {context.year}-{context.month:02d} is being evaluated"
        )
    for name, value in kpi.flags.items():
        if not isinstance(value, bool):
            raise InvalidKpiError(name, f"must be a boolean, got {value!r}")
    score = kpi.work_excellence
    if not _is_amount(score) or score > 100:
        raise InvalidKpiError("work_excellence", f"must be between 0 and 100, got {score!r}")


def _is_whole_in(value, low: int, high: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and low <= value <= high


def validate_context(context: PeriodContext) -> None:
    if not isinstance(context.today, date):
        raise InvalidContextError("today", f"must be a date, got {context.today!r}")
    if not _is_whole_in(context.month, 1, 12):
        raise InvalidContextError("month", f"must be between 1 and 12, got {context.month!r}")
    # Upper bound keeps every period inside the calendar date() can represent
    if not _is_whole_in(context.year, MINYEAR, MAXYEAR):
        raise InvalidContextError("year", f"must be between {MINYEAR} and {MAXYEAR}, got {context.year!r}")


def validate_deal_ids(deals: Iterable[Deal]) -> None:
    """Deal ids key the per-deal bonus audit, so a repeated id would hide a deal"""
    seen = set()
    for deal in deals:
        if deal.deal_id is None:
            continue
        if deal.deal_id in seen:
            raise InvalidDealError("deal_id", "appears more than once", deal.deal_id)
        seen.add(deal.deal_id)


def validate_inputs(
    profile: RepresentativeProfile,
    deals: Iterable[Deal],
    monthly_target: Optional[PeriodTarget],
    quarterly_target: Optional[PeriodTarget],
    kpi: Optional[KpiRecord],
    context: PeriodContext,
) -> None:
    """
    Reject ill-formed input before computation.

    Raises the first InvalidInputError found; the error names the record and
    field so the caller can point the user at what to fix.
    """
    validate_context(context)
    validate_profile(profile)
    for deal in deals:
        validate_deal(deal)
    validate_deal_ids(deals)
    if monthly_target is not None:
        validate_target(monthly_target, context.monthly_period)
    if quarterly_target is not None:
        validate_target(quarterly_target, context.quarterly_period)
    if kpi is not None:
        validate_kpi(kpi, context)
