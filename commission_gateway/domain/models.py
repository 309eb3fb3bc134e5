"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type

from commission_gateway.domain.exceptions import (
    InvalidDealError,
    InvalidInputError,
    InvalidKpiError,
    InvalidProfileError,
    InvalidTargetError,
)
from commission_gateway.domain.periods import PeriodKey, PeriodKind, PeriodStatus, quarter_of

ZERO = Decimal("0")

# Spreadsheet imports mark flags with "yes" in either language
_TRUE_STRINGS = {"true", "yes", "y", "1", "v", "כן"}
_FALSE_STRINGS = {"false", "no", "n", "0", "", "לא"}


class ClientType(str, Enum):
    EQ = "EQ"
    CFD = "CFD"


class TrafficSource(str, Enum):
    AFF = "AFF"  # affiliate
    RFF = "RFF"  # referral
    PPC = "PPC"  # paid ads
    ORG = "ORG"  # organic


# --- record parsing helpers -------------------------------------------------


def _required(row: Mapping[str, Any], name: str, error: Type[InvalidInputError], record_id: Optional[str]) -> Any:
    value = row.get(name)
    if value is None or value == "":
        raise error(name, "is required", record_id)
    return value


def _decimal(value: Any, name: str, error: Type[InvalidInputError], record_id: Optional[str]) -> Decimal:
    if isinstance(value, bool):
        raise error(name, f"is not a number: {value!r}", record_id)
    try:
        return Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        raise error(name, f"is not a number: {value!r}", record_id)


def _int(value: Any, name: str, error: Type[InvalidInputError], record_id: Optional[str]) -> int:
    amount = _decimal(value, name, error, record_id)
    if not amount.is_finite() or amount != amount.to_integral_value():
        raise error(name, f"is not a whole number: {value!r}", record_id)
    return int(amount)


def _optional_int(row: Mapping[str, Any], name: str, error: Type[InvalidInputError], record_id: Optional[str]) -> Optional[int]:
    value = row.get(name)
    if value is None or value == "":
        return None
    return _int(value, name, error, record_id)


def _flag(value: Any, name: str, error: Type[InvalidInputError], record_id: Optional[str]) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise error(name, f"is not a yes/no value: {value!r}", record_id)


def _enum(enum_cls: Type[Enum], value: Any, name: str, error: Type[InvalidInputError], record_id: Optional[str]):
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise error(name, f"must be one of {allowed}, got {value!r}", record_id)


def _timestamp(value: Any, name: str, error: Type[InvalidInputError], record_id: Optional[str]) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        raise error(name, f"is not an ISO timestamp: {value!r}", record_id)


# --- inputs -----------------------------------------------------------------


@dataclass(frozen=True)
class Deal:
    """One client acquisition event"""

    client_type: ClientType
    traffic_source: TrafficSource
    initial_deposit: Decimal  # deposit currency (USD)
    is_new_client: bool
    created_at: datetime
    deal_id: Optional[str] = None
    # Informational only, never read by the engine
    client_name: Optional[str] = None
    campaign: Optional[str] = None
    completed_within_4_days: bool = False
    notes: Optional[str] = None

    @property
    def month(self) -> PeriodKey:
        return PeriodKey.month_of(self.created_at)

    @property
    def quarter(self) -> PeriodKey:
        return PeriodKey.quarter_of(self.created_at)

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> "Deal":
        deal_id = str(row["id"]) if row.get("id") is not None else None
        err = InvalidDealError
        new_client = row.get("is_new_client")
        return cls(
            client_type=_enum(ClientType, _required(row, "client_type", err, deal_id), "client_type", err, deal_id),
            traffic_source=_enum(
                TrafficSource, _required(row, "traffic_source", err, deal_id), "traffic_source", err, deal_id
            ),
            initial_deposit=_decimal(
                _required(row, "initial_deposit", err, deal_id), "initial_deposit", err, deal_id
            ),
            is_new_client=True if new_client is None else _flag(new_client, "is_new_client", err, deal_id),
            created_at=_timestamp(_required(row, "created_at", err, deal_id), "created_at", err, deal_id),
            deal_id=deal_id,
            client_name=row.get("client_name"),
            campaign=row.get("campaign"),
            completed_within_4_days=_flag(
                row.get("completed_within_4_days"), "completed_within_4_days", err, deal_id
            ),
            notes=row.get("notes"),
        )


@dataclass(frozen=True)
class RepresentativeProfile:
    """Per-rep compensation settings"""

    base_salary: Decimal
    deduction_amount: Decimal = ZERO
    rep_id: Optional[str] = None
    full_name: Optional[str] = None

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> "RepresentativeProfile":
        rep_id = str(row["id"]) if row.get("id") is not None else None
        err = InvalidProfileError
        deduction = row.get("deduction_amount")
        return cls(
            base_salary=_decimal(_required(row, "base_salary", err, rep_id), "base_salary", err, rep_id),
            deduction_amount=ZERO if deduction in (None, "") else _decimal(deduction, "deduction_amount", err, rep_id),
            rep_id=rep_id,
            full_name=row.get("full_name"),
        )


@dataclass(frozen=True)
class PeriodTarget:
    """Quota for one rep in one month or quarter"""

    period: PeriodKey
    general_target_amount: int  # EQ + CFD new clients for 100%
    cfd_target_amount: Optional[int] = None  # CFD-only new clients for 100%
    workdays_in_period: Optional[int] = None
    target_id: Optional[str] = None

    @classmethod
    def from_record(cls, row: Mapping[str, Any], kind: PeriodKind) -> "PeriodTarget":
        target_id = str(row["id"]) if row.get("id") is not None else None
        err = InvalidTargetError
        year = _int(_required(row, "year", err, target_id), "year", err, target_id)
        index_field = "month" if kind is PeriodKind.MONTH else "quarter"
        index = _int(_required(row, index_field, err, target_id), index_field, err, target_id)
        try:
            period = PeriodKey.month(year, index) if kind is PeriodKind.MONTH else PeriodKey.quarter(year, index)
        except ValueError as e:
            raise err(index_field, str(e), target_id)
        return cls(
            period=period,
            general_target_amount=_int(
                _required(row, "general_target_amount", err, target_id), "general_target_amount", err, target_id
            ),
            cfd_target_amount=_optional_int(row, "cfd_target_amount", err, target_id),
            workdays_in_period=_optional_int(row, "workdays_in_period", err, target_id),
            target_id=target_id,
        )


@dataclass(frozen=True)
class KpiRecord:
    """Monthly KPI outcomes for one rep"""

    month: int
    year: int
    avg_call_time_met: bool = False
    avg_calls_count_met: bool = False
    ppc_conversion_met: bool = False
    aff_conversion_met: bool = False
    work_excellence: Decimal = ZERO  # manager score, 0-100

    @property
    def flags(self) -> Dict[str, bool]:
        return {
            "avg_call_time": self.avg_call_time_met,
            "avg_calls_count": self.avg_calls_count_met,
            "ppc_conversion": self.ppc_conversion_met,
            "aff_conversion": self.aff_conversion_met,
        }

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> "KpiRecord":
        kpi_id = str(row["id"]) if row.get("id") is not None else None
        err = InvalidKpiError
        excellence = row.get("work_excellence")
        return cls(
            month=_int(_required(row, "month", err, kpi_id), "month", err, kpi_id),
            year=_int(_required(row, "year", err, kpi_id), "year", err, kpi_id),
            avg_call_time_met=_flag(row.get("avg_call_time_minutes"), "avg_call_time_minutes", err, kpi_id),
            avg_calls_count_met=_flag(row.get("avg_calls_count"), "avg_calls_count", err, kpi_id),
            ppc_conversion_met=_flag(row.get("ppc_conversion_rate"), "ppc_conversion_rate", err, kpi_id),
            aff_conversion_met=_flag(row.get("aff_conversion_rate"), "aff_conversion_rate", err, kpi_id),
            work_excellence=ZERO if excellence in (None, "") else _decimal(excellence, "work_excellence", err, kpi_id),
        )


@dataclass(frozen=True)
class PeriodContext:
    """The month being evaluated and the reference date standing in for 'now'"""

    today: date
    month: int
    year: int

    @classmethod
    def current(cls, today: date) -> "PeriodContext":
        return cls(today=today, month=today.month, year=today.year)

    @property
    def quarter(self) -> int:
        return quarter_of(self.month)

    @property
    def monthly_period(self) -> PeriodKey:
        return PeriodKey.month(self.year, self.month)

    @property
    def quarterly_period(self) -> PeriodKey:
        return PeriodKey.quarter(self.year, self.quarter)


# --- outputs ----------------------------------------------------------------


@dataclass(frozen=True)
class TrackProgress:
    """Achievement of one quota track (general or CFD) in one period"""

    actual_count: int
    target_count: Optional[int]
    percentage: Optional[Decimal]  # uncapped; None when the track has no target
    bonus: Decimal
    projected_count: int
    projected_percentage: Optional[Decimal]
    projected_bonus: Decimal

    @property
    def display_percentage(self) -> Decimal:
        """Progress-bar value, capped at 100"""
        if self.percentage is None:
            return ZERO
        return min(self.percentage, Decimal("100"))


@dataclass(frozen=True)
class PeriodAchievement:
    """Quota bonuses for one period, realized and projected"""

    period: PeriodKey
    status: PeriodStatus
    workdays_total: int
    workdays_elapsed: int
    general: TrackProgress
    cfd: TrackProgress
    time_boxed_bonus: Decimal = ZERO
    projected_time_boxed_bonus: Decimal = ZERO

    @property
    def total_bonus(self) -> Decimal:
        return self.general.bonus + self.cfd.bonus + self.time_boxed_bonus

    @property
    def projected_total_bonus(self) -> Decimal:
        return self.general.projected_bonus + self.cfd.projected_bonus + self.projected_time_boxed_bonus

    @property
    def workdays_remaining(self) -> int:
        return max(self.workdays_total - self.workdays_elapsed, 0)


@dataclass(frozen=True)
class CompensationBreakdown:
    """Full salary breakdown for one rep and one month"""

    context: PeriodContext
    base_salary: Decimal
    eq_bonus_raw: Decimal
    deduction_applied: Decimal
    eq_bonus: Decimal
    cfd_bonus: Decimal
    eq_new_clients: int
    cfd_new_clients: int
    kpi_bonus: Decimal
    total: Decimal
    projected_total: Decimal
    monthly: Optional[PeriodAchievement] = None
    quarterly: Optional[PeriodAchievement] = None
    deal_bonuses: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def new_client_count(self) -> int:
        return self.eq_new_clients + self.cfd_new_clients

    @property
    def deal_bonus_total(self) -> Decimal:
        return self.eq_bonus + self.cfd_bonus

    @property
    def monthly_general_bonus(self) -> Decimal:
        return self.monthly.general.bonus if self.monthly else ZERO

    @property
    def monthly_cfd_bonus(self) -> Decimal:
        return self.monthly.cfd.bonus if self.monthly else ZERO

    @property
    def monthly_time_boxed_bonus(self) -> Decimal:
        return self.monthly.time_boxed_bonus if self.monthly else ZERO

    @property
    def quarterly_general_bonus(self) -> Decimal:
        return self.quarterly.general.bonus if self.quarterly else ZERO

    @property
    def quarterly_cfd_bonus(self) -> Decimal:
        return self.quarterly.cfd.bonus if self.quarterly else ZERO

    @property
    def target_bonus_total(self) -> Decimal:
        monthly = self.monthly.total_bonus if self.monthly else ZERO
        quarterly = self.quarterly.total_bonus if self.quarterly else ZERO
        return monthly + quarterly
