"""Pydantic schemas for API request/response validation"""

from datetime import MAXYEAR, MINYEAR, date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from commission_gateway.domain.models import (
    ClientType,
    CompensationBreakdown,
    Deal,
    KpiRecord,
    PeriodAchievement,
    PeriodTarget,
    RepresentativeProfile,
    TrackProgress,
    TrafficSource,
)
from commission_gateway.domain.periods import PeriodKey


def _optional_float(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


class DealSchema(BaseModel):
    """A deal as submitted by the rep or imported from a spreadsheet"""

    id: Optional[str] = None
    client_type: ClientType
    traffic_source: TrafficSource
    initial_deposit: Decimal = Field(..., ge=0, description="Initial deposit in USD")
    is_new_client: bool = True
    created_at: datetime
    client_name: Optional[str] = None
    campaign: Optional[str] = None
    completed_within_4_days: bool = False
    notes: Optional[str] = None

    def to_domain(self) -> Deal:
        return Deal(
            client_type=self.client_type,
            traffic_source=self.traffic_source,
            initial_deposit=self.initial_deposit,
            is_new_client=self.is_new_client,
            created_at=self.created_at,
            deal_id=self.id,
            client_name=self.client_name,
            campaign=self.campaign,
            completed_within_4_days=self.completed_within_4_days,
            notes=self.notes,
        )


class ProfileSchema(BaseModel):
    id: Optional[str] = None
    full_name: Optional[str] = None
    base_salary: Decimal = Field(..., ge=0)
    deduction_amount: Decimal = Field(Decimal("0"), ge=0)

    def to_domain(self) -> RepresentativeProfile:
        return RepresentativeProfile(
            base_salary=self.base_salary,
            deduction_amount=self.deduction_amount,
            rep_id=self.id,
            full_name=self.full_name,
        )


class MonthlyTargetSchema(BaseModel):
    id: Optional[str] = None
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=MINYEAR, le=MAXYEAR)
    general_target_amount: int = Field(..., ge=0)
    cfd_target_amount: Optional[int] = Field(None, ge=0)
    workdays_in_period: Optional[int] = Field(None, ge=0)

    def to_domain(self) -> PeriodTarget:
        return PeriodTarget(
            period=PeriodKey.month(self.year, self.month),
            general_target_amount=self.general_target_amount,
            cfd_target_amount=self.cfd_target_amount,
            workdays_in_period=self.workdays_in_period,
            target_id=self.id,
        )


class QuarterlyTargetSchema(BaseModel):
    id: Optional[str] = None
    quarter: int = Field(..., ge=1, le=4)
    year: int = Field(..., ge=MINYEAR, le=MAXYEAR)
    general_target_amount: int = Field(..., ge=0)
    cfd_target_amount: Optional[int] = Field(None, ge=0)
    workdays_in_period: Optional[int] = Field(None, ge=0)

    def to_domain(self) -> PeriodTarget:
        return PeriodTarget(
            period=PeriodKey.quarter(self.year, self.quarter),
            general_target_amount=self.general_target_amount,
            cfd_target_amount=self.cfd_target_amount,
            workdays_in_period=self.workdays_in_period,
            target_id=self.id,
        )


class KpiSchema(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=MINYEAR, le=MAXYEAR)
    avg_call_time_met: bool = False
    avg_calls_count_met: bool = False
    ppc_conversion_met: bool = False
    aff_conversion_met: bool = False
    work_excellence: Decimal = Field(Decimal("0"), ge=0, le=100)

    def to_domain(self) -> KpiRecord:
        return KpiRecord(
            month=self.month,
            year=self.year,
            avg_call_time_met=self.avg_call_time_met,
            avg_calls_count_met=self.avg_calls_count_met,
            ppc_conversion_met=self.ppc_conversion_met,
            aff_conversion_met=self.aff_conversion_met,
            work_excellence=self.work_excellence,
        )


class DealBonusResponse(BaseModel):
    """Response for POST /v1/deal-bonus"""

    deal_id: Optional[str] = None
    rule_set: str
    bonus: float


class BreakdownRequest(BaseModel):
    """Request body for POST /v1/breakdown"""

    profile: ProfileSchema
    deals: List[DealSchema] = []
    monthly_target: Optional[MonthlyTargetSchema] = None
    quarterly_target: Optional[QuarterlyTargetSchema] = None
    kpi: Optional[KpiSchema] = None
    month: Optional[int] = Field(None, ge=1, le=12, description="Evaluated month (default: as_of month)")
    year: Optional[int] = Field(None, ge=MINYEAR, le=MAXYEAR, description="Evaluated year (default: as_of year)")
    as_of: Optional[date] = Field(None, description="Reference date (default: today)")


class TrackSchema(BaseModel):
    actual_count: int
    target_count: Optional[int]
    percentage: Optional[float]
    display_percentage: float
    bonus: float
    projected_count: int
    projected_percentage: Optional[float]
    projected_bonus: float

    @classmethod
    def from_domain(cls, track: TrackProgress) -> "TrackSchema":
        return cls(
            actual_count=track.actual_count,
            target_count=track.target_count,
            percentage=_optional_float(track.percentage),
            display_percentage=float(track.display_percentage),
            bonus=float(track.bonus),
            projected_count=track.projected_count,
            projected_percentage=_optional_float(track.projected_percentage),
            projected_bonus=float(track.projected_bonus),
        )


class PeriodAchievementSchema(BaseModel):
    period: str
    status: str
    workdays_total: int
    workdays_elapsed: int
    workdays_remaining: int
    general: TrackSchema
    cfd: TrackSchema
    time_boxed_bonus: float
    total_bonus: float
    projected_total_bonus: float

    @classmethod
    def from_domain(cls, achievement: Optional[PeriodAchievement]) -> Optional["PeriodAchievementSchema"]:
        if achievement is None:
            return None
        return cls(
            period=achievement.period.label(),
            status=achievement.status.value,
            workdays_total=achievement.workdays_total,
            workdays_elapsed=achievement.workdays_elapsed,
            workdays_remaining=achievement.workdays_remaining,
            general=TrackSchema.from_domain(achievement.general),
            cfd=TrackSchema.from_domain(achievement.cfd),
            time_boxed_bonus=float(achievement.time_boxed_bonus),
            total_bonus=float(achievement.total_bonus),
            projected_total_bonus=float(achievement.projected_total_bonus),
        )


class BreakdownResponse(BaseModel):
    """Salary breakdown for one rep and one month"""

    rep_id: Optional[str] = None
    period: str
    as_of: date
    base_salary: float
    eq_bonus_raw: float
    deduction_applied: float
    eq_bonus: float
    cfd_bonus: float
    new_clients: int
    eq_new_clients: int
    cfd_new_clients: int
    monthly: Optional[PeriodAchievementSchema] = None
    quarterly: Optional[PeriodAchievementSchema] = None
    kpi_bonus: float
    total: float
    projected_total: float
    deal_bonuses: Dict[str, float] = {}

    @classmethod
    def from_domain(cls, breakdown: CompensationBreakdown, rep_id: Optional[str] = None) -> "BreakdownResponse":
        return cls(
            rep_id=rep_id,
            period=breakdown.context.monthly_period.label(),
            as_of=breakdown.context.today,
            base_salary=float(breakdown.base_salary),
            eq_bonus_raw=float(breakdown.eq_bonus_raw),
            deduction_applied=float(breakdown.deduction_applied),
            eq_bonus=float(breakdown.eq_bonus),
            cfd_bonus=float(breakdown.cfd_bonus),
            new_clients=breakdown.new_client_count,
            eq_new_clients=breakdown.eq_new_clients,
            cfd_new_clients=breakdown.cfd_new_clients,
            monthly=PeriodAchievementSchema.from_domain(breakdown.monthly),
            quarterly=PeriodAchievementSchema.from_domain(breakdown.quarterly),
            kpi_bonus=float(breakdown.kpi_bonus),
            total=float(breakdown.total),
            projected_total=float(breakdown.projected_total),
            deal_bonuses={key: float(value) for key, value in breakdown.deal_bonuses.items()},
        )


class SnapshotResponse(BaseModel):
    """Response for POST /v1/reps/{rep_id}/snapshot"""

    scheduled: bool
    breakdown: BreakdownResponse
