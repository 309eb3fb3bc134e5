"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional
from fastapi.testclient import TestClient
from commission_gateway.api.dependencies import get_today
from commission_gateway.api.main import create_app
from commission_gateway.domain.models import (
    ClientType,
    Deal,
    PeriodContext,
    PeriodTarget,
    RepresentativeProfile,
    TrafficSource,
)
from commission_gateway.domain.periods import PeriodKey

# Monday, mid-September 2025: inside the time-boxed window and Q3 of the quarterly program.
# September 2025 has 22 workdays (Fri/Sat rest); 11 of them have elapsed by the 15th.
REFERENCE_DATE = date(2025, 9, 15)


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client pinned to the reference date"""
    app = create_app()
    app.dependency_overrides[get_today] = lambda: REFERENCE_DATE
    return TestClient(app)


@pytest.fixture
def make_deal() -> Callable[..., Deal]:
    """Factory for deals; defaults to a new EQ client via referral in September 2025"""

    def _make(
        client_type: str = "EQ",
        traffic_source: str = "RFF",
        deposit="5000",
        is_new_client: bool = True,
        created_at: datetime = datetime(2025, 9, 10, 12, 0),
        deal_id: Optional[str] = None,
    ) -> Deal:
        return Deal(
            client_type=ClientType(client_type),
            traffic_source=TrafficSource(traffic_source),
            initial_deposit=Decimal(str(deposit)),
            is_new_client=is_new_client,
            created_at=created_at,
            deal_id=deal_id,
        )

    return _make


@pytest.fixture
def profile() -> RepresentativeProfile:
    return RepresentativeProfile(base_salary=Decimal("8000"), deduction_amount=Decimal("0"), rep_id="rep-1")


@pytest.fixture
def september() -> PeriodContext:
    return PeriodContext.current(REFERENCE_DATE)


@pytest.fixture
def monthly_target() -> Callable[..., PeriodTarget]:
    def _make(general: int = 10, cfd: Optional[int] = None, year: int = 2025, month: int = 9, workdays=None):
        return PeriodTarget(
            period=PeriodKey.month(year, month),
            general_target_amount=general,
            cfd_target_amount=cfd,
            workdays_in_period=workdays,
        )

    return _make


@pytest.fixture
def quarterly_target() -> Callable[..., PeriodTarget]:
    def _make(general: int = 30, cfd: Optional[int] = None, year: int = 2025, quarter: int = 3, workdays=None):
        return PeriodTarget(
            period=PeriodKey.quarter(year, quarter),
            general_target_amount=general,
            cfd_target_amount=cfd,
            workdays_in_period=workdays,
        )

    return _make
