"""Records service HTTP client for fetching a rep's deals, targets, KPIs and profile"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from commission_gateway.config import settings
from commission_gateway.domain.exceptions import RecordsAPIError, RepNotFoundError
from commission_gateway.domain.models import (
    Deal,
    KpiRecord,
    PeriodContext,
    PeriodTarget,
    RepresentativeProfile,
)
from commission_gateway.domain.periods import PeriodKind


@dataclass
class CompensationInputs:
    """Everything the engine needs for one rep and one month, fetched in full"""

    profile: RepresentativeProfile
    deals: List[Deal] = field(default_factory=list)
    monthly_target: Optional[PeriodTarget] = None
    quarterly_target: Optional[PeriodTarget] = None
    kpi: Optional[KpiRecord] = None


class RecordsClient:
    """Client for the external records service that stores deals, targets and profiles"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.records_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def _get(self, client: httpx.AsyncClient, path: str, params: Dict[str, Any] | None = None) -> Any:
        """GET a JSON document; None on 404"""
        try:
            response = await client.get(f"{self.base_url}{path}", params=params)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise RecordsAPIError(f"Records API timeout after {self.timeout}s on {path}") from e
        except httpx.HTTPStatusError as e:
            raise RecordsAPIError(f"Records API error: {e.response.status_code} on {path}") from e
        except httpx.RequestError as e:
            raise RecordsAPIError(f"Records API unreachable: {e}") from e
        except ValueError as e:
            raise RecordsAPIError(f"Records API returned invalid JSON on {path}") from e

    async def get_compensation_inputs(self, rep_id: str, context: PeriodContext) -> CompensationInputs:
        """
        Fetch profile, deals, targets and KPIs for the evaluated month.

        All requests run concurrently and the method only returns once every one
        of them completed, so the engine never sees a partial picture. Deals are
        fetched for the whole quarter because quarterly counts need them.

        Raises:
            RepNotFoundError: If the rep has no profile
            RecordsAPIError: On timeout, HTTP errors, or malformed response
            InvalidInputError: If a record cannot be read as a domain model
        """
        quarter_start, quarter_end = context.quarterly_period.bounds
        prefix = f"/reps/{rep_id}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            profile_row, deals_doc, monthly_row, quarterly_row, kpi_row = await asyncio.gather(
                self._get(client, f"{prefix}/profile"),
                self._get(
                    client,
                    f"{prefix}/deals",
                    {"from": quarter_start.isoformat(), "to": quarter_end.isoformat()},
                ),
                self._get(client, f"{prefix}/targets/monthly", {"year": context.year, "month": context.month}),
                self._get(
                    client, f"{prefix}/targets/quarterly", {"year": context.year, "quarter": context.quarter}
                ),
                self._get(client, f"{prefix}/kpis", {"year": context.year, "month": context.month}),
            )

        if profile_row is None:
            raise RepNotFoundError(f"No profile for rep {rep_id}")

        try:
            deal_rows = (deals_doc or {}).get("deals", [])
            return CompensationInputs(
                profile=RepresentativeProfile.from_record(profile_row),
                deals=[Deal.from_record(row) for row in deal_rows],
                monthly_target=(
                    PeriodTarget.from_record(monthly_row, PeriodKind.MONTH) if monthly_row else None
                ),
                quarterly_target=(
                    PeriodTarget.from_record(quarterly_row, PeriodKind.QUARTER) if quarterly_row else None
                ),
                kpi=KpiRecord.from_record(kpi_row) if kpi_row else None,
            )
        except (AttributeError, KeyError, TypeError) as e:
            raise RecordsAPIError(f"Invalid records data for rep {rep_id}: {e}") from e
