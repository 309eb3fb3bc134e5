"""Salary breakdown endpoints"""

import time
import logging
from datetime import MAXYEAR, MINYEAR, date
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request

from commission_gateway.api.dependencies import (
    get_compensation_plan,
    get_payroll_client,
    get_records_client,
    get_request_id,
    get_today,
)
from commission_gateway.api.v1.schemas import BreakdownRequest, BreakdownResponse, SnapshotResponse
from commission_gateway.domain.compensation import CompensationPlan, compute_breakdown
from commission_gateway.domain.exceptions import (
    InvalidInputError,
    PayrollSyncError,
    RecordsAPIError,
    RepNotFoundError,
)
from commission_gateway.domain.models import CompensationBreakdown, PeriodContext
from commission_gateway.domain.validation import validate_context
from commission_gateway.infrastructure.clients.payroll import PayrollClient
from commission_gateway.infrastructure.clients.records import CompensationInputs, RecordsClient
from commission_gateway.infrastructure.observability.logging import log_breakdown
from commission_gateway.infrastructure.observability.metrics import (
    invalid_input_counter,
    record_breakdown,
    records_fetch_failures_counter,
)

router = APIRouter()


def _context(reference: date, month: Optional[int], year: Optional[int]) -> PeriodContext:
    return PeriodContext(
        today=reference,
        month=reference.month if month is None else month,
        year=reference.year if year is None else year,
    )


def _compute(
    inputs: CompensationInputs,
    context: PeriodContext,
    plan: CompensationPlan,
    request_id: str,
    rep_id: str,
) -> CompensationBreakdown:
    start_time = time.time()
    breakdown = compute_breakdown(
        inputs.profile,
        inputs.deals,
        inputs.monthly_target,
        inputs.quarterly_target,
        inputs.kpi,
        context=context,
        plan=plan,
    )
    duration_ms = (time.time() - start_time) * 1000
    record_breakdown(breakdown)
    log_breakdown(request_id, rep_id, breakdown, duration_ms)
    return breakdown


async def _load_and_compute(
    rep_id: str,
    context: PeriodContext,
    plan: CompensationPlan,
    records_client: RecordsClient,
    request_id: str,
) -> CompensationBreakdown:
    """Fetch every input from the records service, then run the engine; errors mapped to HTTP"""
    try:
        validate_context(context)
        inputs = await records_client.get_compensation_inputs(rep_id, context)
        return _compute(inputs, context, plan, request_id, rep_id)

    except RepNotFoundError as e:
        logging.warning(f"Unknown rep: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    except RecordsAPIError as e:
        records_fetch_failures_counter.inc()
        logging.error(f"Records API error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Records service unavailable")

    except InvalidInputError as e:
        invalid_input_counter.labels(record_type=e.record_type).inc()
        logging.warning(f"Invalid input: {e}", extra={"request_id": request_id, "rep_id": rep_id})
        raise HTTPException(status_code=422, detail=e.to_dict())


async def _deliver_snapshot(payroll_client: PayrollClient, payload: Dict[str, Any], request_id: str) -> None:
    try:
        await payroll_client.send_snapshot(payload)
    except PayrollSyncError as e:
        logging.error(f"Snapshot delivery failed: {e}", extra={"request_id": request_id, "rep_id": payload["rep_id"]})


@router.post("/breakdown", response_model=BreakdownResponse)
def create_breakdown(
    request_body: BreakdownRequest,
    request: Request,
    today: date = Depends(get_today),
    plan: CompensationPlan = Depends(get_compensation_plan),
):
    """
    Compute a salary breakdown from inputs supplied in full by the caller.

    The caller is responsible for sending a consistent set: the profile, every
    deal of the evaluated quarter (or at least month), and the targets and KPIs
    of that month and quarter.
    """
    request_id = get_request_id(request)
    context = _context(request_body.as_of or today, request_body.month, request_body.year)
    rep_id = request_body.profile.id or "anonymous"

    inputs = CompensationInputs(
        profile=request_body.profile.to_domain(),
        deals=[deal.to_domain() for deal in request_body.deals],
        monthly_target=request_body.monthly_target.to_domain() if request_body.monthly_target else None,
        quarterly_target=request_body.quarterly_target.to_domain() if request_body.quarterly_target else None,
        kpi=request_body.kpi.to_domain() if request_body.kpi else None,
    )

    try:
        breakdown = _compute(inputs, context, plan, request_id, rep_id)
    except InvalidInputError as e:
        invalid_input_counter.labels(record_type=e.record_type).inc()
        logging.warning(f"Invalid input: {e}", extra={"request_id": request_id, "rep_id": rep_id})
        raise HTTPException(status_code=422, detail=e.to_dict())

    return BreakdownResponse.from_domain(breakdown, rep_id=request_body.profile.id)


@router.get("/reps/{rep_id}/breakdown", response_model=BreakdownResponse)
async def get_rep_breakdown(
    rep_id: str,
    request: Request,
    month: Optional[int] = Query(None, ge=1, le=12, description="Evaluated month (default: current)"),
    year: Optional[int] = Query(None, ge=MINYEAR, le=MAXYEAR, description="Evaluated year (default: current)"),
    as_of: Optional[date] = Query(None, description="Reference date (default: today)"),
    today: date = Depends(get_today),
    plan: CompensationPlan = Depends(get_compensation_plan),
    records_client: RecordsClient = Depends(get_records_client),
):
    """
    Salary breakdown for a rep, loaded from the records service.

    Re-computed on every call; nothing is stored.
    """
    request_id = get_request_id(request)
    context = _context(as_of or today, month, year)
    breakdown = await _load_and_compute(rep_id, context, plan, records_client, request_id)
    return BreakdownResponse.from_domain(breakdown, rep_id=rep_id)


@router.post("/reps/{rep_id}/snapshot", response_model=SnapshotResponse)
async def create_snapshot(
    rep_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=MINYEAR, le=MAXYEAR),
    as_of: Optional[date] = Query(None),
    today: date = Depends(get_today),
    plan: CompensationPlan = Depends(get_compensation_plan),
    records_client: RecordsClient = Depends(get_records_client),
    payroll_client: PayrollClient = Depends(get_payroll_client),
):
    """
    Compute the breakdown and publish it to payroll.

    Flow:
    1. Fetch profile, deals, targets and KPIs from the records service
    2. Compute the breakdown
    3. Schedule async delivery of the snapshot to the payroll webhook
    4. Return the breakdown
    """
    request_id = get_request_id(request)
    context = _context(as_of or today, month, year)
    breakdown = await _load_and_compute(rep_id, context, plan, records_client, request_id)
    response = BreakdownResponse.from_domain(breakdown, rep_id=rep_id)

    payload = {"event": "COMMISSION_SNAPSHOT", **response.model_dump(mode="json")}
    background_tasks.add_task(_deliver_snapshot, payroll_client, payload, request_id)

    return SnapshotResponse(scheduled=True, breakdown=response)
