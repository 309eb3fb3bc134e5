"""Dependency injection for FastAPI endpoints"""

from datetime import date
from functools import lru_cache

from fastapi import Request
from commission_gateway.config import settings
from commission_gateway.domain.compensation import CompensationPlan
from commission_gateway.domain.deal_bonus import get_rule_set
from commission_gateway.infrastructure.clients.payroll import PayrollClient
from commission_gateway.infrastructure.clients.records import RecordsClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_today() -> date:
    """Reference date for requests that do not pass as_of; the engine itself never reads the clock"""
    return date.today()


@lru_cache
def get_compensation_plan() -> CompensationPlan:
    """Pay plan assembled from configuration"""
    return CompensationPlan(
        deal_rules=get_rule_set(settings.deal_bonus_rule_set),
        time_boxed_cutoff=settings.time_boxed_bonus_cutoff,
        quarterly_program_start=settings.quarterly_program_start,
        rest_days=frozenset(settings.rest_days),
    )


def get_records_client() -> RecordsClient:
    """Provide records service client instance"""
    return RecordsClient()


def get_payroll_client() -> PayrollClient:
    """Provide payroll webhook client instance"""
    return PayrollClient()
