"""POST /v1/deal-bonus - preview what a single deal earns"""

from fastapi import APIRouter, Depends

from commission_gateway.api.dependencies import get_compensation_plan
from commission_gateway.api.v1.schemas import DealBonusResponse, DealSchema
from commission_gateway.domain.compensation import CompensationPlan
from commission_gateway.domain.deal_bonus import compute_deal_bonus

router = APIRouter()


@router.post("/deal-bonus", response_model=DealBonusResponse)
def preview_deal_bonus(
    deal: DealSchema,
    plan: CompensationPlan = Depends(get_compensation_plan),
):
    """
    Bonus the deal contributes if it counts as a new client.

    Shown while the rep fills in the deal form, before the deal is saved.
    """
    bonus = compute_deal_bonus(deal.to_domain(), plan.deal_rules)
    return DealBonusResponse(deal_id=deal.id, rule_set=plan.deal_rules.name, bonus=float(bonus))
