"""Plans router - generates outing plans for a duration, transport and budget."""
import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from outing_planner.config import settings
from outing_planner.dependencies import get_engine
from outing_planner.models.plans import GenerationRequest, Plan, PlanListResponse, StartStep
from outing_planner.planner import PlanGenerationEngine, default_center
from outing_planner.planner.diversifier import route_mode

router = APIRouter(prefix="/plans", tags=["plans"])
logger = logging.getLogger(__name__)

FALLBACK_MINUTES = 60


def fallback_plan(request: GenerationRequest) -> Plan:
    """Minimal local plan returned when generation runs out of time."""
    return Plan(
        id="fallback",
        title="Fallback",
        steps=[StartStep(coord=request.center or default_center())],
        mode=route_mode(request.transport),
        stops=[],
        km=0,
        min=min(FALLBACK_MINUTES, request.duration),
        cost=None,
        route_segments=[],
    )


@router.post("/generate", response_model=PlanListResponse, response_model_by_alias=True)
async def generate_plans(
    request: GenerationRequest,
    engine: PlanGenerationEngine = Depends(get_engine),
):
    """
    Generate up to three outing plans.

    Generation is cancelled after ``generation_timeout`` seconds and a single
    fallback plan is returned instead.

    Args:
        request: Duration, transport, budget and companion context

    Returns:
        The generated plans; an empty list when nothing fits
    """
    cancel_event = asyncio.Event()
    try:
        plans = await asyncio.wait_for(
            engine.generate(request, cancel_event=cancel_event),
            timeout=settings.generation_timeout,
        )
    except asyncio.TimeoutError:
        cancel_event.set()
        logger.warning(f"Plan generation exceeded {settings.generation_timeout}s, returning fallback plan")
        return PlanListResponse(plans=[fallback_plan(request)])
    except Exception as e:
        logger.error(f"Plan generation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to generate plans")

    return PlanListResponse(plans=plans)
