"""
Autopilot API Endpoints

Manual run trigger, run history and per-shop automation settings.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from redis.asyncio import Redis

from shopify_autopilot.autopilot.engine import PriceUpdater, RunSummary, run_autopilot
from shopify_autopilot.autopilot.exceptions import AutopilotRunError, AutopilotRunInProgress
from shopify_autopilot.database.models import AutopilotMode, RiskLevel
from shopify_autopilot.database.repository import AutopilotRepository
from shopify_autopilot.serving.api.dependencies import (
    get_price_updater,
    get_repository,
    get_run_lock_redis,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


class RunResponse(BaseModel):
    ok: bool
    summary: RunSummary


class RunOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    mode: AutopilotMode
    risk_level: RiskLevel
    analyzed: int
    price_suggestions: int
    applied: int
    skipped_due_to_feedback: int
    marketing_suggestions: int
    created_at: Optional[datetime] = None


class ConfigOut(BaseModel):
    shop: str
    mode: AutopilotMode
    risk_level: RiskLevel


class ConfigUpdate(BaseModel):
    shop: str = Field(..., min_length=1)
    mode: Optional[AutopilotMode] = None
    risk_level: Optional[RiskLevel] = None


@router.post("/run", response_model=RunResponse)
async def run(
    shop: str = Query(..., min_length=1),
    repository: AutopilotRepository = Depends(get_repository),
    price_updater: PriceUpdater = Depends(get_price_updater),
    redis: Optional[Redis] = Depends(get_run_lock_redis),
):
    """
    Run the autopilot once for a shop.

    Returns 409 while another run for the same shop holds the lock and 500
    when the run cannot start.
    """
    try:
        summary = await run_autopilot(shop, repository, price_updater, redis=redis)
    except AutopilotRunInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except AutopilotRunError as e:
        logger.error("Autopilot run failed", shop=shop, error=str(e))
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})

    return RunResponse(ok=True, summary=summary)


@router.get("/runs", response_model=List[RunOut])
async def list_runs(
    shop: str = Query(..., min_length=1),
    repository: AutopilotRepository = Depends(get_repository),
) -> List[RunOut]:
    runs = await repository.list_runs(shop)
    return [RunOut.model_validate(r) for r in runs]


@router.get("/config", response_model=ConfigOut)
async def get_config(
    shop: str = Query(..., min_length=1),
    repository: AutopilotRepository = Depends(get_repository),
) -> ConfigOut:
    config = await repository.get_shop_config(shop)
    return ConfigOut(shop=shop, mode=config.mode, risk_level=config.risk_level)


@router.post("/config", response_model=ConfigOut)
async def update_config(
    body: ConfigUpdate,
    repository: AutopilotRepository = Depends(get_repository),
) -> ConfigOut:
    config = await repository.update_shop_config(
        body.shop,
        mode=body.mode,
        risk_level=body.risk_level,
    )
    logger.info(
        "Autopilot config updated",
        shop=body.shop,
        mode=config.mode.value,
        risk=config.risk_level.value,
    )
    return ConfigOut(shop=body.shop, mode=config.mode, risk_level=config.risk_level)
