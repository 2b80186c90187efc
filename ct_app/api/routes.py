"""Route handlers for strategies, analysis and market data."""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response

from ..service import TraderService
from ..strategies.models import StrategyStatus
from .schemas import StatusChange, StrategyCreate, StrategyUpdate


def get_service(request: Request) -> TraderService:
    return request.app.state.service


health_router = APIRouter(tags=["Health"])
strategies_router = APIRouter(prefix="/api/strategies", tags=["Strategies"])
analysis_router = APIRouter(prefix="/api/analysis", tags=["Analysis"])
market_router = APIRouter(prefix="/api/market", tags=["Market Data"])


@health_router.get("/health")
def get_health(service: TraderService = Depends(get_service)):
    """Service, breaker and cache health."""
    return service.health()


@strategies_router.post("", status_code=201)
def create_strategy(body: StrategyCreate, service: TraderService = Depends(get_service)):
    strategy = service.create_strategy(body.to_payload())
    return strategy.to_dict()


@strategies_router.get("")
def list_strategies(
    status: Optional[StrategyStatus] = None,
    service: TraderService = Depends(get_service),
):
    strategies = service.list_strategies(status=status)
    return {"strategies": [strategy.to_dict() for strategy in strategies]}


@strategies_router.get("/{strategy_id}")
def get_strategy(strategy_id: str, service: TraderService = Depends(get_service)):
    return service.get_strategy(strategy_id).to_dict()


@strategies_router.patch("/{strategy_id}")
def update_strategy(
    strategy_id: str,
    body: StrategyUpdate,
    service: TraderService = Depends(get_service),
):
    """Partial update; bumps the strategy version."""
    return service.update_strategy(strategy_id, body.to_changes()).to_dict()


@strategies_router.post("/{strategy_id}/status")
def change_status(
    strategy_id: str,
    body: StatusChange,
    service: TraderService = Depends(get_service),
):
    return service.set_strategy_status(strategy_id, body.status).to_dict()


@strategies_router.delete("/{strategy_id}", status_code=204)
def delete_strategy(strategy_id: str, service: TraderService = Depends(get_service)):
    """Remove a strategy together with its stored analysis records."""
    service.delete_strategy(strategy_id)
    return Response(status_code=204)


@analysis_router.post("/{strategy_id}", status_code=201)
def record_analysis(
    strategy_id: str,
    record: dict[str, Any] = Body(...),
    service: TraderService = Depends(get_service),
):
    """Ingest one analysis record for a strategy."""
    return service.record_analysis(strategy_id, record).to_dict()


@analysis_router.get("/{strategy_id}")
def get_analysis(
    strategy_id: str,
    symbol: Optional[str] = None,
    signal: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    limit: int = Query(50, ge=1, le=1000),
    service: TraderService = Depends(get_service),
):
    """Latest record, filtered history and stats."""
    return service.get_analysis(
        strategy_id,
        symbol=symbol,
        signal=signal,
        start=start,
        end=end,
        limit=limit
    )


@market_router.get("/{symbol}")
def get_quote(symbol: str, service: TraderService = Depends(get_service)):
    """Current quote, or the last known one flagged stale."""
    return service.get_quote(symbol).to_dict()
