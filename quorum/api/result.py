"""Round result endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from quorum.config import Settings, get_settings
from quorum.lib.models import ConfigResponse, HistoryResponse, RoundResult, SourceInfo
from quorum.lib.persistence import RoundStore, get_round_store

router = APIRouter()


@router.get("/result", response_model=RoundResult)
async def get_result(store: RoundStore = Depends(get_round_store)) -> RoundResult:
    """
    Current round state.

    ``sources`` holds the frozen readings between prepare and finalize and
    is null otherwise. Never depends on source availability.
    """
    return store.read()


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    limit: int | None = Query(default=None, ge=1),
    store: RoundStore = Depends(get_round_store),
    settings: Settings = Depends(get_settings),
) -> HistoryResponse:
    """Finalized rounds, newest first. ``limit`` defaults to ``history_size``."""
    if limit is not None and limit > settings.history_size:
        raise HTTPException(
            status_code=422,
            detail=f"limit must be at most history_size ({settings.history_size})",
        )
    return HistoryResponse(rounds=store.history(limit))


@router.get("/config", response_model=ConfigResponse)
async def get_config(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> ConfigResponse:
    """Effective schedule and configured sources."""
    clock = getattr(request.app.state, "round_clock", None)
    sources = clock.aggregator.sources if clock else []
    return ConfigResponse(
        prepare_offset=settings.prepare_offset,
        finalize_offset=settings.finalize_offset,
        tick_interval=settings.tick_interval,
        fetch_deadline=settings.fetch_deadline,
        sources=[
            SourceInfo(
                codename=source.codename,
                name=source.config.name,
                description=source.config.description,
                timeout=settings.effective_deadline(source.timeout),
                enabled=source.enabled,
            )
            for source in sources
        ],
    )
