"""REST API for the stats aggregator."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from courtstats.api.schemas import (
    ActionOutcomeResponse,
    BatchReportResponse,
    BlobRefResponse,
    FailedItemResponse,
    PlayerCreatedResponse,
    RefreshResponse,
    StatsResponse,
    SyncReportResponse,
)
from courtstats.assets import AssetPipeline, BatchReport, BlobRef
from courtstats.config import iter_sources
from courtstats.errors import MissingIdentifier, StoreWriteFailure, UpstreamError
from courtstats.models import Player
from courtstats.pipeline import (
    NO_STATS_MESSAGE,
    AppContext,
    FetchPhoto,
    StatsRequest,
    StatsResult,
    StatsService,
    build_context,
    handle_player_created,
    refresh_all,
)


def _blob_response(ref: BlobRef) -> BlobRefResponse:
    return BlobRefResponse(source=ref.source, provider_id=ref.provider_id, path=ref.path, url=ref.url)


def _batch_response(report: BatchReport) -> BatchReportResponse:
    return BatchReportResponse(
        succeeded=[_blob_response(ref) for ref in report.succeeded],
        failed=[FailedItemResponse(source=s, provider_id=p, error=e) for s, p, e in report.failed],
        skipped=[FailedItemResponse(source=s, provider_id=p) for s, p in report.skipped],
    )


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def create_app(context: AppContext | None = None) -> FastAPI:
    owns_context = context is None
    context = context or build_context()
    service = StatsService(context)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_context:
            await context.aclose()

    app = FastAPI(title="courtstats", lifespan=lifespan)
    app.state.context = context
    app.state.stats_service = service
    app.mount(
        "/blobs",
        StaticFiles(directory=str(context.settings.blob_dir), check_dir=False),
        name="blobs",
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/stats", response_model=StatsResponse, response_model_by_alias=True)
    async def stats(
        request: Request,
        player_id: str | None = Query(None, alias="id"),
        name: str | None = Query(None),
        refresh: bool = Query(False),
    ):
        provider_ids: Dict[str, str] = {}
        for source in iter_sources():
            value = request.query_params.get(source.key)
            if value:
                provider_ids[source.key] = value
        stats_request = StatsRequest(
            player_id=player_id,
            provider_ids=provider_ids,
            display_name=name,
            refresh=refresh,
        )
        try:
            result = await service.get_stats(stats_request)
        except MissingIdentifier as exc:
            return _error(400, str(exc))
        except StoreWriteFailure as exc:
            extra: Dict[str, Any] = {}
            if isinstance(exc.result, StatsResult):
                extra = StatsResponse.from_result(exc.result).model_dump(mode="json", by_alias=True)
            return _error(500, exc.message, **extra)
        if result is None:
            return JSONResponse(status_code=200, content={"message": NO_STATS_MESSAGE})
        return StatsResponse.from_result(result)

    @app.post("/photos/{source}/{provider_id}", response_model=BlobRefResponse, response_model_by_alias=True)
    async def fetch_photo(source: str, provider_id: str):
        try:
            ref = await AssetPipeline(context).fetch_and_store(source, provider_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"Unknown photo source {source!r}") from exc
        except UpstreamError as exc:
            return _error(502, str(exc))
        except StoreWriteFailure as exc:
            return _error(500, exc.message)
        return _blob_response(ref)

    @app.post("/events/player-created", response_model=PlayerCreatedResponse, response_model_by_alias=True)
    async def player_created(player: Player) -> PlayerCreatedResponse:
        outcomes = await handle_player_created(context, player)
        return PlayerCreatedResponse(
            player_id=player.player_id,
            actions=[
                ActionOutcomeResponse(
                    action="fetch_photo" if isinstance(outcome.action, FetchPhoto) else "resolve_identity",
                    source=outcome.action.source,
                    ok=outcome.ok,
                    detail=outcome.detail,
                )
                for outcome in outcomes
            ],
        )

    @app.post("/refresh", response_model=RefreshResponse, response_model_by_alias=True)
    async def refresh() -> RefreshResponse:
        report = await refresh_all(context)
        return RefreshResponse(
            sync={
                source: SyncReportResponse(
                    source=source,
                    matched=len(sync.matched),
                    unmatched=sync.unmatched,
                    skipped=sync.skipped,
                )
                for source, sync in report.sync.items()
            },
            photos=_batch_response(report.photos) if report.photos is not None else None,
        )

    return app


__all__ = ["create_app"]
