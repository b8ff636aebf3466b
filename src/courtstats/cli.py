"""Command-line interface for fetching stats and running maintenance batches."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from dataclasses import asdict
from pathlib import Path

from courtstats.api.schemas import StatsResponse
from courtstats.assets import AssetPipeline, roster_photo_pairs
from courtstats.config import Settings, iter_sources, load_settings
from courtstats.errors import MissingIdentifier, StoreWriteFailure
from courtstats.identity import sync_provider_ids
from courtstats.pipeline import NO_STATS_MESSAGE, StatsRequest, StatsService, build_context, refresh_all


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Aggregate NBA player stats from several providers")
    parser.add_argument("--db", type=Path, default=None, help="SQLite document store path")
    parser.add_argument("--blob-dir", type=Path, default=None, help="Directory for stored photos")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    stats = subparsers.add_parser("stats", help="Fetch merged stats for one player")
    stats.add_argument("player_id", help="Internal player id")
    stats.add_argument("--name", default=None, help="Display name used to resolve missing provider ids")
    stats.add_argument("--refresh", action="store_true", help="Ignore a fresh cache entry")
    for source in iter_sources():
        stats.add_argument(
            f"--{source.key.replace('_', '-')}",
            dest=f"id_{source.key}",
            default=None,
            help=f"Known {source.label} id",
        )

    sync = subparsers.add_parser("sync-ids", help="Match stored players to provider ids")
    sync.add_argument("sources", nargs="*", help="Sources to sync (default: all enabled)")

    photos = subparsers.add_parser("photos", help="Download headshots for stored players")
    photos.add_argument("--source", default=None, help="Only fetch photos from this source")

    subparsers.add_parser("refresh", help="Run id sync followed by the photo batch")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def _settings(args: argparse.Namespace) -> Settings:
    settings = load_settings()
    overrides = {}
    if args.db is not None:
        overrides["db_path"] = args.db
    if args.blob_dir is not None:
        overrides["blob_dir"] = args.blob_dir
    return settings.with_overrides(**overrides) if overrides else settings


async def _run_stats(args: argparse.Namespace) -> int:
    context = build_context(_settings(args))
    try:
        provider_ids = {
            source.key: getattr(args, f"id_{source.key}")
            for source in iter_sources()
            if getattr(args, f"id_{source.key}", None)
        }
        service = StatsService(context)
        request = StatsRequest(
            player_id=args.player_id,
            provider_ids=provider_ids,
            display_name=args.name,
            refresh=args.refresh,
        )
        try:
            result = await service.get_stats(request)
        except MissingIdentifier as exc:
            print(json.dumps({"error": str(exc)}))
            return 2
        except StoreWriteFailure as exc:
            print(f"Warning: {exc.message}")
            result = exc.result
        if result is None:
            print(json.dumps({"message": NO_STATS_MESSAGE}))
            return 0
        print(StatsResponse.from_result(result).model_dump_json(by_alias=True, indent=2))
        return 0
    finally:
        await context.aclose()


async def _run_sync(args: argparse.Namespace) -> int:
    context = build_context(_settings(args))
    try:
        sources = args.sources or list(context.adapters)
        for source in sources:
            try:
                report = await sync_provider_ids(context, source)
            except KeyError as exc:
                print(f"Skipping {source}: {exc}")
                continue
            print(f"{source}: matched {len(report.matched)}, unmatched {len(report.unmatched)}, skipped {report.skipped}")
            if report.unmatched:
                preview = ", ".join(report.unmatched[:5])
                suffix = "..." if len(report.unmatched) > 5 else ""
                print(f"  No match for: {preview}{suffix}")
        return 0
    finally:
        await context.aclose()


async def _run_photos(args: argparse.Namespace) -> int:
    context = build_context(_settings(args))
    try:
        pairs = roster_photo_pairs(context)
        if args.source:
            pairs = [pair for pair in pairs if pair[0] == args.source]
        report = await AssetPipeline(context).fetch_batch(pairs)
        print(f"Stored {len(report.succeeded)} photos, {len(report.failed)} failed, {len(report.skipped)} skipped")
        for source, provider_id, error in report.failed:
            print(f"  {source}:{provider_id}: {error}")
        return 1 if report.failed and not report.succeeded else 0
    finally:
        await context.aclose()


async def _run_refresh(args: argparse.Namespace) -> int:
    context = build_context(_settings(args))
    try:
        report = await refresh_all(context)
        summary = {
            "sync": {source: {"matched": len(r.matched), "unmatched": len(r.unmatched)} for source, r in report.sync.items()},
            "photos": {
                "succeeded": [asdict(ref) for ref in report.photos.succeeded],
                "failed": len(report.photos.failed),
            }
            if report.photos
            else None,
        }
        print(json.dumps(summary, indent=2))
        return 0
    finally:
        await context.aclose()


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from courtstats.api import create_app

    app = create_app(build_context(_settings(args)))
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.command == "serve":
        return _serve(args)
    handlers = {
        "stats": _run_stats,
        "sync-ids": _run_sync,
        "photos": _run_photos,
        "refresh": _run_refresh,
    }
    return asyncio.run(handlers[args.command](args))


if __name__ == "__main__":
    raise SystemExit(main())
