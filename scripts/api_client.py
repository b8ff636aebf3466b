"""Lightweight REST client for the courtstats API."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import httpx


def parse_ids(entries: list[str]) -> dict[str, str]:
    ids: dict[str, str] = {}
    for entry in entries:
        if "=" not in entry:
            raise SystemExit(f"Invalid provider id {entry!r}; expected source=id")
        source, value = entry.split("=", 1)
        ids[source.strip()] = value.strip()
    return ids


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the courtstats REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("player_id", nargs="?", help="Internal player id to fetch stats for")
    parser.add_argument("--name", default=None, help="Display name for provider id resolution")
    parser.add_argument("--id", dest="ids", action="append", default=[], help="Known provider id (e.g. espn=3112335)")
    parser.add_argument("--refresh", action="store_true", help="Bypass the stats cache")
    parser.add_argument("--photo", metavar="SOURCE=ID", help="Fetch and store one provider headshot")
    parser.add_argument("--run-refresh", action="store_true", help="Trigger roster id sync and the photo batch")
    parser.add_argument("--player-created", type=Path, help="POST a player JSON document as a player-created event")
    parser.add_argument("--output", type=Path, help="Write the stats response to this path")
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url, timeout=60.0) as client:
        if args.run_refresh:
            resp = client.post("/refresh")
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return
        if args.photo:
            source, provider_id = next(iter(parse_ids([args.photo]).items()))
            resp = client.post(f"/photos/{source}/{provider_id}")
            if resp.status_code == 404:
                raise SystemExit(f"no photo source {source}")
            print(json.dumps(resp.json(), indent=2))
            return
        if args.player_created:
            document = json.loads(args.player_created.read_text())
            resp = client.post("/events/player-created", json=document)
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return

        if not args.player_id:
            raise SystemExit("player_id is required unless using --photo/--run-refresh/--player-created")

        params: dict[str, str] = {"id": args.player_id, **parse_ids(args.ids)}
        if args.name:
            params["name"] = args.name
        if args.refresh:
            params["refresh"] = "true"
        resp = client.get("/stats", params=params)
        payload = resp.json()
        if resp.status_code >= 400:
            raise SystemExit(f"error {resp.status_code}: {payload.get('error')}")
        if "message" in payload:
            print(payload["message"])
            return
        current = payload.get("seasonAverages") or {}
        print(f"Season {payload['season']}: {json.dumps(current, indent=2)}")
        print("Projection:", json.dumps(payload.get("projections"), indent=2))
        print("Sources:", ", ".join(f"{s['source']}={s['status']}" for s in payload.get("sources", [])))
        if args.output:
            args.output.write_text(json.dumps(payload, indent=2))
            print(f"Stats saved to {args.output}")


if __name__ == "__main__":
    main()
