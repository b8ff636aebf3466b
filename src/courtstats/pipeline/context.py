"""Dependency bundle handed to every pipeline component."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from courtstats.config import Settings, load_settings
from courtstats.ingest import PhotoCdnAdapter, SourceAdapter, build_adapters, build_photo_adapters
from courtstats.persistence import BlobStore, DocumentStore, LocalBlobStore, SQLiteDocumentStore


@dataclass
class AppContext:
    settings: Settings
    store: DocumentStore
    blobs: BlobStore
    http: httpx.AsyncClient
    adapters: Dict[str, SourceAdapter] = field(default_factory=dict)
    photo_adapters: Dict[str, PhotoCdnAdapter] = field(default_factory=dict)
    owns_http: bool = False

    async def aclose(self) -> None:
        if self.owns_http:
            await self.http.aclose()


def build_context(
    settings: Optional[Settings] = None,
    *,
    http: Optional[httpx.AsyncClient] = None,
    store: Optional[DocumentStore] = None,
    blobs: Optional[BlobStore] = None,
) -> AppContext:
    """Wire stores, HTTP client and adapters; any piece can be injected."""

    settings = settings or load_settings()
    owns_http = http is None
    if http is None:
        http = httpx.AsyncClient(timeout=settings.request_timeout)
    return AppContext(
        settings=settings,
        store=store if store is not None else SQLiteDocumentStore(settings.db_path),
        blobs=blobs if blobs is not None else LocalBlobStore(settings.blob_dir, settings.blob_base_url),
        http=http,
        adapters=build_adapters(settings, http),
        photo_adapters=build_photo_adapters(settings, http),
        owns_http=owns_http,
    )
