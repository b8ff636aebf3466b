from __future__ import annotations

from typing import Callable

import httpx
import pytest

from courtstats.config import Settings
from courtstats.pipeline import AppContext, build_context


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        db_path=tmp_path / "courtstats.sqlite",
        blob_dir=tmp_path / "blobs",
        blob_base_url="http://testserver/blobs",
        batch_delay=0.0,
        request_timeout=2.0,
    )


@pytest.fixture
def make_context(settings) -> Callable[..., AppContext]:
    def _make(handler: Callable[[httpx.Request], httpx.Response], *, store=None, **overrides) -> AppContext:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return build_context(settings.with_overrides(**overrides), http=client, store=store)

    return _make
