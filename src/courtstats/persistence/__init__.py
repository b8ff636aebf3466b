"""Document and blob stores backing the stats cache and photo assets."""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import tempfile
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from courtstats.errors import StoreWriteFailure


logger = logging.getLogger(__name__)

PLAYERS = "players"
PLAYER_STATS = "player_stats"

Document = Dict[str, Any]


class DocumentStore(Protocol):
    def get(self, collection: str, doc_id: str) -> Optional[Document]: ...

    def set(self, collection: str, doc_id: str, partial: Mapping[str, Any], merge: bool = True) -> None: ...

    def query(self, collection: str, field: str, equals: Any) -> List[Tuple[str, Document]]: ...

    def list(self, collection: str) -> List[Tuple[str, Document]]: ...


class BlobStore(Protocol):
    def save(self, path: str, data: bytes, content_type: str, public: bool = True) -> str: ...


def deep_merge(existing: Mapping[str, Any], partial: Mapping[str, Any]) -> Document:
    """Merge ``partial`` into ``existing``; nested mappings merge key by key."""

    merged: Document = dict(existing)
    for key, value in partial.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _json_path(field: str) -> str:
    parts = [part for part in field.split(".") if part]
    if not parts:
        raise ValueError("field path must not be empty")
    return "$" + "".join('."%s"' % part.replace('"', "") for part in parts)


class SQLiteDocumentStore:
    """SQLite-backed key/value document store with merge-writes."""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            self._create_schema(conn)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                data_json TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (collection, id)
            )
            """
        )
        conn.commit()

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data_json FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["data_json"])

    def set(self, collection: str, doc_id: str, partial: Mapping[str, Any], merge: bool = True) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._connect() as conn:
                # BEGIN IMMEDIATE serializes concurrent merge-writes to one document.
                conn.execute("BEGIN IMMEDIATE")
                row = conn.execute(
                    "SELECT data_json FROM documents WHERE collection = ? AND id = ?",
                    (collection, doc_id),
                ).fetchone()
                if row is None:
                    conn.execute(
                        """
                        INSERT INTO documents (collection, id, data_json, created_at, updated_at)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (collection, doc_id, json.dumps(dict(partial)), now, now),
                    )
                else:
                    existing = json.loads(row["data_json"])
                    document = deep_merge(existing, partial) if merge else dict(partial)
                    conn.execute(
                        "UPDATE documents SET data_json = ?, updated_at = ? WHERE collection = ? AND id = ?",
                        (json.dumps(document), now, collection, doc_id),
                    )
                conn.commit()
        except (sqlite3.Error, TypeError, ValueError) as exc:
            raise StoreWriteFailure(f"failed to write {collection}/{doc_id}: {exc}") from exc

    def query(self, collection: str, field: str, equals: Any) -> List[Tuple[str, Document]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, data_json FROM documents
                WHERE collection = ? AND json_extract(data_json, ?) = ?
                ORDER BY id
                """,
                (collection, _json_path(field), equals),
            ).fetchall()
        return [(row["id"], json.loads(row["data_json"])) for row in rows]

    def list(self, collection: str) -> List[Tuple[str, Document]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, data_json FROM documents WHERE collection = ? ORDER BY id",
                (collection,),
            ).fetchall()
        return [(row["id"], json.loads(row["data_json"])) for row in rows]


class LocalBlobStore:
    """Filesystem blob store; public URLs are ``base_url`` + blob path."""

    def __init__(self, root: Path | str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _target(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"blob path must be relative, got {path!r}")
        return self.root.joinpath(*relative.parts)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    def save(self, path: str, data: bytes, content_type: str, public: bool = True) -> str:
        target = self._target(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, target)
            meta = {"contentType": content_type, "public": public, "size": len(data)}
            target.with_name(target.name + ".meta.json").write_text(json.dumps(meta), encoding="utf-8")
        except OSError as exc:
            raise StoreWriteFailure(f"failed to save blob {path}: {exc}") from exc
        logger.debug("Saved blob %s (%d bytes)", path, len(data))
        return self.url_for(path)


__all__ = [
    "PLAYERS",
    "PLAYER_STATS",
    "BlobStore",
    "DocumentStore",
    "LocalBlobStore",
    "SQLiteDocumentStore",
    "deep_merge",
]
