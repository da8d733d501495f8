"""Media ingestion: staging of uploaded files and the asset store behind them."""
from __future__ import annotations

import os
import shutil
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import structlog
from fastapi import UploadFile

logger = structlog.get_logger(__name__)


class MediaUploadError(RuntimeError):
    """Raised when the store cannot accept a file."""


@dataclass(frozen=True)
class MediaAsset:
    id: str
    url: str
    kind: str
    duration: Optional[float] = None


class LocalMediaStore:
    """Stores assets under ``root`` and serves them from ``url_path``.

    Asset ids are ``<kind>/<uuid><suffix>``, so ``delete`` needs no lookup.
    """

    def __init__(self, root: Path, url_path: str = "/media") -> None:
        self.root = Path(root)
        self.url_path = url_path.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def upload(self, local_path: Path, kind: str) -> MediaAsset:
        local_path = Path(local_path)
        if not local_path.is_file():
            raise MediaUploadError(f"Nothing to upload at {local_path}")

        asset_id = f"{kind}/{uuid.uuid4().hex}{local_path.suffix.lower()}"
        target = self.root / asset_id
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(local_path, target)
        except OSError as exc:
            raise MediaUploadError(str(exc)) from exc

        logger.info("Media uploaded", asset_id=asset_id, size=target.stat().st_size)
        return MediaAsset(
            id=asset_id,
            url=f"{self.url_path}/{asset_id}",
            kind=kind,
            duration=0.0 if kind == "video" else None,
        )

    def delete(self, asset_id: Optional[str], kind: str = "image") -> bool:
        if not asset_id:
            return False
        target = (self.root / asset_id).resolve()
        if self.root.resolve() not in target.parents:
            logger.warning("Refusing to delete outside media root", asset_id=asset_id)
            return False
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError:
            logger.exception("Media delete failed", asset_id=asset_id, kind=kind)
            return False
        logger.info("Media deleted", asset_id=asset_id, kind=kind)
        return True


@contextmanager
def stage_upload(upload: UploadFile, staging_dir: Path) -> Iterator[Path]:
    """Copy an incoming upload to local disk, removing it on exit."""
    staging_dir = Path(staging_dir)
    staging_dir.mkdir(parents=True, exist_ok=True)
    filename = os.path.basename(upload.filename or "upload")
    path = staging_dir / f"{uuid.uuid4()}_{filename}"
    try:
        with open(path, "wb") as buffer:
            shutil.copyfileobj(upload.file, buffer)
        yield path
    finally:
        if path.exists():
            path.unlink()
