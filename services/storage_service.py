"""
File storage for loading attachments.

Objects live under ``STORAGE_ROOT/<bucket>/<path>``. Public buckets are served
as-is; private buckets are only reachable through short-lived signed URLs
(JWT tokens carrying bucket, path and expiry).
"""
from __future__ import annotations

import hashlib
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional, Tuple
from urllib.parse import quote, unquote

from dotenv import load_dotenv
from jose import JWTError, jwt

from services.exceptions import FetchError, UploadError

load_dotenv()

log = logging.getLogger(__name__)

BUCKET_FOTOS = "carregamento-fotos"
BUCKET_DOCUMENTOS = "carregamento-documentos"

ALGORITHM = "HS256"
SIGNED_TOKEN_PURPOSE = "file-download"


@dataclass(frozen=True)
class StoredFile:
    bucket: str
    path: str
    url: str
    size_bytes: int
    sha256: str
    content_type: Optional[str] = None


def sanitize_filename(filename: str) -> str:
    name = (filename or "").replace(" ", "_")
    name = re.sub(r"[^\w.\-]", "", name)
    return name.lstrip(".") or "arquivo"


def build_object_path(carregamento_id, etapa: int, prefix: str, filename: str, at_time: Optional[datetime] = None) -> str:
    """``carregamentos/<id>/<prefix><etapa>_<timestamp>_<name>``"""
    stamp = (at_time or datetime.utcnow()).strftime("%Y%m%dT%H%M%S%f")
    return f"carregamentos/{carregamento_id}/{prefix}{etapa}_{stamp}_{sanitize_filename(filename)}"


class LocalStorageService:
    def __init__(
        self,
        root: Path,
        base_url: str,
        secret_key: str,
        public_buckets: Iterable[str] = (BUCKET_FOTOS,),
        signed_url_expire_seconds: int = 3600,
    ):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key
        self.public_buckets = frozenset(public_buckets)
        self.signed_url_expire_seconds = signed_url_expire_seconds

    def is_public(self, bucket: str) -> bool:
        return bucket in self.public_buckets

    def _object_path(self, bucket: str, path: str) -> Path:
        bucket_root = (self.root / bucket).resolve()
        target = (bucket_root / path).resolve()
        if bucket_root != target and bucket_root not in target.parents:
            raise FetchError("Invalid file path")
        return target

    def upload(self, data: bytes, bucket: str, path: str, content_type: Optional[str] = None) -> StoredFile:
        try:
            target = self._object_path(bucket, path)
        except FetchError as exc:
            raise UploadError(exc.message) from exc

        if target.exists():
            raise UploadError(f"File already exists: {path}")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            log.error("Storage write failed for %s/%s: %s", bucket, path, exc, exc_info=True)
            raise UploadError("Could not store the attachment. Please try again.") from exc

        log.info("Stored %s/%s (%d bytes)", bucket, path, len(data))
        return StoredFile(
            bucket=bucket,
            path=path,
            url=self.public_url(bucket, path),
            size_bytes=len(data),
            sha256=hashlib.sha256(data).hexdigest(),
            content_type=content_type,
        )

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/files/{bucket}/{quote(path)}"

    def parse_reference(self, reference: str) -> Tuple[str, str]:
        """Split a stored reference URL back into ``(bucket, path)``."""
        prefix = f"{self.base_url}/files/"
        if not reference or not reference.startswith(prefix):
            raise FetchError("Unknown file reference")
        bucket, _, path = reference[len(prefix):].partition("/")
        if not bucket or not path:
            raise FetchError("Unknown file reference")
        return bucket, unquote(path)

    def signed_url(self, reference: str, expires_in: Optional[int] = None) -> str:
        bucket, path = self.parse_reference(reference)
        seconds = expires_in if expires_in is not None else self.signed_url_expire_seconds
        payload = {
            "bucket": bucket,
            "path": path,
            "purpose": SIGNED_TOKEN_PURPOSE,
            "exp": datetime.utcnow() + timedelta(seconds=seconds),
        }
        token = jwt.encode(payload, self.secret_key, algorithm=ALGORITHM)
        return f"{self.base_url}/files/signed/{token}"

    def verify_signed_token(self, token: str) -> Tuple[str, str]:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except JWTError as exc:
            raise FetchError("Link expired or invalid") from exc
        if payload.get("purpose") != SIGNED_TOKEN_PURPOSE:
            raise FetchError("Link expired or invalid")
        bucket, path = payload.get("bucket"), payload.get("path")
        if not bucket or not path:
            raise FetchError("Link expired or invalid")
        return str(bucket), str(path)

    def resolve(self, bucket: str, path: str) -> Path:
        target = self._object_path(bucket, path)
        if not target.is_file():
            raise FetchError("File not found")
        return target


_storage: Optional[LocalStorageService] = None


def get_storage() -> LocalStorageService:
    """FastAPI dependency returning the process-wide storage backend."""
    global _storage
    if _storage is None:
        _storage = LocalStorageService(
            root=Path(os.getenv("STORAGE_ROOT", "uploads")),
            base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000"),
            secret_key=os.getenv("SECRET_KEY", "CHANGE_ME_NEXOR_DEV_KEY"),
            signed_url_expire_seconds=int(os.getenv("SIGNED_URL_EXPIRE_SECONDS", "3600")),
        )
    return _storage
