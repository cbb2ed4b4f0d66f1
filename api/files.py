"""
Download endpoints for stored attachments.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from services.exceptions import FetchError
from services.storage_service import LocalStorageService, get_storage

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/signed/{token}")
def download_signed(
    token: str,
    storage: LocalStorageService = Depends(get_storage)
):
    bucket, path = storage.verify_signed_token(token)
    return FileResponse(storage.resolve(bucket, path))


@router.get("/{bucket}/{path:path}")
def download_public(
    bucket: str,
    path: str,
    storage: LocalStorageService = Depends(get_storage)
):
    """Public buckets only. Private files need a signed URL."""
    if not storage.is_public(bucket):
        raise FetchError("File not found")
    return FileResponse(storage.resolve(bucket, path))
