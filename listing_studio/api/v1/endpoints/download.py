"""
Bulk download endpoints
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from listing_studio.core.deps import get_db, get_storage_backend
from listing_studio.schemas.download import ZipDownloadRequest
from listing_studio.services.download import DownloadService
from listing_studio.services.storage import Storage

router = APIRouter()


@router.post("/download/zip")
async def download_zip(
    request: ZipDownloadRequest,
    storage: Storage = Depends(get_storage_backend),
    db: Session = Depends(get_db),
):
    """
    Zip source and/or generated images, one folder per product
    """
    archive = await DownloadService(db, storage=storage).build_zip(request.productIds, scope=request.scope)
    return Response(
        content=archive.data,
        media_type=archive.content_type,
        headers={"Content-Disposition": f'attachment; filename="{archive.file_name}"'},
    )
