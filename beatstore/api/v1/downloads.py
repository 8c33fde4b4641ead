"""
Download access endpoint.
"""
from fastapi import APIRouter, Depends

from beatstore.core.deps import DbSession, OptionalUser, StorageDep, rate_limit_by_ip
from beatstore.core.exceptions import OwnershipMismatchError
from beatstore.schemas.download import DownloadRequest, DownloadResponse
from beatstore.services.download_service import DownloadService

router = APIRouter(prefix="/downloads", tags=["Downloads"])


@router.post(
    "",
    response_model=DownloadResponse,
    dependencies=[Depends(rate_limit_by_ip("download", "RATE_LIMIT_DOWNLOAD_PER_WINDOW"))],
)
async def get_downloads(
    data: DownloadRequest,
    db: DbSession,
    user: OptionalUser,
    storage: StorageDep,
):
    """Signed file links for a completed order."""
    if user is not None and user.email.lower() != str(data.customer_email).lower():
        raise OwnershipMismatchError("You can only access your own orders")

    service = DownloadService(db, storage)
    return await service.get_downloads(data.order_id, str(data.customer_email))
