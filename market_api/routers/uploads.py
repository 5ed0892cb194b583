from fastapi import APIRouter, File, Form, UploadFile

from market_api import storage
from market_api.schemas import UploadResponse

router = APIRouter(prefix="/api/upload", tags=["upload"])


@router.post("/image", status_code=201, response_model=UploadResponse)
async def upload_image(
    image: UploadFile | None = File(None),
    type: str = Form("temp", description="Sub-directory under /uploads, e.g. 'market' or 'article'."),
):
    """Store a standalone image and return the URL it is served from."""
    stored = await storage.save_image(image, storage.safe_segment(type), "image")
    return UploadResponse(filename=stored.name, size=stored.size, url=storage.public_url(stored.path))
