from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from market_api import storage
from market_api.database import get_db
from market_api.dependencies import CursorParams
from market_api.schemas import (
    CommentCreate,
    CommentUpdate,
    CursorPage,
    ImageResponse,
    ProductCommentResponse,
    ProductCreate,
    ProductListItem,
    ProductResponse,
    ProductUpdate,
    to_cursor_page,
)
from market_api.services import comment_service, image_service, product_service
from market_api.services.comment_service import PRODUCT_COMMENTS
from market_api.services.image_service import PRODUCT_IMAGE

router = APIRouter(prefix="/api/products", tags=["products"])

PRODUCT_NOT_FOUND = "Product not found"
COMMENT_NOT_FOUND = "Comment not found"


# --- Products ---

@router.get("", response_model=CursorPage[ProductListItem])
async def list_products(
    page: CursorParams = Depends(),
    keyword: str | None = Query(None, description="Match in name or description (case-insensitive)."),
    db: AsyncSession = Depends(get_db),
):
    result = await product_service.list_products(db, page.limit, page.cursor, keyword)
    return to_cursor_page(result, page.limit, ProductListItem)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    product = await product_service.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail=PRODUCT_NOT_FOUND)
    return product


@router.post("", status_code=201, response_model=ProductResponse)
async def create_product(data: ProductCreate, db: AsyncSession = Depends(get_db)):
    return await product_service.create_product(db, data)


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(product_id: int, data: ProductUpdate, db: AsyncSession = Depends(get_db)):
    product = await product_service.update_product(db, product_id, data)
    if not product:
        raise HTTPException(status_code=404, detail=PRODUCT_NOT_FOUND)
    return product


@router.delete("/{product_id}", status_code=204)
async def delete_product(product_id: int, db: AsyncSession = Depends(get_db)):
    if not await product_service.delete_product(db, product_id):
        raise HTTPException(status_code=404, detail=PRODUCT_NOT_FOUND)


# --- Comments ---

@router.get("/{product_id}/comments", response_model=CursorPage[ProductCommentResponse])
async def list_comments(
    product_id: int,
    page: CursorParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    result = await comment_service.list_comments(
        db, PRODUCT_COMMENTS, product_id, page.limit, page.cursor
    )
    if result is None:
        raise HTTPException(status_code=404, detail=PRODUCT_NOT_FOUND)
    return to_cursor_page(result, page.limit, ProductCommentResponse)


@router.post("/{product_id}/comments", status_code=201, response_model=ProductCommentResponse)
async def add_comment(product_id: int, data: CommentCreate, db: AsyncSession = Depends(get_db)):
    comment = await comment_service.add_comment(db, PRODUCT_COMMENTS, product_id, data)
    if not comment:
        raise HTTPException(status_code=404, detail=PRODUCT_NOT_FOUND)
    return comment


@router.patch("/{product_id}/comments/{comment_id}", response_model=ProductCommentResponse)
async def update_comment(
    product_id: int,
    comment_id: int,
    data: CommentUpdate,
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.update_comment(
        db, PRODUCT_COMMENTS, product_id, comment_id, data
    )
    if not comment:
        raise HTTPException(status_code=404, detail=COMMENT_NOT_FOUND)
    return comment


@router.delete("/{product_id}/comments/{comment_id}", response_model=ProductCommentResponse)
async def delete_comment(product_id: int, comment_id: int, db: AsyncSession = Depends(get_db)):
    comment = await comment_service.delete_comment(db, PRODUCT_COMMENTS, product_id, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail=COMMENT_NOT_FOUND)
    return comment


# --- Image ---

@router.post("/{product_id}/image", status_code=201, response_model=ImageResponse)
async def upload_image(
    product_id: int,
    image: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
):
    stored = await image_service.attach_image(db, PRODUCT_IMAGE, product_id, image)
    if stored is None:
        raise HTTPException(status_code=404, detail=PRODUCT_NOT_FOUND)
    return stored


@router.get("/{product_id}/image")
async def get_image(product_id: int, db: AsyncSession = Depends(get_db)):
    image = await image_service.get_image(db, PRODUCT_IMAGE, product_id)
    path = storage.absolute_path(image.path) if image else None
    if path is None or not path.is_file():
        raise HTTPException(status_code=404, detail="Product image not found")
    return FileResponse(path)


@router.delete("/{product_id}/image", status_code=204)
async def delete_image(product_id: int, db: AsyncSession = Depends(get_db)):
    if not await image_service.remove_image(db, PRODUCT_IMAGE, product_id):
        raise HTTPException(status_code=404, detail="Product image not found")
