from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from market_api import storage
from market_api.database import get_db
from market_api.dependencies import CursorParams
from market_api.schemas import (
    ArticleCommentResponse,
    ArticleCreate,
    ArticleResponse,
    ArticleUpdate,
    CommentCreate,
    CommentUpdate,
    CursorPage,
    ImageResponse,
    to_cursor_page,
)
from market_api.services import article_service, comment_service, image_service
from market_api.services.comment_service import ARTICLE_COMMENTS
from market_api.services.image_service import ARTICLE_IMAGE

router = APIRouter(prefix="/api/articles", tags=["articles"])

ARTICLE_NOT_FOUND = "Article not found"
COMMENT_NOT_FOUND = "Comment not found"


# --- Articles ---

@router.get("", response_model=CursorPage[ArticleResponse])
async def list_articles(
    page: CursorParams = Depends(),
    keyword: str | None = Query(None, description="Match in title or content."),
    db: AsyncSession = Depends(get_db),
):
    result = await article_service.list_articles(db, page.limit, page.cursor, keyword)
    return to_cursor_page(result, page.limit, ArticleResponse)


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(article_id: int, db: AsyncSession = Depends(get_db)):
    article = await article_service.get_article(db, article_id)
    if not article:
        raise HTTPException(status_code=404, detail=ARTICLE_NOT_FOUND)
    return article


@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(data: ArticleCreate, db: AsyncSession = Depends(get_db)):
    return await article_service.create_article(db, data)


@router.patch("/{article_id}", response_model=ArticleResponse)
async def update_article(article_id: int, data: ArticleUpdate, db: AsyncSession = Depends(get_db)):
    article = await article_service.update_article(db, article_id, data)
    if not article:
        raise HTTPException(status_code=404, detail=ARTICLE_NOT_FOUND)
    return article


@router.delete("/{article_id}", status_code=204)
async def delete_article(article_id: int, db: AsyncSession = Depends(get_db)):
    if not await article_service.delete_article(db, article_id):
        raise HTTPException(status_code=404, detail=ARTICLE_NOT_FOUND)


# --- Comments ---

@router.get("/{article_id}/comments", response_model=CursorPage[ArticleCommentResponse])
async def list_comments(
    article_id: int,
    page: CursorParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    result = await comment_service.list_comments(
        db, ARTICLE_COMMENTS, article_id, page.limit, page.cursor
    )
    if result is None:
        raise HTTPException(status_code=404, detail=ARTICLE_NOT_FOUND)
    return to_cursor_page(result, page.limit, ArticleCommentResponse)


@router.post("/{article_id}/comments", status_code=201, response_model=ArticleCommentResponse)
async def add_comment(article_id: int, data: CommentCreate, db: AsyncSession = Depends(get_db)):
    comment = await comment_service.add_comment(db, ARTICLE_COMMENTS, article_id, data)
    if not comment:
        raise HTTPException(status_code=404, detail=ARTICLE_NOT_FOUND)
    return comment


@router.patch("/{article_id}/comments/{comment_id}", response_model=ArticleCommentResponse)
async def update_comment(
    article_id: int,
    comment_id: int,
    data: CommentUpdate,
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.update_comment(
        db, ARTICLE_COMMENTS, article_id, comment_id, data
    )
    if not comment:
        raise HTTPException(status_code=404, detail=COMMENT_NOT_FOUND)
    return comment


@router.delete("/{article_id}/comments/{comment_id}", response_model=ArticleCommentResponse)
async def delete_comment(article_id: int, comment_id: int, db: AsyncSession = Depends(get_db)):
    comment = await comment_service.delete_comment(db, ARTICLE_COMMENTS, article_id, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail=COMMENT_NOT_FOUND)
    return comment


# --- Image ---

@router.post("/{article_id}/image", status_code=201, response_model=ImageResponse)
async def upload_image(
    article_id: int,
    image: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
):
    stored = await image_service.attach_image(db, ARTICLE_IMAGE, article_id, image)
    if stored is None:
        raise HTTPException(status_code=404, detail=ARTICLE_NOT_FOUND)
    return stored


@router.get("/{article_id}/image")
async def get_image(article_id: int, db: AsyncSession = Depends(get_db)):
    image = await image_service.get_image(db, ARTICLE_IMAGE, article_id)
    path = storage.absolute_path(image.path) if image else None
    if path is None or not path.is_file():
        raise HTTPException(status_code=404, detail="Article image not found")
    return FileResponse(path)


@router.delete("/{article_id}/image", status_code=204)
async def delete_image(article_id: int, db: AsyncSession = Depends(get_db)):
    if not await image_service.remove_image(db, ARTICLE_IMAGE, article_id):
        raise HTTPException(status_code=404, detail="Article image not found")
