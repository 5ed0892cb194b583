"""
Comment service — comments nested under articles and products.

Both comment families behave identically, so every function takes a
``CommentTarget`` describing which parent/comment models to use.  All
comment lookups are scoped to the parent named in the URL: a comment id
that belongs to another parent is treated as not found.

Listings are keyset-paginated newest first (``created_at DESC``) with
``id ASC`` as the tie-breaker.
"""
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from market_api.models import Article, ArticleComment, Product, ProductComment
from market_api.pagination import Page, paginate, sort_spec_from_ordering
from market_api.schemas import CommentCreate, CommentUpdate

COMMENT_ORDERING = ({"created_at": "desc"}, {"id": "asc"})
COMMENT_SORT = sort_spec_from_ordering(COMMENT_ORDERING)


@dataclass(frozen=True)
class CommentTarget:
    parent: type
    comment: type
    parent_key: str


ARTICLE_COMMENTS = CommentTarget(parent=Article, comment=ArticleComment, parent_key="article_id")
PRODUCT_COMMENTS = CommentTarget(parent=Product, comment=ProductComment, parent_key="product_id")


async def _parent_exists(db: AsyncSession, target: CommentTarget, parent_id: int) -> bool:
    result = await db.execute(select(target.parent.id).where(target.parent.id == parent_id))
    return result.scalar_one_or_none() is not None


async def _load(db: AsyncSession, target: CommentTarget, parent_id: int, comment_id: int):
    model = target.comment
    result = await db.execute(
        select(model).where(
            model.id == comment_id,
            getattr(model, target.parent_key) == parent_id,
        )
    )
    return result.scalar_one_or_none()


async def list_comments(
    db: AsyncSession,
    target: CommentTarget,
    parent_id: int,
    limit: int,
    cursor: str | None = None,
) -> Page | None:
    """
    Return one page of the parent's comments.

    Returns None when the parent does not exist.
    """
    if not await _parent_exists(db, target, parent_id):
        return None
    model = target.comment
    stmt = select(model).where(getattr(model, target.parent_key) == parent_id)
    return await paginate(db, stmt, model, COMMENT_SORT, limit, cursor)


async def add_comment(db: AsyncSession, target: CommentTarget, parent_id: int, data: CommentCreate):
    """Create a comment, or return None when the parent does not exist."""
    if not await _parent_exists(db, target, parent_id):
        return None
    comment = target.comment(content=data.content, **{target.parent_key: parent_id})
    db.add(comment)
    await db.flush()
    await db.refresh(comment)
    return comment


async def update_comment(
    db: AsyncSession,
    target: CommentTarget,
    parent_id: int,
    comment_id: int,
    data: CommentUpdate,
):
    comment = await _load(db, target, parent_id, comment_id)
    if comment is None:
        return None
    comment.content = data.content
    await db.flush()
    await db.refresh(comment)
    return comment


async def delete_comment(db: AsyncSession, target: CommentTarget, parent_id: int, comment_id: int):
    """Delete a comment and return it as it was, or None when not found."""
    comment = await _load(db, target, parent_id, comment_id)
    if comment is None:
        return None
    await db.delete(comment)
    await db.flush()
    return comment
