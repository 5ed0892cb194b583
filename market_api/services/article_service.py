"""
Article service — business logic for the Article aggregate.

Design notes
------------
- The list view uses keyset pagination (``created_at DESC, id DESC``);
  ``id`` breaks ties between articles created in the same instant.
- Detail reads go through the cache-aside pattern (Redis, falling back
  to the DB).  Every write invalidates the article's detail entry.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from market_api.cache import cache
from market_api.config import settings
from market_api.models import Article, ArticleImage
from market_api.pagination import Page, paginate, sort_spec_from_ordering
from market_api.schemas import ArticleCreate, ArticleResponse, ArticleUpdate
from market_api.storage import remove_file

RESOURCE = "articles"

ARTICLE_ORDERING = ({"created_at": "desc"}, {"id": "desc"})
ARTICLE_SORT = sort_spec_from_ordering(ARTICLE_ORDERING)


async def _load(db: AsyncSession, article_id: int) -> Article | None:
    result = await db.execute(select(Article).where(Article.id == article_id))
    return result.scalar_one_or_none()


async def list_articles(
    db: AsyncSession,
    limit: int,
    cursor: str | None = None,
    keyword: str | None = None,
) -> Page[Article]:
    """Return one page of articles, newest first, optionally filtered by *keyword*."""
    stmt = select(Article)
    if keyword:
        stmt = stmt.where(or_(Article.title.contains(keyword), Article.content.contains(keyword)))
    return await paginate(db, stmt, Article, ARTICLE_SORT, limit, cursor)


async def get_article(db: AsyncSession, article_id: int) -> dict | None:
    """Return the serialised article, or None when it does not exist."""
    key = cache.detail_key(RESOURCE, article_id)
    cached = await cache.get(key)
    if cached:
        return cached

    article = await _load(db, article_id)
    if article is None:
        return None

    data = ArticleResponse.model_validate(article).model_dump(mode="json")
    await cache.set(key, data, ttl=settings.CACHE_TTL_DETAIL)
    return data


async def create_article(db: AsyncSession, data: ArticleCreate) -> Article:
    article = Article(title=data.title, content=data.content)
    db.add(article)
    await db.flush()
    await db.refresh(article)
    return article


async def update_article(db: AsyncSession, article_id: int, data: ArticleUpdate) -> Article | None:
    """
    Apply the fields present in the PATCH payload.

    Returns None when the article does not exist.
    """
    article = await _load(db, article_id)
    if article is None:
        return None

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(article, field, value)

    await db.flush()
    await db.refresh(article)
    await cache.invalidate(RESOURCE, article_id)
    return article


async def delete_article(db: AsyncSession, article_id: int) -> bool:
    """
    Delete the article together with its comments and image.

    Returns False when the article does not exist.
    """
    article = await _load(db, article_id)
    if article is None:
        return False

    image_path = (
        await db.execute(select(ArticleImage.path).where(ArticleImage.article_id == article_id))
    ).scalar_one_or_none()

    await db.delete(article)
    await db.flush()
    if image_path is not None:
        await remove_file(image_path)
    await cache.invalidate(RESOURCE, article_id)
    return True
