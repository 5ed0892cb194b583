"""
Direct service-layer tests — exercises business logic without HTTP overhead.

These call service functions with a live session, covering the query
paths, parent scoping and the cache-aside detail reads (with a small
in-memory stand-in for the Redis client).
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from market_api.cache import cache
from market_api.schemas import (
    ArticleCreate,
    ArticleUpdate,
    CommentCreate,
    CommentUpdate,
    ProductCreate,
    ProductUpdate,
)
from market_api.services import article_service, comment_service, product_service
from market_api.services.comment_service import ARTICLE_COMMENTS, PRODUCT_COMMENTS


class _MemoryRedis:
    """Just enough of ``redis.asyncio.Redis`` for CacheManager."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value

    async def delete(self, key):
        self.store.pop(key, None)


@pytest.fixture
def redis_store(monkeypatch) -> dict:
    fake = _MemoryRedis()
    monkeypatch.setattr(cache, "_redis", fake)
    return fake.store


@pytest.fixture
def no_redis(monkeypatch):
    monkeypatch.setattr(cache, "_redis", None)


# ---------------------------------------------------------------------------
# article_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_articles_empty(db_session: AsyncSession):
    page = await article_service.list_articles(db_session, limit=10)
    assert page.items == []
    assert page.has_next_page is False
    assert page.next_cursor is None


@pytest.mark.asyncio
async def test_create_and_list_articles(db_session: AsyncSession):
    for i in range(3):
        await article_service.create_article(db_session, ArticleCreate(title=f"T{i}", content="C"))

    page = await article_service.list_articles(db_session, limit=2)
    assert [a.title for a in page.items] == ["T2", "T1"]
    assert page.has_next_page is True

    rest = await article_service.list_articles(db_session, limit=2, cursor=page.next_cursor)
    assert [a.title for a in rest.items] == ["T0"]
    assert rest.next_cursor is None


@pytest.mark.asyncio
async def test_get_article_not_found(db_session: AsyncSession, no_redis):
    assert await article_service.get_article(db_session, 12345) is None


@pytest.mark.asyncio
async def test_get_article_is_cached_until_updated(db_session: AsyncSession, redis_store: dict):
    article = await article_service.create_article(db_session, ArticleCreate(title="Old", content="C"))
    key = cache.detail_key("articles", article.id)

    first = await article_service.get_article(db_session, article.id)
    assert first["title"] == "Old"
    assert key in redis_store

    again = await article_service.get_article(db_session, article.id)
    assert again == first

    await article_service.update_article(db_session, article.id, ArticleUpdate(title="New"))
    assert key not in redis_store
    assert (await article_service.get_article(db_session, article.id))["title"] == "New"


@pytest.mark.asyncio
async def test_update_nonexistent_article(db_session: AsyncSession, no_redis):
    assert await article_service.update_article(db_session, 999, ArticleUpdate(title="X")) is None


@pytest.mark.asyncio
async def test_delete_article(db_session: AsyncSession, redis_store: dict):
    article = await article_service.create_article(db_session, ArticleCreate(title="T", content="C"))
    await article_service.get_article(db_session, article.id)

    assert await article_service.delete_article(db_session, article.id) is True
    assert redis_store == {}
    assert await article_service.delete_article(db_session, article.id) is False


# ---------------------------------------------------------------------------
# product_service
# ---------------------------------------------------------------------------

def _product(**overrides) -> ProductCreate:
    data = {"name": "Desk", "description": "Oak", "price": 250000, "tags": ["furniture"]}
    return ProductCreate(**{**data, **overrides})


@pytest.mark.asyncio
async def test_create_and_update_product(db_session: AsyncSession, no_redis):
    product = await product_service.create_product(db_session, _product())
    assert product.tags == ["furniture"]

    updated = await product_service.update_product(db_session, product.id, ProductUpdate(price=1))
    assert updated.price == 1
    assert updated.name == "Desk"


@pytest.mark.asyncio
async def test_list_products_keyword(db_session: AsyncSession):
    await product_service.create_product(db_session, _product(name="Standing DESK"))
    await product_service.create_product(db_session, _product(name="Chair", description="Mesh"))

    page = await product_service.list_products(db_session, limit=10, keyword="desk")
    assert [p.name for p in page.items] == ["Standing DESK"]


@pytest.mark.asyncio
async def test_get_product_detail(db_session: AsyncSession, no_redis):
    product = await product_service.create_product(db_session, _product())
    data = await product_service.get_product(db_session, product.id)
    assert data["id"] == str(product.id)
    assert data["tags"] == ["furniture"]
    assert await product_service.get_product(db_session, product.id + 1) is None


# ---------------------------------------------------------------------------
# comment_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_comment_lifecycle_on_article(db_session: AsyncSession):
    article = await article_service.create_article(db_session, ArticleCreate(title="T", content="C"))

    comment = await comment_service.add_comment(
        db_session, ARTICLE_COMMENTS, article.id, CommentCreate(content="Hi")
    )
    assert comment.article_id == article.id

    edited = await comment_service.update_comment(
        db_session, ARTICLE_COMMENTS, article.id, comment.id, CommentUpdate(content="Hello")
    )
    assert edited.content == "Hello"

    page = await comment_service.list_comments(db_session, ARTICLE_COMMENTS, article.id, limit=10)
    assert [c.id for c in page.items] == [comment.id]

    removed = await comment_service.delete_comment(db_session, ARTICLE_COMMENTS, article.id, comment.id)
    assert removed.id == comment.id
    page = await comment_service.list_comments(db_session, ARTICLE_COMMENTS, article.id, limit=10)
    assert page.items == []


@pytest.mark.asyncio
async def test_comment_families_do_not_mix(db_session: AsyncSession):
    article = await article_service.create_article(db_session, ArticleCreate(title="T", content="C"))
    product = await product_service.create_product(db_session, _product())
    assert article.id == product.id

    await comment_service.add_comment(db_session, ARTICLE_COMMENTS, article.id, CommentCreate(content="A"))
    comment = await comment_service.add_comment(
        db_session, PRODUCT_COMMENTS, product.id, CommentCreate(content="P")
    )

    page = await comment_service.list_comments(db_session, PRODUCT_COMMENTS, product.id, limit=10)
    assert [c.content for c in page.items] == ["P"]
    assert comment.product_id == product.id


@pytest.mark.asyncio
async def test_comment_service_missing_parent(db_session: AsyncSession):
    assert await comment_service.list_comments(db_session, PRODUCT_COMMENTS, 42, limit=10) is None
    assert await comment_service.add_comment(
        db_session, PRODUCT_COMMENTS, 42, CommentCreate(content="x")
    ) is None
    assert await comment_service.delete_comment(db_session, PRODUCT_COMMENTS, 42, 1) is None
