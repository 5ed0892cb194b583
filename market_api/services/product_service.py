"""
Product service — business logic for the Product aggregate.

Mirrors ``article_service``: keyset-paginated list (newest first),
cache-aside detail reads, flush-only writes.  A ``keyword`` narrows the
list to products whose name or description contains it, ignoring case.
"""
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from market_api.cache import cache
from market_api.config import settings
from market_api.models import Product, ProductImage
from market_api.pagination import Page, paginate, sort_spec_from_ordering
from market_api.schemas import ProductCreate, ProductResponse, ProductUpdate
from market_api.storage import remove_file

RESOURCE = "products"

PRODUCT_SORT = sort_spec_from_ordering(({"created_at": "desc"}, {"id": "desc"}))


async def _load(db: AsyncSession, product_id: int) -> Product | None:
    result = await db.execute(select(Product).where(Product.id == product_id))
    return result.scalar_one_or_none()


async def list_products(
    db: AsyncSession,
    limit: int,
    cursor: str | None = None,
    keyword: str | None = None,
) -> Page[Product]:
    stmt = select(Product)
    if keyword:
        pattern = f"%{keyword.lower()}%"
        stmt = stmt.where(
            or_(func.lower(Product.name).like(pattern), func.lower(Product.description).like(pattern))
        )
    return await paginate(db, stmt, Product, PRODUCT_SORT, limit, cursor)


async def get_product(db: AsyncSession, product_id: int) -> dict | None:
    key = cache.detail_key(RESOURCE, product_id)
    cached = await cache.get(key)
    if cached:
        return cached

    product = await _load(db, product_id)
    if product is None:
        return None

    data = ProductResponse.model_validate(product).model_dump(mode="json")
    await cache.set(key, data, ttl=settings.CACHE_TTL_DETAIL)
    return data


async def create_product(db: AsyncSession, data: ProductCreate) -> Product:
    product = Product(**data.model_dump())
    db.add(product)
    await db.flush()
    await db.refresh(product)
    return product


async def update_product(db: AsyncSession, product_id: int, data: ProductUpdate) -> Product | None:
    product = await _load(db, product_id)
    if product is None:
        return None

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(product, field, value)

    await db.flush()
    await db.refresh(product)
    await cache.invalidate(RESOURCE, product_id)
    return product


async def delete_product(db: AsyncSession, product_id: int) -> bool:
    product = await _load(db, product_id)
    if product is None:
        return False

    image_path = (
        await db.execute(select(ProductImage.path).where(ProductImage.product_id == product_id))
    ).scalar_one_or_none()

    await db.delete(product)
    await db.flush()
    if image_path is not None:
        await remove_file(image_path)
    await cache.invalidate(RESOURCE, product_id)
    return True
