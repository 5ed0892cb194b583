"""
Image service — the single image attached to an article or product.

Uploading replaces any existing image: the old row is deleted and its
file removed once the new row has been flushed.  The parent is checked
before anything is written to disk so a 404 never leaves a stray file.
"""
from dataclasses import dataclass

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from market_api import storage
from market_api.models import Article, ArticleImage, Product, ProductImage


@dataclass(frozen=True)
class ImageTarget:
    parent: type
    image: type
    parent_key: str
    directory: str


ARTICLE_IMAGE = ImageTarget(
    parent=Article, image=ArticleImage, parent_key="article_id", directory="images/articles"
)
PRODUCT_IMAGE = ImageTarget(
    parent=Product, image=ProductImage, parent_key="product_id", directory="images/products"
)


def image_to_dict(image) -> dict:
    return {
        "name": image.name,
        "size": image.size,
        "url": storage.public_url(image.path),
        "created_at": image.created_at,
    }


async def _parent_exists(db: AsyncSession, target: ImageTarget, parent_id: int) -> bool:
    result = await db.execute(select(target.parent.id).where(target.parent.id == parent_id))
    return result.scalar_one_or_none() is not None


async def get_image(db: AsyncSession, target: ImageTarget, parent_id: int):
    model = target.image
    result = await db.execute(select(model).where(getattr(model, target.parent_key) == parent_id))
    return result.scalar_one_or_none()


async def attach_image(
    db: AsyncSession, target: ImageTarget, parent_id: int, upload: UploadFile
) -> dict | None:
    """
    Store *upload* as the parent's image.

    Returns None when the parent does not exist; raises
    ``storage.InvalidImageError`` for rejected files.
    """
    if not await _parent_exists(db, target, parent_id):
        return None

    stored = await storage.save_image(upload, f"{target.directory}/{parent_id}", str(parent_id))

    previous = await get_image(db, target, parent_id)
    if previous is not None:
        await db.delete(previous)
        await db.flush()

    image = target.image(
        name=stored.name, path=stored.path, size=stored.size, **{target.parent_key: parent_id}
    )
    db.add(image)
    try:
        await db.flush()
    except Exception:
        await storage.remove_file(stored.path)
        raise

    if previous is not None:
        await storage.remove_file(previous.path)
    return image_to_dict(image)


async def remove_image(db: AsyncSession, target: ImageTarget, parent_id: int) -> bool:
    image = await get_image(db, target, parent_id)
    if image is None:
        return False
    await db.delete(image)
    await db.flush()
    await storage.remove_file(image.path)
    return True
