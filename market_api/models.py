from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from market_api.database import Base

# BIGINT primary keys only autoincrement as INTEGER on SQLite.
BigId = BigInteger().with_variant(Integer, "sqlite")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Timestamps are assigned client-side so cursor values round-trip with
# exactly the precision and format the driver stores.
def _created_at() -> Mapped[datetime]:
    return mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


def _updated_at() -> Mapped[Optional[datetime]]:
    return mapped_column(DateTime(timezone=True), onupdate=_utcnow, nullable=True)


# ---------------------------------------------------------------------------
# Article
# ---------------------------------------------------------------------------
class Article(Base):
    __tablename__ = "articles"

    __table_args__ = (
        # Keyset listing: created_at DESC, id DESC
        Index("ix_articles_created_at_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[Optional[datetime]] = _updated_at()

    # lazy="noload": services choose their loading strategy explicitly
    comments: Mapped[List["ArticleComment"]] = relationship(
        "ArticleComment", back_populates="article", lazy="noload",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    image: Mapped[Optional["ArticleImage"]] = relationship(
        "ArticleImage", back_populates="article", lazy="noload", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )


class ArticleComment(Base):
    __tablename__ = "article_comments"

    __table_args__ = (
        # Comment listing per article: created_at DESC, id ASC
        Index("ix_article_comments_article_id_created_at_id", "article_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[Optional[datetime]] = _updated_at()

    article_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False
    )
    article: Mapped["Article"] = relationship("Article", back_populates="comments", lazy="noload")


class ArticleImage(Base):
    __tablename__ = "article_images"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(String(1024), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = _created_at()

    article_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    article: Mapped["Article"] = relationship("Article", back_populates="image", lazy="noload")


# ---------------------------------------------------------------------------
# Product
# ---------------------------------------------------------------------------
class Product(Base):
    __tablename__ = "products"

    __table_args__ = (
        Index("ix_products_created_at_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[Optional[datetime]] = _updated_at()

    comments: Mapped[List["ProductComment"]] = relationship(
        "ProductComment", back_populates="product", lazy="noload",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    image: Mapped[Optional["ProductImage"]] = relationship(
        "ProductImage", back_populates="product", lazy="noload", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )


class ProductComment(Base):
    __tablename__ = "product_comments"

    __table_args__ = (
        Index("ix_product_comments_product_id_created_at_id", "product_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[Optional[datetime]] = _updated_at()

    product_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    product: Mapped["Product"] = relationship("Product", back_populates="comments", lazy="noload")


class ProductImage(Base):
    __tablename__ = "product_images"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(String(1024), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = _created_at()

    product_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    product: Mapped["Product"] = relationship("Product", back_populates="image", lazy="noload")
