from datetime import datetime
from typing import Annotated, Generic, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    StringConstraints,
    model_validator,
)

from market_api.pagination import Page

T = TypeVar("T")


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]
Title = Annotated[NonBlankStr, StringConstraints(max_length=300)]
Name = Annotated[NonBlankStr, StringConstraints(max_length=200)]
Price = Annotated[int, Field(ge=0)]

# Identifiers are BIGINT; JSON clients get them as decimal strings.
Id = Annotated[int, PlainSerializer(str, return_type=str, when_used="json")]


class _PartialUpdate(BaseModel):
    """Base for PATCH payloads: at least one field, and no explicit nulls."""

    @model_validator(mode="after")
    def _check_fields(self):
        if not self.model_fields_set:
            raise ValueError("at least one field must be provided")
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} must not be null")
        return self


# --- Comment ---

class CommentCreate(BaseModel):
    content: NonBlankStr


class CommentUpdate(BaseModel):
    content: NonBlankStr


class CommentResponse(BaseModel):
    id: Id
    content: str
    created_at: datetime
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class ArticleCommentResponse(CommentResponse):
    article_id: Id


class ProductCommentResponse(CommentResponse):
    product_id: Id


# --- Image / upload ---

class ImageResponse(BaseModel):
    name: str
    size: int
    url: str
    created_at: datetime | None = None


class UploadResponse(BaseModel):
    filename: str
    size: int
    url: str


# --- Article ---

class ArticleCreate(BaseModel):
    title: Title
    content: NonBlankStr


class ArticleUpdate(_PartialUpdate):
    title: Title | None = None
    content: NonBlankStr | None = None


class ArticleResponse(BaseModel):
    id: Id
    title: str
    content: str
    created_at: datetime
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


# --- Product ---

class ProductCreate(BaseModel):
    name: Name
    description: NonBlankStr
    price: Price
    tags: list[str]


class ProductUpdate(_PartialUpdate):
    name: Name | None = None
    description: NonBlankStr | None = None
    price: Price | None = None
    tags: list[str] | None = None


class ProductListItem(BaseModel):
    id: Id
    name: str
    price: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ProductResponse(ProductListItem):
    description: str
    tags: list[str]
    updated_at: datetime | None = None


# --- Cursor pagination ---

class PageInfo(BaseModel):
    limit: int
    has_next_page: bool = Field(alias="hasNextPage")
    next_cursor: str | None = Field(alias="nextCursor")
    model_config = ConfigDict(populate_by_name=True)


class CursorPage(BaseModel, Generic[T]):
    items: list[T]
    page_info: PageInfo = Field(alias="pageInfo")
    model_config = ConfigDict(populate_by_name=True)


def to_cursor_page(page: Page, limit: int, item_schema: type[BaseModel]) -> CursorPage:
    """Wrap an engine ``Page`` of ORM rows in the HTTP response envelope."""
    return CursorPage[item_schema](
        items=[item_schema.model_validate(item) for item in page.items],
        page_info=PageInfo(
            limit=limit,
            has_next_page=page.has_next_page,
            next_cursor=page.next_cursor,
        ),
    )
