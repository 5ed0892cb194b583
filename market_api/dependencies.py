from fastapi import Query

from market_api.config import settings


class CursorParams:
    """
    Reusable FastAPI dependency for keyset-paginated list endpoints.

    Usage in a router::

        @router.get("/{article_id}/comments")
        async def list_comments(page: CursorParams = Depends()):
            ...

    Attributes
    ----------
    limit:
        Page size, ``1 <= limit <= COMMENT_PAGE_MAX_LIMIT``.  Anything
        outside that range is rejected with 422 rather than clamped.
    cursor:
        Opaque continuation token from a previous page's
        ``pageInfo.nextCursor``.  Tokens that cannot be decoded restart
        the listing from the first page.
    """

    def __init__(
        self,
        limit: int = Query(
            settings.COMMENT_PAGE_DEFAULT_LIMIT,
            ge=1,
            le=settings.COMMENT_PAGE_MAX_LIMIT,
            description="Number of items per page.",
        ),
        cursor: str | None = Query(
            None,
            description="Continuation token returned as pageInfo.nextCursor.",
        ),
    ) -> None:
        self.limit = limit
        self.cursor = cursor
