"""Populate the database with sample articles, products and comments.

Comment timestamps are spread over the past year, with deliberate
duplicates, so keyset paging can be exercised against realistic ties.
"""
import argparse
import asyncio
import logging
import random
import time
from datetime import datetime, timedelta, timezone

from market_api.database import Base, async_session, engine
from market_api.models import Article, ArticleComment, Product, ProductComment

logger = logging.getLogger("seed")

TAGS = ["electronics", "books", "fashion", "home", "sports", "toys", "beauty", "food"]
NOUNS = ["laptop", "novel", "jacket", "lamp", "ball", "puzzle", "serum", "coffee"]


def _past(now: datetime, max_days: int = 365) -> datetime:
    # Whole minutes only, so neighbouring rows often share a timestamp.
    return now - timedelta(minutes=random.randint(0, max_days * 24 * 60))


async def seed(small: bool = False, reset: bool = False) -> None:
    num_articles = 50 if small else 2000
    num_products = 50 if small else 2000
    max_comments = 5 if small else 30

    start = time.perf_counter()
    now = datetime.now(timezone.utc)

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    comment_count = 0
    async with async_session() as session:
        articles = [
            Article(
                title=f"Article {i}: notes on {random.choice(NOUNS)}",
                content=f"Body of article {i}. " * 20,
                created_at=_past(now),
            )
            for i in range(num_articles)
        ]
        products = [
            Product(
                name=f"{random.choice(NOUNS).title()} #{i}",
                description=f"Description of product {i}.",
                price=random.randint(1, 500) * 1000,
                tags=random.sample(TAGS, k=random.randint(0, 3)),
                created_at=_past(now),
            )
            for i in range(num_products)
        ]
        session.add_all(articles + products)
        await session.flush()
        logger.info("Created %d articles and %d products", len(articles), len(products))

        for article in articles:
            for _ in range(random.randint(0, max_comments)):
                session.add(ArticleComment(
                    content="Thanks for writing this.",
                    article_id=article.id,
                    created_at=_past(now, 30),
                ))
                comment_count += 1
        for product in products:
            for _ in range(random.randint(0, max_comments)):
                session.add(ProductComment(
                    content="Arrived quickly, works as described.",
                    product_id=product.id,
                    created_at=_past(now, 30),
                ))
                comment_count += 1

        await session.commit()

    await engine.dispose()
    logger.info("Seeded %d comments in %.1fs", comment_count, time.perf_counter() - start)


def main():
    parser = argparse.ArgumentParser(description="Seed the Market Board database")
    parser.add_argument("--small", action="store_true", help="50 articles and 50 products")
    parser.add_argument("--reset", action="store_true", help="drop all tables first")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    asyncio.run(seed(small=args.small, reset=args.reset))


if __name__ == "__main__":
    main()
