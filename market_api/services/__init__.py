# Services package.
#
# Each module exposes async functions that hold the business logic and
# database access for one concern:
#
#   article_service  — CRUD + keyset listing + detail cache for Article
#   product_service  — CRUD + keyset listing + detail cache for Product
#   comment_service  — comments under either parent, keyset listing
#   image_service    — the single image attached to either parent
#
# All service functions take an AsyncSession as their first argument so
# the router layer owns the transaction boundary via ``get_db``.
