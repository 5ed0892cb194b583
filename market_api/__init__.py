"""Market Board API: articles and products with keyset-paginated comments."""
