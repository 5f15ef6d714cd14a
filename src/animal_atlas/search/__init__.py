"""Cross-source search, ranking and search suggestions."""
