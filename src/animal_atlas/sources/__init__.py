"""Source adapters for the external biodiversity APIs.

Each adapter wraps one upstream API behind a cached, never-raising interface.
Import adapters from their own modules; this package module stays free of
imports so the cache layer can depend on ``animal_atlas.sources.errors``.
"""
