"""Animal Atlas: multi-source wildlife enrichment and caching pipeline."""

__version__ = "0.1.0"
