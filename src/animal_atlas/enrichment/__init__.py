"""Concurrent multi-source enrichment of a single animal."""
