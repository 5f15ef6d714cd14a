"""Shared utilities for Animal Atlas."""
