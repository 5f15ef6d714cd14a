"""Service facade and dependency wiring."""
