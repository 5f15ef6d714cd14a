"""Species classification and record models."""
