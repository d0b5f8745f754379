"""Multi-tier question retrieval."""
