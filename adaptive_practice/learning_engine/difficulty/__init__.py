"""Per-student difficulty adaptation."""
