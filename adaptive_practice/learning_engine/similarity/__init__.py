"""Duplicate and near-duplicate avoidance."""
