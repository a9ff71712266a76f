"""Utility helpers shared across the catalog export."""
