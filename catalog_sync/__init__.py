"""Catalog reconciliation and asset enrichment service."""
