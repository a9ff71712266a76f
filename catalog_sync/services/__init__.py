"""Reconciliation and enrichment services."""
