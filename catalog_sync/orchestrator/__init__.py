"""Export orchestration."""

from catalog_sync.orchestrator.export import ExportOrchestrator, ExportReport

__all__ = ["ExportOrchestrator", "ExportReport"]
