"""Account deletion."""

from .orchestrator import AccountDeletionOrchestrator, DeletionSummary, DeletionType

__all__ = ["AccountDeletionOrchestrator", "DeletionSummary", "DeletionType"]
