"""Server-side search orchestration."""

from .orchestrator import AutocompleteField, SearchOrchestrator

__all__ = ["AutocompleteField", "SearchOrchestrator"]
