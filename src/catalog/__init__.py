"""
Checklist catalog for the two inspection phases.
"""

from src.catalog.checklist import (
    load_catalog,
    build_initial_sections,
    phase_info,
    get_sections_by_stage,
    get_phase_items,
    phase_stats,
)

__all__ = [
    "load_catalog",
    "build_initial_sections",
    "phase_info",
    "get_sections_by_stage",
    "get_phase_items",
    "phase_stats",
]
