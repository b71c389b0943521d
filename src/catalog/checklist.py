"""
Checklist catalog: static sections and items for both inspection phases.
Loaded from config/checklist.yaml.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from src.schemas.models import (
    InspectionItem,
    InspectionSection,
    ItemStatus,
    Phase,
    PhaseStats,
)
from utils.config import config
from utils.logger import setup_logger

logger = setup_logger(__name__, level=config.log_level, component="CATALOG")


@lru_cache(maxsize=4)
def _read_catalog(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if "phases" not in data:
        raise ValueError(f"Checklist catalog {path} has no 'phases' section")
    return data


def load_catalog(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load the raw checklist catalog.

    Args:
        path: Optional override, defaults to CHECKLIST_PATH / config/checklist.yaml

    Returns:
        Parsed YAML document
    """
    catalog_path = Path(path) if path else config.get_checklist_path()
    return _read_catalog(str(catalog_path.resolve()))


def build_initial_sections(path: Optional[Path] = None) -> List[InspectionSection]:
    """
    Build a fresh, all-pending checklist for a new inspection.

    Sections are ordered on delivery first, then test drive, in catalog order.

    Raises:
        ValueError: If an item id appears more than once
    """
    catalog = load_catalog(path)
    default_evidence = catalog.get("defaults", {}).get("evidence_required", "")

    sections: List[InspectionSection] = []
    seen_ids = set()

    for phase in Phase:
        phase_data = catalog["phases"].get(phase.value, {})
        for raw_section in phase_data.get("sections", []):
            category = raw_section.get("category", raw_section["name"])
            items = []
            for raw_item in raw_section.get("items", []):
                if raw_item["id"] in seen_ids:
                    raise ValueError(f"Duplicate checklist item id: {raw_item['id']}")
                seen_ids.add(raw_item["id"])

                items.append(InspectionItem(
                    id=raw_item["id"],
                    name=raw_item["name"],
                    description=raw_item.get("description", ""),
                    category=raw_item.get("category", category),
                    discovery_stage=phase,
                    status=ItemStatus.PENDING,
                    suggested_solutions=raw_item.get("suggested_solutions", []),
                    additional_links=raw_item.get("additional_links", []),
                    evidence_required=raw_item.get("evidence_required", default_evidence),
                ))

            sections.append(InspectionSection(
                id=raw_section["id"],
                name=raw_section["name"],
                discovery_stage=phase,
                items=items,
            ))

    logger.debug(f"Built checklist: {len(sections)} sections, {len(seen_ids)} items")
    return sections


def phase_info(phase: Phase, path: Optional[Path] = None) -> Dict[str, str]:
    """Title and description of a phase for display."""
    phase_data = load_catalog(path)["phases"].get(Phase(phase).value, {})
    return {
        "title": phase_data.get("title", Phase(phase).label),
        "description": phase_data.get("description", ""),
    }


def get_sections_by_stage(
    stage: Phase,
    sections: Optional[List[InspectionSection]] = None
) -> List[InspectionSection]:
    """Sections belonging to one discovery stage (catalog sections when none given)."""
    if sections is None:
        sections = build_initial_sections()
    return [s for s in sections if s.discovery_stage == stage]


def get_phase_items(
    phase: Phase,
    sections: Optional[List[InspectionSection]] = None
) -> List[InspectionItem]:
    """All items of a phase, flattened in section order."""
    return [item for s in get_sections_by_stage(phase, sections) for item in s.items]


def phase_stats(phase: Phase, sections: Iterable[InspectionSection]) -> PhaseStats:
    """
    Count items of a phase by status.

    Args:
        phase: Phase to summarize
        sections: Current inspection sections

    Returns:
        PhaseStats with total, completed (passed or failed) and failed counts
    """
    items = get_phase_items(phase, list(sections))
    return PhaseStats(
        total=len(items),
        completed=sum(1 for i in items if i.status != ItemStatus.PENDING),
        failed=sum(1 for i in items if i.status == ItemStatus.FAILED),
    )
