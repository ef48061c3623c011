"""
Purpose: Static crop knowledge base consulted by the intent resolver.
Loaded once at import; read-only. Dictionary order is the match order.
"""

from __future__ import annotations
from typing import Optional

from ..models import CropKnowledgeEntry, PriceTrend


CROP_KNOWLEDGE: dict[str, CropKnowledgeEntry] = {
    "corn": CropKnowledgeEntry(
        "corn",
        "RM 1.50/kg",
        PriceTrend.DECREASING,
        "Fall Armyworm",
        "Ensure soil moisture is consistent.",
    ),
    "chili": CropKnowledgeEntry(
        "chili",
        "RM 12.50/kg",
        PriceTrend.INCREASING,
        "Aphids",
        "Check under leaves for pests.",
    ),
    "paddy": CropKnowledgeEntry(
        "paddy",
        "RM 2.40/kg",
        PriceTrend.STABLE,
        "Stem Borer",
        "Monitor water levels closely.",
    ),
    "tomato": CropKnowledgeEntry(
        "tomato",
        "RM 3.20/kg",
        PriceTrend.STABLE,
        "Late Blight",
        "Avoid overhead watering to prevent fungus.",
    ),
    "spinach": CropKnowledgeEntry(
        "spinach",
        "RM 4.00/kg",
        PriceTrend.INCREASING,
        "Leaf Miners",
        "Harvest early morning for best crispness.",
    ),
}


def find_crop(
    text: str, knowledge: Optional[dict[str, CropKnowledgeEntry]] = None
) -> Optional[CropKnowledgeEntry]:
    """First crop (in dictionary order) whose name occurs in `text`."""
    t = (text or "").lower()
    for name, entry in (knowledge or CROP_KNOWLEDGE).items():
        if name in t:
            return entry
    return None
