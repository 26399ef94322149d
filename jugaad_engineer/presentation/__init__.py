"""
Presentation deck and printable export of a repair guide.
"""

from .builder import PAGE_SIZES, RepairGuidePDFBuilder
from .slides import BlueprintIcon, Slide, SlideDeck, blueprint_icon, build_slides

__all__ = [
    "PAGE_SIZES",
    "BlueprintIcon",
    "RepairGuidePDFBuilder",
    "Slide",
    "SlideDeck",
    "blueprint_icon",
    "build_slides",
]
