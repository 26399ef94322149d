"""
Jugaad Engineer package exposing repair analysis, illustration, narration, chat, and export.
"""

from .chat import RepairChatSession
from .narration import StepNarrator
from .pipeline import AppState, JugaadOrchestrator, RepairPackage, RepairSession
from .presentation import RepairGuidePDFBuilder, SlideDeck
from .repair_planning import RepairAnalyst, RepairGuide, RepairStep, load_demo_guide

__all__ = [
    "AppState",
    "JugaadOrchestrator",
    "RepairAnalyst",
    "RepairChatSession",
    "RepairGuide",
    "RepairGuidePDFBuilder",
    "RepairPackage",
    "RepairSession",
    "RepairStep",
    "SlideDeck",
    "StepNarrator",
    "load_demo_guide",
]
