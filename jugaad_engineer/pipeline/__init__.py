"""
End-to-end orchestration and session state for Jugaad Engineer.
"""

from .pipeline import JugaadOrchestrator, RepairPackage, StepAsset
from .session import AppState, RepairSession

__all__ = [
    "AppState",
    "JugaadOrchestrator",
    "RepairPackage",
    "RepairSession",
    "StepAsset",
]
