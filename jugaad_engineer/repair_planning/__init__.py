"""
Repair plan generation: the analysis request, its prompt, and the plan data model.
"""

from .analyst import RepairAnalyst, parse_repair_guide
from .demo import load_demo_guide
from .models import ActionType, RepairGuide, RepairStep
from .prompting import AnalysisPrompt, build_analysis_prompt

__all__ = [
    "ActionType",
    "AnalysisPrompt",
    "RepairAnalyst",
    "RepairGuide",
    "RepairStep",
    "build_analysis_prompt",
    "load_demo_guide",
    "parse_repair_guide",
]
