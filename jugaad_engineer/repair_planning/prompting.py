"""
Prompt construction utilities for the repair analysis request.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import ActionType

DEFAULT_STEP_RANGE = (3, 5)


@dataclass(frozen=True)
class AnalysisPrompt:
    """
    Container for the system and user prompts passed to the analysis model.
    """

    system: str
    user: str


def build_analysis_prompt(
    *,
    step_range: tuple[int, int] = DEFAULT_STEP_RANGE,
    user_notes: str | None = None,
) -> AnalysisPrompt:
    """
    Build the prompt pair that accompanies the two photos.

    Image 1 is always the broken object and image 2 the scrap pile; the caller must
    attach them in that order.
    """
    lower, upper = step_range
    if lower < 1 or upper < lower:
        raise ValueError(f"Invalid step range {step_range!r}.")

    action_tags = ", ".join(f'"{action.value}"' for action in ActionType)

    system_prompt = f"""You are "The Jugaad Engineer", an expert structural engineer specializing in improvised repairs.
You plan fixes that use only what is lying around, and you explain the physics that makes each fix hold.

Output format:
Respond with valid JSON matching this schema:
{{
  "title": "A catchy title for the repair",
  "summary": "One sentence summary of the fix",
  "brokenObjectAnalysis": "Analysis of the damage and failure point",
  "scrapPileAnalysis": "Analysis of useful materials found in the scrap",
  "steps": [
    {{
      "title": "string, 2-6 words",
      "description": "string, 2-4 sentences of concrete instructions",
      "materialUsed": "string listing the scrap items and tools used",
      "physicsPrinciple": "The engineering/physics principle applied here",
      "actionType": one of [{action_tags}],
      "visualizationPrompt": "Highly detailed visual description of this step for an artist to draw."
    }}
  ]
}}

Do not include commentary outside the JSON."""

    user_prompt = f"""Image 1: The broken object.
Image 2: The scrap pile.

Task:
1. Identify the failure point.
2. Analyze the scrap pile for useful physics properties.
3. Devise a repair plan using ONLY the scrap materials.
4. Provide {lower}-{upper} distinct steps.
5. Tag every step with the single actionType that best describes what the hands are doing.
6. CRITICAL: For each step, write a "visualizationPrompt" that describes exactly what the image should show, including the position of hands, tools, and materials.

Output JSON."""

    if user_notes and user_notes.strip():
        user_prompt += f"\n\nNotes from the owner:\n{user_notes.strip()}"

    return AnalysisPrompt(system=system_prompt, user=user_prompt)
