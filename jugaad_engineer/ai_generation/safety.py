"""
Lexical scrubbing of illustration prompts before they reach the image provider's safety filter.
"""

from __future__ import annotations

import re

# Workshop instructions are full of words that image providers flag out of context.
SAFETY_REPLACEMENTS: dict[str, str] = {
    "bare skin": "uncovered",
    "knives": "cutting tools",
    "knife": "cutting tool",
    "blades": "cutting tools",
    "blade": "cutting tool",
    "razor": "cutting tool",
    "cutting": "trimming",
    "cuts": "trims",
    "cut": "trim",
    "bleeding": "leaking",
    "blood": "red stain",
    "bloody": "stained",
    "flames": "heat",
    "flame": "heat",
    "fire": "heat",
    "burning": "heating",
    "burn": "heat",
    "weapons": "tools",
    "weapon": "tool",
    "guns": "tools",
    "gun": "tool",
    "explosive": "release",
    "explode": "release",
    "explosion": "release",
    "kill": "stop",
    "die": "stop",
    "dead": "inactive",
    "injury": "damage",
    "injured": "damaged",
    "wound": "damage",
    "naked": "uncovered",
    "nude": "uncovered",
    "children": "people",
    "child": "person",
    "kids": "people",
    "kid": "person",
    "choke": "tighten",
    "strangle": "tighten",
    "shoot": "photograph",
    "stab": "press into",
    "pierce": "press into",
    "puncture": "press into",
    "smash": "press",
    "hammering": "tapping",
}

_SCRUB_PATTERN = re.compile(
    r"\b("
    + "|".join(re.escape(word) for word in sorted(SAFETY_REPLACEMENTS, key=len, reverse=True))
    + r")\b",
    re.IGNORECASE,
)
_WHITESPACE = re.compile(r"\s+")


def scrub_prompt(text: str) -> str:
    """
    Replace filter-triggering words with neutral workshop vocabulary in a single pass.
    """
    if not text:
        return ""

    def _replace(match: re.Match[str]) -> str:
        original = match.group(0)
        replacement = SAFETY_REPLACEMENTS[original.lower()]
        if original[0].isupper():
            return replacement[0].upper() + replacement[1:]
        return replacement

    scrubbed = _SCRUB_PATTERN.sub(_replace, text)
    return _WHITESPACE.sub(" ", scrubbed).strip()
