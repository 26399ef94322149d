"""
Text-to-speech narration of repair steps.
"""

from .audio import AudioClip, decode_pcm16
from .narrator import StepNarrator, narration_text

__all__ = ["AudioClip", "StepNarrator", "decode_pcm16", "narration_text"]
