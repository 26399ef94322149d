"""
Shared fixtures for the Jugaad Engineer test suite.
"""

import json
import os
import sys
from io import BytesIO
from unittest.mock import MagicMock

import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from jugaad_engineer.common import ChatResult
from jugaad_engineer.repair_planning import RepairGuide


def _image_bytes(size=(2000, 1000), color=(180, 90, 40), fmt="PNG", mode="RGB"):
    img = Image.new(mode, size, color)
    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_image_bytes():
    """Factory producing encoded in-memory test images."""
    return _image_bytes


@pytest.fixture
def broken_photo():
    return _image_bytes(size=(3000, 2000), color=(240, 240, 240))


@pytest.fixture
def scrap_photo():
    return _image_bytes(size=(800, 1200), color=(60, 120, 40), fmt="JPEG")


@pytest.fixture
def guide_payload():
    return {
        "title": "Coat Hanger Hinge Splint",
        "summary": "Brace a cracked cabinet hinge with a bent coat hanger and bicycle tube strips.",
        "brokenObjectAnalysis": "The lower hinge plate has cracked through at the screw hole.",
        "scrapPileAnalysis": "A steel coat hanger, an old bicycle inner tube, and a cork.",
        "steps": [
            {
                "title": "Straighten the Hanger",
                "description": "Untwist the hanger and cut a 15cm length with pliers.",
                "materialUsed": "Coat hanger, pliers",
                "physicsPrinciple": "Steel wire resists bending under load.",
                "actionType": "cut",
                "visualizationPrompt": "Hands using pliers to cut a straight length of coat hanger wire.",
            },
            {
                "title": "Form the Brace",
                "description": "Bend the wire into a U that hugs the hinge plate.",
                "materialUsed": "Hanger wire",
                "physicsPrinciple": "A U-shape spreads the load over a wider area.",
                "actionType": "Bend",
                "visualizationPrompt": "Close up of hands bending steel wire into a U shape.",
            },
            {
                "title": "Lash It Tight",
                "description": "Wrap strips of inner tube around the brace and hinge.",
                "materialUsed": "Inner tube strips",
                "physicsPrinciple": "Elastic tension keeps constant clamping force.",
                "actionType": "wrap",
                "visualizationPrompt": "Black rubber strips wrapped around a wire brace on a cabinet hinge.",
            },
        ],
    }


@pytest.fixture
def sample_guide(guide_payload):
    return RepairGuide.from_dict(guide_payload)


@pytest.fixture
def json_completion(guide_payload):
    """A completion callable that returns the guide payload as JSON text."""
    return MagicMock(return_value=ChatResult(text=json.dumps(guide_payload), raw=None))
