"""Synthesis module - Playwright spec generation for browser and multi-step tests."""

from .browser import BrowserSpecSynthesizer, SynthesizedScript, synthesize
from .multistep import MultiStepSpecSynthesizer, SynthesizedApiScript

__all__ = [
    "BrowserSpecSynthesizer",
    "MultiStepSpecSynthesizer",
    "SynthesizedApiScript",
    "SynthesizedScript",
    "synthesize",
]
