"""Analyzer module - locator resolution and iframe inference for recorded steps."""

from .frame_analyzer import FrameAnalysisState, FrameAnalyzer, analyze
from .locator_resolver import EXTRACTORS, resolve

__all__ = ["EXTRACTORS", "FrameAnalysisState", "FrameAnalyzer", "analyze", "resolve"]
