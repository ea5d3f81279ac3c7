"""Prediction pipeline: signals, scoring, matching, blending and tracking."""

from .predictor import PredictionEngine, calculate_delay_probability
from .tracking import AccuracyTracker

__all__ = ["AccuracyTracker", "PredictionEngine", "calculate_delay_probability"]
