"""
UAPS - Undersea Aging Prediction System.

Predicts how a sparkling wine evolves when aged on the sea floor, from
terrestrial aging statistics and physics-derived correction coefficients.
"""

__version__ = "1.0.0"
