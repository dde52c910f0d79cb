"""Physics-derived correction coefficients (TCI, FRI, BRI)."""

from .coefficients import arrhenius_fri, compute_coefficients, henry_bri, tci_prior

__all__ = ["arrhenius_fri", "compute_coefficients", "henry_bri", "tci_prior"]
