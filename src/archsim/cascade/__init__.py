"""Failure cascade (blast radius) subpackage."""
from __future__ import annotations

from archsim.cascade.engine import BlastRadius, CascadeLevel, compute_blast_radius

__all__ = [
    "BlastRadius",
    "CascadeLevel",
    "compute_blast_radius",
]
