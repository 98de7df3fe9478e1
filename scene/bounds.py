"""
Bounds and volume computation for scene elements.

Rotation is ignored; extents are those of the unrotated primitives.
"""

from typing import Dict, Optional, Sequence
import math

import numpy as np

from .elements import BOX_LIKE_TYPES, ElementType, SceneElement


def half_extents(element: SceneElement) -> np.ndarray:
    """
    Half-extents of an element along X, Y and Z.

    Parameters
    ----------
    element : SceneElement

    Returns
    -------
    np.ndarray
        Shape (3,) array of non-negative half-extents
    """
    a, b, c = (abs(v) for v in element.dimensions)
    if element.type in BOX_LIKE_TYPES:
        return np.array([a / 2.0, b / 2.0, c / 2.0])
    if element.type == ElementType.CYLINDER.value:
        return np.array([a, b / 2.0, a])
    if element.type == ElementType.SPHERE.value:
        return np.array([a, a, a])
    if element.type == ElementType.CAPSULE.value:
        return np.array([a, b / 2.0 + a, a])
    return np.zeros(3)


def compute_bounds(elements: Sequence[SceneElement]) -> Optional[Dict[str, float]]:
    """
    Axis-aligned bounding box size of a scene.

    Parameters
    ----------
    elements : sequence of SceneElement

    Returns
    -------
    dict or None
        ``{"width", "height", "depth"}`` in scene units, or None when the
        scene is empty or any extent is exactly zero
    """
    if not elements:
        return None

    centers = np.array([e.position for e in elements], dtype=float)
    halves = np.array([half_extents(e) for e in elements], dtype=float)

    lower = (centers - halves).min(axis=0)
    upper = (centers + halves).max(axis=0)
    extent = upper - lower

    if not np.all(np.isfinite(extent)) or np.any(extent == 0):
        return None

    return {
        "width": float(extent[0]),
        "height": float(extent[1]),
        "depth": float(extent[2]),
    }


def compute_volume(element: SceneElement) -> float:
    """Volume of a single primitive (capsule = cylinder body + two hemispheres)."""
    a, b, c = (abs(v) for v in element.dimensions)
    if element.type in BOX_LIKE_TYPES:
        return a * b * c
    if element.type == ElementType.CYLINDER.value:
        return math.pi * a * a * b
    if element.type == ElementType.SPHERE.value:
        return (4.0 / 3.0) * math.pi * a ** 3
    if element.type == ElementType.CAPSULE.value:
        return math.pi * a * a * b + (4.0 / 3.0) * math.pi * a ** 3
    return 0.0


def largest_element_index(elements: Sequence[SceneElement]) -> int:
    """Index of the largest-volume element; the first one wins ties. -1 if empty."""
    if not elements:
        return -1
    volumes = np.array([compute_volume(e) for e in elements])
    return int(np.argmax(volumes))


__all__ = [
    "half_extents",
    "compute_bounds",
    "compute_volume",
    "largest_element_index",
]
