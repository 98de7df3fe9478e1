"""
Fallback Scenes

Deterministic scenes used whenever generation fails or produces nothing
usable. No model is involved.
"""

from typing import List, Optional, Union
import math

from .classify import infer_kind_from_text
from .elements import Kind, SceneElement

ENCLOSURE_SIZES = {
    "small": (40.0, 16.0, 28.0),
    "medium": (80.0, 22.0, 35.0),
    "large": (120.0, 40.0, 80.0),
}


def _enclosure_size(description: str):
    text = description.lower()
    if "small" in text:
        return ENCLOSURE_SIZES["small"]
    if "large" in text:
        return ENCLOSURE_SIZES["large"]
    return ENCLOSURE_SIZES["medium"]


def fallback_enclosure(description: str = "") -> List[SceneElement]:
    """Rounded body, lid and four corner screws."""
    width, height, depth = _enclosure_size(description or "")
    corner_radius = max(2.0, min(8.0, min(width, depth) * 0.08))
    lid_thickness = max(2.0, min(4.0, height * 0.15))

    body = SceneElement(
        type="rounded-box",
        dimensions=(width, height, depth),
        color="#F5F5F5",
        material="plastic",
        name="enclosure-body",
        radius=corner_radius,
        smoothness=8.0,
    )
    lid = SceneElement(
        type="rounded-box",
        position=(0.0, height / 2 - lid_thickness / 2 + 0.4, 0.0),
        dimensions=(max(1.0, width - 1.6), lid_thickness, max(1.0, depth - 1.6)),
        color="#E5E5E5",
        material="plastic",
        name="enclosure-lid",
        radius=max(1.0, corner_radius - 1),
        smoothness=8.0,
    )

    inset = max(6.0, corner_radius + 2)
    screw_x = width / 2 - inset
    screw_z = depth / 2 - inset
    screw_y = height / 2 - lid_thickness + 0.6
    corners = [(screw_x, screw_z), (-screw_x, screw_z), (screw_x, -screw_z), (-screw_x, -screw_z)]
    screws = [
        SceneElement(
            type="cylinder",
            position=(x, screw_y, z),
            rotation=(math.pi / 2, 0.0, 0.0),
            dimensions=(1.6, lid_thickness, 0.0),
            color="#C0C0C0",
            material="metal",
            name=f"screw-{i}",
        )
        for i, (x, z) in enumerate(corners, start=1)
    ]
    return [body, lid] + screws


def fallback_figure() -> List[SceneElement]:
    """Twelve-part plush figure built from spheres and capsules."""
    head_r = 45.0
    body_r = 36.0
    body_len = 90.0
    arm_r, arm_len = 14.0, 55.0
    leg_r, leg_len = 16.0, 60.0
    ear_r = 16.0
    muzzle_r = 16.0
    eye_r = 6.0
    nose_r = 5.0

    head_y = body_len / 2 + body_r + head_r * 0.6
    dark = "#8B4513"
    light = "#A0522D"

    def part(type_, position, dims, color, name, rotation=(0.0, 0.0, 0.0)):
        return SceneElement(
            type=type_,
            position=position,
            rotation=rotation,
            dimensions=dims,
            color=color,
            material="plastic",
            name=name,
        )

    return [
        part("capsule", (0.0, 0.0, 0.0), (body_r, body_len, 0.0), dark, "body"),
        part("sphere", (0.0, head_y, 0.0), (head_r, 0.0, 0.0), light, "head"),
        part("sphere", (head_r * 0.55, head_y + head_r * 0.55, 0.0), (ear_r, 0.0, 0.0), dark, "ear-right"),
        part("sphere", (-head_r * 0.55, head_y + head_r * 0.55, 0.0), (ear_r, 0.0, 0.0), dark, "ear-left"),
        part("sphere", (0.0, head_y - head_r * 0.1, head_r * 0.7), (muzzle_r, 0.0, 0.0), "#F5DEB3", "muzzle"),
        part("sphere", (0.0, head_y - head_r * 0.05, head_r * 0.95), (nose_r, 0.0, 0.0), "#2D2D2D", "nose"),
        part("sphere", (head_r * 0.35, head_y + head_r * 0.15, head_r * 0.85), (eye_r, 0.0, 0.0), "#1A1A1A", "eye-right"),
        part("sphere", (-head_r * 0.35, head_y + head_r * 0.15, head_r * 0.85), (eye_r, 0.0, 0.0), "#1A1A1A", "eye-left"),
        part("capsule", (body_r + arm_r + 8, body_len * 0.15, 0.0), (arm_r, arm_len, 0.0), light, "arm-right",
             rotation=(0.0, 0.0, math.pi / 7)),
        part("capsule", (-(body_r + arm_r + 8), body_len * 0.15, 0.0), (arm_r, arm_len, 0.0), light, "arm-left",
             rotation=(0.0, 0.0, -math.pi / 7)),
        part("capsule", (body_r * 0.5, -(body_len * 0.35 + leg_r), 0.0), (leg_r, leg_len, 0.0), dark, "leg-right"),
        part("capsule", (-body_r * 0.5, -(body_len * 0.35 + leg_r), 0.0), (leg_r, leg_len, 0.0), dark, "leg-left"),
    ]


def build_fallback(
    description: Optional[str] = None,
    kind: Union[Kind, str, None] = None,
) -> List[SceneElement]:
    """
    Build a deterministic scene for a description.

    Parameters
    ----------
    description : str, optional
        Request text; classified with the keyword heuristics when ``kind``
        is not given, and scanned for "small"/"large" size hints
    kind : Kind or str, optional
        Force the enclosure or object variant

    Returns
    -------
    list of SceneElement
        Six elements (body, lid, four screws) for an enclosure, twelve
        for an object
    """
    description = description or ""
    if kind is None:
        kind = infer_kind_from_text(description)
    if Kind(kind) == Kind.OBJECT:
        return fallback_figure()
    return fallback_enclosure(description)


__all__ = [
    "ENCLOSURE_SIZES",
    "fallback_enclosure",
    "fallback_figure",
    "build_fallback",
]
