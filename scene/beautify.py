"""
Scene clean-up passes applied after generation: recentering around the
main body, enclosure finishing and default colouring.
"""

from typing import Any, Dict, List, Optional, Sequence, Union
import logging
import math

from .bounds import half_extents, largest_element_index
from .classify import classify_kind, infer_kind_from_text
from .elements import ElementType, Kind, Material, SceneElement, is_hex_color
from .fallback import build_fallback

logger = logging.getLogger(__name__)


DEFAULT_COLORS = {
    Material.METAL.value: "#C0C0C0",
    Material.GLASS.value: "#E5E7EB",
    Material.RUBBER.value: "#8B7355",
}
PLASTIC_MAIN_COLOR = "#D4A574"
PLASTIC_PART_COLOR = "#C4956A"

LID_COLOR = "#E5E5E5"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def make_lid(main: SceneElement) -> SceneElement:
    """Rounded lid sitting on top of a main body centred at the origin."""
    width, height, depth = (2 * v for v in half_extents(main))
    corner_radius = _clamp(min(width, depth) * 0.08, 2, 10)
    lid_thickness = _clamp(height * 0.15, 2, 4)
    return SceneElement(
        type=ElementType.ROUNDED_BOX.value,
        position=(0.0, height / 2 - lid_thickness / 2 + 0.4, 0.0),
        dimensions=(max(1.0, width - 1.6), lid_thickness, max(1.0, depth - 1.6)),
        color=LID_COLOR,
        material=Material.PLASTIC.value,
        name="enclosure-lid",
        radius=max(1.0, corner_radius - 1),
        smoothness=8.0,
    )


def recenter(
    elements: Sequence[SceneElement],
    kind: Union[Kind, str, None] = None,
) -> List[SceneElement]:
    """
    Move the largest element to the origin and tidy the scene.

    All positions are translated by the main element's offset and rotations
    are clamped to [-pi, pi]; the main element's rotation is reset. For an
    enclosure the main body becomes a rounded-box and an ``enclosure-lid``
    is added when no element name contains "lid".

    Parameters
    ----------
    elements : sequence of SceneElement
    kind : Kind or str, optional
        Classified from the elements when omitted

    Returns
    -------
    list of SceneElement
        New elements; the input is not modified
    """
    if not elements:
        return []

    kind = Kind(kind) if kind is not None else classify_kind(elements)
    main_index = largest_element_index(elements)
    ox, oy, oz = elements[main_index].position

    result: List[SceneElement] = []
    for index, element in enumerate(elements):
        x, y, z = element.position
        if index == main_index:
            changes: Dict[str, Any] = {"position": (0.0, 0.0, 0.0), "rotation": (0.0, 0.0, 0.0)}
            if kind == Kind.ENCLOSURE and element.is_box_like:
                width, _, depth = element.dimensions
                radius = element.radius if element.radius is not None else min(width, depth) * 0.08
                changes.update(
                    type=ElementType.ROUNDED_BOX.value,
                    radius=_clamp(radius, 1, 12),
                    smoothness=element.smoothness if element.smoothness is not None else 8.0,
                )
        else:
            changes = {
                "position": (x - ox, y - oy, z - oz),
                "rotation": tuple(_clamp(a, -math.pi, math.pi) for a in element.rotation),
            }
        result.append(element.evolve(**changes))

    if kind == Kind.ENCLOSURE and not any("lid" in e.label for e in result):
        logger.debug("Adding enclosure lid")
        result.append(make_lid(result[main_index]))

    return result


def normalize_colors(elements: Sequence[SceneElement]) -> List[SceneElement]:
    """
    Give every element without a valid colour a default keyed by material.

    Elements that already carry a valid ``#RRGGBB`` colour are returned
    unchanged. A missing material becomes plastic; the largest plastic
    element gets a distinct shade from the other plastic parts.
    """
    main_index = largest_element_index(elements)
    result: List[SceneElement] = []
    for index, element in enumerate(elements):
        if is_hex_color(element.color):
            result.append(element)
            continue
        material = element.material or Material.PLASTIC.value
        if material == Material.PLASTIC.value:
            color = PLASTIC_MAIN_COLOR if index == main_index else PLASTIC_PART_COLOR
        else:
            color = DEFAULT_COLORS.get(material, PLASTIC_PART_COLOR)
        result.append(element.evolve(color=color, material=material))
    return result


def beautify_scene(
    elements: Sequence[SceneElement],
    description: Optional[str] = None,
    analysis: Optional[Dict[str, Any]] = None,
) -> List[SceneElement]:
    """
    Final clean-up of a generated scene.

    The kind comes from the description (plus any prior analysis) when
    given, otherwise from the elements. An empty scene is replaced by the
    fallback scene for the description.
    """
    if description:
        kind = infer_kind_from_text(description, analysis)
    else:
        kind = classify_kind(elements)

    usable = [e for e in elements if any(e.dimensions)]
    if not usable:
        logger.info("Empty scene, substituting fallback")
        return build_fallback(description or "Hardware project", kind)

    return normalize_colors(recenter(usable, kind))


__all__ = [
    "DEFAULT_COLORS",
    "make_lid",
    "recenter",
    "normalize_colors",
    "beautify_scene",
]
