"""
Scene Sanitizer

Turns untrusted, loosely typed element lists (typically parsed from model
output) into canonical SceneElement values.

The sanitizer never raises on malformed input. Entries that cannot be
coerced into a valid element are dropped and the reason is logged at
DEBUG level, so the result may be shorter than the input or empty.
"""

from typing import Any, Dict, List, Optional, Sequence, Union
import logging
import math
import re

from .classify import classify_kind
from .elements import (
    BOX_LIKE_TYPES,
    ELEMENT_TYPES,
    MATERIALS,
    ROUND_TYPES,
    ElementType,
    Kind,
    SceneElement,
    Vec3,
    coerce_number,
    coerce_vec3,
    is_hex_color,
)

logger = logging.getLogger(__name__)


# Keys are compared with whitespace, underscores and hyphens removed.
TYPE_SYNONYMS: Dict[str, str] = {
    "box": ElementType.BOX.value,
    "cube": ElementType.BOX.value,
    "cuboid": ElementType.BOX.value,
    "rect": ElementType.BOX.value,
    "rectangle": ElementType.BOX.value,
    "block": ElementType.BOX.value,
    "roundedbox": ElementType.ROUNDED_BOX.value,
    "roundbox": ElementType.ROUNDED_BOX.value,
    "roundedcube": ElementType.ROUNDED_BOX.value,
    "roundedrect": ElementType.ROUNDED_BOX.value,
    "roundedrectangle": ElementType.ROUNDED_BOX.value,
    "cylinder": ElementType.CYLINDER.value,
    "cyl": ElementType.CYLINDER.value,
    "tube": ElementType.CYLINDER.value,
    "pipe": ElementType.CYLINDER.value,
    "rod": ElementType.CYLINDER.value,
    "disc": ElementType.CYLINDER.value,
    "disk": ElementType.CYLINDER.value,
    "sphere": ElementType.SPHERE.value,
    "ball": ElementType.SPHERE.value,
    "orb": ElementType.SPHERE.value,
    "globe": ElementType.SPHERE.value,
    "capsule": ElementType.CAPSULE.value,
    "pill": ElementType.CAPSULE.value,
}

ELONGATED_ROUND_NAMES = frozenset({"oval", "ellipse", "ellipsoid", "egg"})

DEFAULT_CYLINDER_RADIUS = 10.0
DEFAULT_CYLINDER_HEIGHT = 20.0
MIN_BOX_DIMENSION = 1.0

_TYPE_SEPARATORS_RE = re.compile(r"[\s_\-]+")


def _as_kind(kind: Union[Kind, str, None]) -> Kind:
    if isinstance(kind, Kind):
        return kind
    if kind == Kind.OBJECT.value:
        return Kind.OBJECT
    return Kind.ENCLOSURE


def _default_type(kind: Kind) -> str:
    if kind == Kind.OBJECT:
        return ElementType.CAPSULE.value
    return ElementType.ROUNDED_BOX.value


def normalize_type(raw: Any, kind: Union[Kind, str, None] = Kind.ENCLOSURE) -> str:
    """
    Map a raw type string onto a canonical element type.

    Parameters
    ----------
    raw : Any
        Type as produced by the model (e.g. "Cube", "rounded_box", "ball")
    kind : Kind
        Scene kind; decides how ambiguous shapes such as "oval" resolve and
        which type unrecognized input falls back to

    Returns
    -------
    str
        One of ``ELEMENT_TYPES``
    """
    kind = _as_kind(kind)
    if not isinstance(raw, str):
        return _default_type(kind)

    key = _TYPE_SEPARATORS_RE.sub("", raw.strip().lower())
    if key in TYPE_SYNONYMS:
        return TYPE_SYNONYMS[key]
    if key in ELONGATED_ROUND_NAMES:
        if kind == Kind.OBJECT:
            return ElementType.CAPSULE.value
        return ElementType.ROUNDED_BOX.value
    return _default_type(kind)


def normalize_dimensions(element_type: str, raw: Any) -> Vec3:
    """
    Convert a raw size vector into the canonical layout for a type.

    - box / rounded-box: absolute value of each slot, clamped to >= 1
    - sphere: ``[max(x, y, z) / 2, 0, 0]``
    - cylinder / capsule: ``[min(x, z) / 2, y, 0]`` with ``x / 2`` or 10 as
      the radius fallback and ``x`` or 20 as the height fallback

    Parameters
    ----------
    element_type : str
        Canonical element type
    raw : Any
        Raw dimensions (list/tuple of up to three numbers)

    Returns
    -------
    tuple
        Canonical, non-negative 3-vector
    """
    x, y, z = (abs(v) for v in coerce_vec3(raw))

    if element_type in BOX_LIKE_TYPES:
        return (
            max(MIN_BOX_DIMENSION, x),
            max(MIN_BOX_DIMENSION, y),
            max(MIN_BOX_DIMENSION, z),
        )

    if element_type == ElementType.SPHERE.value:
        return (max(x, y, z) / 2.0, 0.0, 0.0)

    if x > 0 and z > 0:
        radius = min(x, z) / 2.0
    elif x > 0:
        radius = x / 2.0
    else:
        radius = DEFAULT_CYLINDER_RADIUS

    if y > 0:
        height = y
    elif x > 0:
        height = x
    else:
        height = DEFAULT_CYLINDER_HEIGHT

    return (radius, height, 0.0)


def _is_canonical_layout(element_type: str, dims: Vec3) -> bool:
    """True if round-type dimensions are already in [r, 0, 0] / [r, h, 0] form."""
    if element_type == ElementType.SPHERE.value:
        return dims[0] > 0 and dims[1] == 0 and dims[2] == 0
    if element_type in ROUND_TYPES:
        return dims[0] > 0 and dims[1] > 0 and dims[2] == 0
    return False


def _optional_magnitude(value: Any) -> Optional[float]:
    if value is None:
        return None
    number = coerce_number(value, default=math.nan)
    if math.isnan(number):
        return None
    return abs(number)


def _validation_error(element: SceneElement) -> Optional[str]:
    if element.type not in ELEMENT_TYPES:
        return f"unknown type '{element.type}'"
    for field_name in ("position", "rotation", "dimensions"):
        vec = getattr(element, field_name)
        if len(vec) != 3 or not all(math.isfinite(v) for v in vec):
            return f"non-finite {field_name}"
    if any(v < 0 for v in element.dimensions):
        return "negative dimension"
    if element.dimensions[0] <= 0:
        return "zero primary dimension"
    if element.type in ROUND_TYPES and element.dimensions[1] <= 0:
        return "zero height/length"
    if element.color is not None and not is_hex_color(element.color):
        return f"invalid color '{element.color}'"
    if element.material is not None and element.material not in MATERIALS:
        return f"invalid material '{element.material}'"
    return None


def sanitize_element(raw: Dict[str, Any], kind: Union[Kind, str] = Kind.ENCLOSURE) -> Optional[SceneElement]:
    """
    Sanitize a single raw element dict.

    Returns None when the entry cannot be turned into a valid element.
    """
    kind = _as_kind(kind)
    raw_type = raw.get("type")
    element_type = normalize_type(raw_type, kind)
    type_changed = not (isinstance(raw_type, str) and raw_type.strip().lower() == element_type)

    raw_dims = coerce_vec3(raw.get("dimensions", raw.get("size")))
    abs_dims = (abs(raw_dims[0]), abs(raw_dims[1]), abs(raw_dims[2]))
    if type_changed or not _is_canonical_layout(element_type, abs_dims):
        dimensions = normalize_dimensions(element_type, raw_dims)
    else:
        dimensions = abs_dims

    color = raw.get("color")
    if not is_hex_color(color):
        color = None

    material = raw.get("material")
    material = material.strip().lower() if isinstance(material, str) else None
    if material not in MATERIALS:
        material = None

    name = raw.get("name")
    name = name.strip() if isinstance(name, str) and name.strip() else None

    radius = smoothness = None
    if element_type == ElementType.ROUNDED_BOX.value:
        radius = _optional_magnitude(raw.get("radius"))
        smoothness = _optional_magnitude(raw.get("smoothness"))

    element = SceneElement(
        type=element_type,
        position=coerce_vec3(raw.get("position")),
        rotation=coerce_vec3(raw.get("rotation")),
        dimensions=dimensions,
        color=color,
        material=material,
        name=name,
        radius=radius,
        smoothness=smoothness,
    )

    error = _validation_error(element)
    if error:
        logger.debug(f"Dropping element {name or element_type!r}: {error}")
        return None
    return element


def sanitize(
    raw_elements: Any,
    kind_hint: Union[Kind, str, None] = None,
) -> List[SceneElement]:
    """
    Validate and coerce a raw element list into canonical elements.

    Non-dict entries are skipped, types and dimensions are normalized,
    invalid colors and materials are dropped, and any element that still
    fails validation is removed. ``sanitize(sanitize(x)) == sanitize(x)``.

    Parameters
    ----------
    raw_elements : Any
        List of element dicts (SceneElement instances are also accepted)
    kind_hint : Kind or str, optional
        Scene kind used for type normalization. Classified from the raw
        elements when omitted.

    Returns
    -------
    list of SceneElement
        Possibly empty, never None
    """
    if not isinstance(raw_elements, (list, tuple)):
        logger.debug(f"Expected an element list, got {type(raw_elements).__name__}")
        return []

    candidates: List[Dict[str, Any]] = []
    for index, raw in enumerate(raw_elements):
        if isinstance(raw, SceneElement):
            raw = raw.to_dict()
        if not isinstance(raw, dict):
            logger.debug(f"Dropping entry {index}: not an object")
            continue
        candidates.append(raw)

    kind = _as_kind(kind_hint) if kind_hint is not None else classify_kind(candidates)

    sanitized: List[SceneElement] = []
    for raw in candidates:
        element = sanitize_element(raw, kind)
        if element is not None:
            sanitized.append(element)

    if len(sanitized) < len(raw_elements):
        logger.debug(f"Sanitized {len(raw_elements)} entries down to {len(sanitized)} elements")
    return sanitized


__all__ = [
    "TYPE_SYNONYMS",
    "normalize_type",
    "normalize_dimensions",
    "sanitize_element",
    "sanitize",
]
