"""
Scene Elements

Immutable geometric primitives that make up a 3D scene.

A scene is an ordered list of SceneElement values. Elements are frozen;
every stage that changes a scene builds new elements rather than editing
existing ones.

WIRE FORMAT
-----------
Each element serialises to a JSON object::

    {"type": "sphere", "position": [0, 0, 0], "rotation": [0, 0, 0],
     "dimensions": [20, 0, 0], "color": "#A0522D", "material": "plastic",
     "name": "head"}

The meaning of ``dimensions`` depends on ``type``:

- box / rounded-box: [width, height, depth]
- cylinder: [radius, height, 0]
- sphere: [radius, 0, 0]
- capsule: [radius, length, 0]

Unused slots are zero-filled, never omitted. Rotations are radians.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import math
import re


Vec3 = Tuple[float, float, float]

ZERO3: Vec3 = (0.0, 0.0, 0.0)


class ElementType(str, Enum):
    """Canonical primitive types."""
    BOX = "box"
    ROUNDED_BOX = "rounded-box"
    CYLINDER = "cylinder"
    SPHERE = "sphere"
    CAPSULE = "capsule"


class Material(str, Enum):
    """Surface materials understood by the renderer."""
    PLASTIC = "plastic"
    METAL = "metal"
    GLASS = "glass"
    RUBBER = "rubber"


class Kind(str, Enum):
    """
    Coarse classification of what a scene depicts.

    ENCLOSURE is a rigid, box-like product housing. OBJECT is an organic or
    character shape built from rounded primitives.
    """
    ENCLOSURE = "enclosure"
    OBJECT = "object"


ELEMENT_TYPES = tuple(t.value for t in ElementType)
MATERIALS = tuple(m.value for m in Material)

BOX_LIKE_TYPES = frozenset({ElementType.BOX.value, ElementType.ROUNDED_BOX.value})
ORGANIC_TYPES = frozenset({ElementType.SPHERE.value, ElementType.CAPSULE.value})
ROUND_TYPES = frozenset({ElementType.CYLINDER.value, ElementType.CAPSULE.value})

HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def is_hex_color(value: Any) -> bool:
    """Return True if value is a ``#RRGGBB`` string."""
    return isinstance(value, str) and HEX_COLOR_RE.match(value) is not None


def coerce_number(value: Any, default: float = 0.0) -> float:
    """
    Coerce a loosely typed value to a finite float.

    Numbers and numeric strings are accepted. Booleans, non-numeric values
    and non-finite results map to ``default``.
    """
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not math.isfinite(number):
        return default
    return number


def coerce_vec3(value: Any) -> Vec3:
    """
    Coerce a loosely typed value to a 3-vector.

    Lists and tuples are truncated or zero-padded to three components and
    each component goes through ``coerce_number``. Anything else yields
    the zero vector.
    """
    if not isinstance(value, (list, tuple)):
        return ZERO3
    parts = [coerce_number(v) for v in list(value)[:3]]
    while len(parts) < 3:
        parts.append(0.0)
    return (parts[0], parts[1], parts[2])


def _wire_number(value: float):
    if float(value).is_integer():
        return int(value)
    return float(value)


def _wire_vec3(vec: Vec3) -> list:
    return [_wire_number(v) for v in vec]


@dataclass(frozen=True)
class SceneElement:
    """
    One geometric primitive instance.

    Attributes
    ----------
    type : str
        One of ``ELEMENT_TYPES``
    position : tuple
        Centre of the primitive in scene units (mm)
    rotation : tuple
        Euler rotation in radians
    dimensions : tuple
        Type-dependent size vector (see module docstring)
    color : str, optional
        ``#RRGGBB`` colour; assigned by ``normalize_colors`` when missing
    material : str, optional
        One of ``MATERIALS``
    name : str, optional
        Part name (e.g. "head", "enclosure-lid")
    radius : float, optional
        Corner radius, rounded-box only
    smoothness : float, optional
        Corner segment count, rounded-box only
    """
    type: str
    position: Vec3 = ZERO3
    rotation: Vec3 = ZERO3
    dimensions: Vec3 = ZERO3
    color: Optional[str] = None
    material: Optional[str] = None
    name: Optional[str] = None
    radius: Optional[float] = None
    smoothness: Optional[float] = None

    @property
    def label(self) -> str:
        """Lower-cased name, empty when unnamed."""
        return (self.name or "").lower()

    @property
    def is_box_like(self) -> bool:
        return self.type in BOX_LIKE_TYPES

    @property
    def is_organic(self) -> bool:
        return self.type in ORGANIC_TYPES

    def evolve(self, **changes) -> "SceneElement":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "type": self.type,
            "position": _wire_vec3(self.position),
            "rotation": _wire_vec3(self.rotation),
            "dimensions": _wire_vec3(self.dimensions),
        }
        if self.color is not None:
            d["color"] = self.color
        if self.material is not None:
            d["material"] = self.material
        if self.name is not None:
            d["name"] = self.name
        if self.radius is not None:
            d["radius"] = _wire_number(self.radius)
        if self.smoothness is not None:
            d["smoothness"] = _wire_number(self.smoothness)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SceneElement":
        """
        Build an element from an already-canonical dict.

        No normalization is applied; use ``scene.sanitize`` for untrusted
        input.
        """
        radius = d.get("radius")
        smoothness = d.get("smoothness")
        return cls(
            type=d["type"],
            position=coerce_vec3(d.get("position")),
            rotation=coerce_vec3(d.get("rotation")),
            dimensions=coerce_vec3(d.get("dimensions")),
            color=d.get("color"),
            material=d.get("material"),
            name=d.get("name"),
            radius=float(radius) if radius is not None else None,
            smoothness=float(smoothness) if smoothness is not None else None,
        )


def scene_to_dicts(elements) -> list:
    """Serialise a list of elements to wire dicts."""
    return [e.to_dict() for e in elements]


__all__ = [
    "Vec3",
    "ZERO3",
    "ElementType",
    "Material",
    "Kind",
    "ELEMENT_TYPES",
    "MATERIALS",
    "BOX_LIKE_TYPES",
    "ORGANIC_TYPES",
    "ROUND_TYPES",
    "HEX_COLOR_RE",
    "is_hex_color",
    "coerce_number",
    "coerce_vec3",
    "SceneElement",
    "scene_to_dicts",
]
