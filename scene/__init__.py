"""
Scene geometry: canonical primitives, sanitization of untrusted element
lists, bounds, recentering and deterministic fallback scenes.

Everything in this package is pure; nothing performs I/O or calls a model.
"""

from .elements import (
    ELEMENT_TYPES,
    MATERIALS,
    ElementType,
    Kind,
    Material,
    SceneElement,
    is_hex_color,
    scene_to_dicts,
)
from .classify import (
    KindClassifier,
    KeywordKindClassifier,
    classify_kind,
    get_kind_classifier,
    infer_kind_from_text,
    set_kind_classifier,
)
from .sanitize import normalize_dimensions, normalize_type, sanitize
from .bounds import compute_bounds, compute_volume, largest_element_index
from .fallback import build_fallback
from .beautify import beautify_scene, normalize_colors, recenter
from .wire import dump_scene, parse_scene_elements, strip_code_fences
from .openscad import fallback_openscad

__all__ = [
    "ELEMENT_TYPES",
    "MATERIALS",
    "ElementType",
    "Kind",
    "Material",
    "SceneElement",
    "is_hex_color",
    "scene_to_dicts",
    "KindClassifier",
    "KeywordKindClassifier",
    "classify_kind",
    "get_kind_classifier",
    "infer_kind_from_text",
    "set_kind_classifier",
    "normalize_dimensions",
    "normalize_type",
    "sanitize",
    "compute_bounds",
    "compute_volume",
    "largest_element_index",
    "build_fallback",
    "beautify_scene",
    "normalize_colors",
    "recenter",
    "dump_scene",
    "parse_scene_elements",
    "strip_code_fences",
    "fallback_openscad",
]
