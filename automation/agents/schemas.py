"""
Typed results produced by the generation agents.

Each dataclass serialises to the camelCase JSON shape exchanged with the
model and accepts both camelCase and snake_case keys in ``from_dict``.
All ``from_dict`` constructors are tolerant: missing or mistyped fields
fall back to defaults instead of raising.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import math

from scene import ELEMENT_TYPES, Kind, SceneElement, is_hex_color, scene_to_dicts
from scene.elements import coerce_number


OBJECT_TYPES = ("enclosure", "organic", "mechanical", "abstract", "mixed")
RELATIVE_SIZES = ("large", "medium", "small", "tiny")
SEVERITIES = ("critical", "major", "minor")
VISUAL_CATEGORIES = ("color", "proportion", "polish", "composition", "contrast")
VISUAL_DIMENSIONS = (
    "colorHarmony",
    "contrast",
    "proportionBalance",
    "surfacePolish",
    "professionalFinish",
)

DEFAULT_DIMENSIONS = {"width": 50.0, "height": 20.0, "depth": 40.0}


def _get(d: Dict[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    if camel in d:
        return d[camel]
    return d.get(snake, default)


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]


def _clamp_score(value: Any, low: float, high: float, default: float) -> float:
    number = coerce_number(value, default=math.nan)
    if math.isnan(number):
        return default
    return max(low, min(high, number))


def _bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    return default


@dataclass
class PartHint:
    """A named part identified by the vision stage."""
    name: str
    shape: str = "rounded-box"
    relative_size: str = "medium"
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {"name": self.name, "shape": self.shape, "relativeSize": self.relative_size}
        if self.color:
            d["color"] = self.color
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> Optional["PartHint"]:
        name = d.get("name")
        if not isinstance(name, str) or not name.strip():
            return None
        shape = d.get("shape")
        size = _get(d, "relativeSize", "relative_size")
        color = d.get("color")
        return cls(
            name=name.strip(),
            shape=shape if shape in ELEMENT_TYPES else "rounded-box",
            relative_size=size if size in RELATIVE_SIZES else "medium",
            color=color if is_hex_color(color) else None,
        )


@dataclass
class VisionAnalysis:
    """
    What the request (image and/or text) depicts.

    Attributes
    ----------
    object_type : str
        One of ``OBJECT_TYPES``
    object_name : str
        Short human-readable name
    description : str
        Free-text structural description
    main_parts : list of PartHint
        Ordered part hints
    suggested_colors : list of str
        Hex colours
    overall_dimensions : dict
        ``{"width", "height", "depth"}`` in millimetres
    confidence : float
        In [0, 1]; 0.4 for text inference, 0.3 after a failed image analysis
    """
    object_type: str = "enclosure"
    object_name: str = "Unknown Object"
    description: str = ""
    main_parts: List[PartHint] = field(default_factory=list)
    suggested_colors: List[str] = field(default_factory=list)
    overall_dimensions: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_DIMENSIONS))
    confidence: float = 0.5

    @property
    def kind(self) -> Kind:
        """Scene kind implied by the object type."""
        return Kind.OBJECT if self.object_type == "organic" else Kind.ENCLOSURE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "objectType": self.object_type,
            "objectName": self.object_name,
            "description": self.description,
            "mainParts": [p.to_dict() for p in self.main_parts],
            "suggestedColors": list(self.suggested_colors),
            "overallDimensions": dict(self.overall_dimensions),
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VisionAnalysis":
        object_type = _get(d, "objectType", "object_type")
        object_type = object_type.lower() if isinstance(object_type, str) else "enclosure"
        if object_type not in OBJECT_TYPES:
            object_type = "enclosure"

        name = _get(d, "objectName", "object_name")
        parts_raw = _get(d, "mainParts", "main_parts", [])
        parts = []
        if isinstance(parts_raw, list):
            parts = [p for p in (PartHint.from_dict(x) for x in parts_raw if isinstance(x, dict)) if p]

        dims_raw = _get(d, "overallDimensions", "overall_dimensions")
        dims = dict(DEFAULT_DIMENSIONS)
        if isinstance(dims_raw, dict):
            for key in dims:
                value = abs(coerce_number(dims_raw.get(key), default=0.0))
                if value > 0:
                    dims[key] = value

        colors = [c for c in _str_list(_get(d, "suggestedColors", "suggested_colors")) if is_hex_color(c)]
        description = d.get("description")

        return cls(
            object_type=object_type,
            object_name=name.strip() if isinstance(name, str) and name.strip() else "Unknown Object",
            description=description if isinstance(description, str) else "",
            main_parts=parts,
            suggested_colors=colors,
            overall_dimensions=dims,
            confidence=_clamp_score(d.get("confidence"), 0.0, 1.0, 0.5),
        )


@dataclass
class StructurePlan:
    """Initial scene produced by the structure planner."""
    elements: List[SceneElement]
    reasoning: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"elements": scene_to_dicts(self.elements), "reasoning": self.reasoning}


@dataclass
class CritiqueIssue:
    """A single problem reported by a critic."""
    severity: str
    description: str
    suggested_fix: Optional[str] = None
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"severity": self.severity, "description": self.description}
        if self.suggested_fix:
            d["suggestedFix"] = self.suggested_fix
        if self.category:
            d["category"] = self.category
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> Optional["CritiqueIssue"]:
        description = d.get("description")
        if not isinstance(description, str) or not description.strip():
            return None
        severity = d.get("severity")
        category = d.get("category")
        fix = _get(d, "suggestedFix", "suggested_fix")
        return cls(
            severity=severity if severity in SEVERITIES else "minor",
            description=description.strip(),
            suggested_fix=fix if isinstance(fix, str) else None,
            category=category if category in VISUAL_CATEGORIES else None,
        )


def _issues(value: Any) -> List[CritiqueIssue]:
    if not isinstance(value, list):
        return []
    issues = []
    for item in value:
        if isinstance(item, dict):
            issue = CritiqueIssue.from_dict(item)
        elif isinstance(item, str) and item.strip():
            issue = CritiqueIssue(severity="minor", description=item.strip())
        else:
            issue = None
        if issue:
            issues.append(issue)
    return issues


@dataclass
class CritiqueResult:
    """Structural assessment of a scene against the analysis."""
    score: float
    is_acceptable: bool
    matches_input: bool
    issues: List[CritiqueIssue] = field(default_factory=list)
    missing_parts: List[str] = field(default_factory=list)
    extraneous_parts: List[str] = field(default_factory=list)
    color_issues: List[str] = field(default_factory=list)
    proportion_issues: List[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "isAcceptable": self.is_acceptable,
            "matchesInput": self.matches_input,
            "issues": [i.to_dict() for i in self.issues],
            "missingParts": list(self.missing_parts),
            "extraneousParts": list(self.extraneous_parts),
            "colorIssues": list(self.color_issues),
            "proportionIssues": list(self.proportion_issues),
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CritiqueResult":
        score = _clamp_score(d.get("score"), 0.0, 10.0, 5.0)
        return cls(
            score=score,
            is_acceptable=_bool(_get(d, "isAcceptable", "is_acceptable"), score >= 7),
            matches_input=_bool(_get(d, "matchesInput", "matches_input"), True),
            issues=_issues(d.get("issues")),
            missing_parts=_str_list(_get(d, "missingParts", "missing_parts")),
            extraneous_parts=_str_list(_get(d, "extraneousParts", "extraneous_parts")),
            color_issues=_str_list(_get(d, "colorIssues", "color_issues")),
            proportion_issues=_str_list(_get(d, "proportionIssues", "proportion_issues")),
            summary=str(d.get("summary") or "Critique completed"),
        )


@dataclass
class RefinementResult:
    """Replacement scene from the structural refiner."""
    elements: List[SceneElement]
    changes: List[str] = field(default_factory=list)
    success: bool = True


@dataclass
class VisualCritiqueResult:
    """Aesthetic assessment, independent of structural correctness."""
    score: float
    is_acceptable: bool
    dimension_scores: Dict[str, float] = field(default_factory=dict)
    issues: List[CritiqueIssue] = field(default_factory=list)
    strengths: List[str] = field(default_factory=list)
    overall_impression: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "isAcceptable": self.is_acceptable,
            "dimensionScores": dict(self.dimension_scores),
            "issues": [i.to_dict() for i in self.issues],
            "strengths": list(self.strengths),
            "overallImpression": self.overall_impression,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VisualCritiqueResult":
        score = _clamp_score(d.get("score"), 1.0, 10.0, 5.0)
        raw_dims = _get(d, "dimensionScores", "dimension_scores")
        dimension_scores = {}
        if isinstance(raw_dims, dict):
            for key in VISUAL_DIMENSIONS:
                if key in raw_dims:
                    dimension_scores[key] = _clamp_score(raw_dims[key], 0.0, 2.0, 0.0)
        return cls(
            score=score,
            is_acceptable=_bool(_get(d, "isAcceptable", "is_acceptable"), score >= 8),
            dimension_scores=dimension_scores,
            issues=_issues(d.get("issues")),
            strengths=_str_list(d.get("strengths")),
            overall_impression=str(_get(d, "overallImpression", "overall_impression") or "Visual quality evaluated"),
        )


@dataclass
class VisualRefinementResult:
    """Replacement scene from the visual refiner."""
    elements: List[SceneElement]
    changes: List[str] = field(default_factory=list)
    summary: str = ""
    success: bool = True


__all__ = [
    "OBJECT_TYPES",
    "VISUAL_DIMENSIONS",
    "PartHint",
    "VisionAnalysis",
    "StructurePlan",
    "CritiqueIssue",
    "CritiqueResult",
    "RefinementResult",
    "VisualCritiqueResult",
    "VisualRefinementResult",
]
