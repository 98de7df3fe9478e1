"""
Deterministic OpenSCAD source used when model-generated CAD is unavailable.
"""

from typing import Dict, Optional
import math

from .classify import infer_kind_from_text
from .elements import Kind


MIN_FIGURE_HEIGHT = 160

_FIGURE_TEMPLATE = """// Project: {description}
$fn = 64;

// Overall size (mm)
h = {height};
head_r = {head_r};
body_r = {body_r};
body_len = {body_len};
arm_r = {arm_r};
arm_len = {arm_len};
leg_r = {leg_r};
leg_len = {leg_len};
ear_r = {ear_r};
muzzle_r = {muzzle_r};

module capsule(r, len) {{
  hull() {{
    translate([0, 0, len/2]) sphere(r=r);
    translate([0, 0, -len/2]) sphere(r=r);
  }}
}}

base = body_r + leg_r + 6;

union() {{
  // Body
  translate([0, 0, base])
    capsule(body_r, body_len);

  // Head
  translate([0, 0, base + body_len/2 + body_r + head_r*0.55])
    sphere(r=head_r);

  // Ears
  translate([head_r*0.55, 0, base + body_len/2 + body_r + head_r*1.10])
    sphere(r=ear_r);
  translate([-head_r*0.55, 0, base + body_len/2 + body_r + head_r*1.10])
    sphere(r=ear_r);

  // Muzzle
  translate([0, head_r*0.70, base + body_len/2 + body_r + head_r*0.30])
    sphere(r=muzzle_r);

  // Arms
  translate([body_r + arm_r + 6, 0, base + body_len*0.10])
    rotate([0, 0, 25]) capsule(arm_r, arm_len);
  translate([-(body_r + arm_r + 6), 0, base + body_len*0.10])
    rotate([0, 0, -25]) capsule(arm_r, arm_len);

  // Legs
  translate([body_r*0.55, 0, leg_r + 2])
    capsule(leg_r, leg_len);
  translate([-body_r*0.55, 0, leg_r + 2])
    capsule(leg_r, leg_len);
}}
"""

_ENCLOSURE_TEMPLATE = """// Project: {description}
$fn = 64;

// Overall dimensions (mm)
w = {width};
d = {depth};
h = {height};
wall = {wall};
r = {corner_r};
lid_t = {lid_t};

module rounded_rect(w, d, r) {{
  offset(r=r) square([w-2*r, d-2*r], center=true);
}}

module rounded_box(w, d, h, r) {{
  linear_extrude(height=h, center=true)
    rounded_rect(w, d, r);
}}

// Body shell
difference() {{
  rounded_box(w, d, h, r);
  translate([0, 0, wall])
    rounded_box(w-2*wall, d-2*wall, h-wall, max(0, r-wall));
}}

// Lid (separate part, slightly raised)
translate([0, 0, h/2 + lid_t/2 + 2])
  rounded_box(w-0.8, d-0.8, lid_t, max(0, r-1));
"""


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def _figure_source(description: str, bounds: Optional[Dict[str, float]]) -> str:
    height = max(MIN_FIGURE_HEIGHT, math.ceil(bounds["height"] if bounds else 180))
    head_r = _round(height * 0.22)
    return _FIGURE_TEMPLATE.format(
        description=description,
        height=height,
        head_r=head_r,
        body_r=_round(height * 0.18),
        body_len=_round(height * 0.36),
        arm_r=max(10, _round(height * 0.07)),
        arm_len=_round(height * 0.20),
        leg_r=max(12, _round(height * 0.08)),
        leg_len=_round(height * 0.22),
        ear_r=max(10, _round(head_r * 0.33)),
        muzzle_r=max(10, _round(head_r * 0.32)),
    )


def _enclosure_source(description: str, bounds: Optional[Dict[str, float]]) -> str:
    bounds = bounds or {"width": 80, "height": 22, "depth": 35}
    width = max(60, math.ceil(bounds["width"] + 10))
    depth = max(25, math.ceil(bounds["depth"] + 10))
    height = max(18, math.ceil(bounds["height"] + 6))
    return _ENCLOSURE_TEMPLATE.format(
        description=description,
        width=width,
        depth=depth,
        height=height,
        wall=2,
        corner_r=min(10, max(2, _round(min(width, depth) * 0.08))),
        lid_t=min(4, max(2, _round(height * 0.15))),
    )


def fallback_openscad(description: str, bounds: Optional[Dict[str, float]] = None) -> str:
    """
    Build OpenSCAD source for a description without a model.

    Parameters
    ----------
    description : str
        Request text. Toy-like requests get a primitive-built figure,
        everything else a hollow enclosure with a separate lid.
    bounds : dict, optional
        Scene bounds from ``compute_bounds``; used to size the part

    Returns
    -------
    str
        OpenSCAD source
    """
    description = " ".join((description or "Hardware project").split())
    if infer_kind_from_text(description) == Kind.OBJECT:
        return _figure_source(description, bounds)
    return _enclosure_source(description, bounds)


__all__ = ["MIN_FIGURE_HEIGHT", "fallback_openscad"]
