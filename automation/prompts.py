"""
Prompt templates for the generation and output agents.

Templates use ``{name}`` placeholders filled by ``render``. Plain string
replacement is used instead of ``str.format`` so the JSON examples inside
the templates need no brace escaping.
"""

from typing import Any
import json


SYSTEM_PROMPT = '''You are a senior hardware product designer and mechanical engineer.
You turn rough product ideas and sketches into buildable designs: 3D scene layouts,
CAD source, bills of materials and supporting documentation. Be concrete, use
millimetres for every dimension, and follow the requested output format exactly.'''


def render(template: str, **values: Any) -> str:
    """Fill ``{name}`` placeholders; non-string values are JSON encoded."""
    text = template
    for key, value in values.items():
        if not isinstance(value, str):
            value = json.dumps(value, indent=2)
        text = text.replace("{" + key + "}", value)
    return text


# =============================================================================
# Scene pipeline
# =============================================================================

VISION_ANALYSIS_PROMPT = '''Analyze this sketch/image and extract 3D modeling information.

Project description: {description}

Determine:
1. objectType: "enclosure" (electronics housing, device case), "organic" (toy, plush,
   animal, character), "mechanical" (gear, bracket, machine part), "abstract" (art, unknown)
   or "mixed".
2. The main visible parts. For each: name, shape (box, rounded-box, cylinder, sphere,
   capsule), relativeSize (large, medium, small, tiny) and color if visible.
3. A short structural description of how the parts fit together.
4. Appropriate colors and approximate overall dimensions in millimetres.

Respond in JSON:
{
  "objectType": "enclosure",
  "objectName": "Microcontroller Development Board",
  "description": "Flat green board with a black chip near the centre and a pin header along one edge",
  "mainParts": [
    {"name": "pcb-base", "shape": "rounded-box", "relativeSize": "large", "color": "#228B22"},
    {"name": "main-chip", "shape": "box", "relativeSize": "medium", "color": "#1A1A1A"}
  ],
  "suggestedColors": ["#228B22", "#1A1A1A", "#C0C0C0"],
  "overallDimensions": {"width": 50, "height": 10, "depth": 40},
  "confidence": 0.85
}

Describe only what is visible. Output ONLY valid JSON.'''


STRUCTURE_PLANNER_PROMPT = '''Build a 3D scene that matches this analysis.

Analysis:
{analysis}

Project description: {description}

Rules:
- Place the core volume at [0, 0, 0] and position every other part relative to it.
- Use only these primitive types: box, rounded-box, cylinder, sphere, capsule.
- dimensions: box/rounded-box = [width, height, depth]; cylinder = [radius, height, 0];
  sphere = [radius, 0, 0]; capsule = [radius, length, 0]. Millimetres.
- rotation is in radians. material is one of plastic, metal, glass, rubber.
- Enclosures are built from rounded boxes with a separate lid; organic objects from
  spheres and capsules.

Respond in JSON:
{
  "elements": [
    {"name": "body", "type": "rounded-box", "position": [0, 0, 0], "rotation": [0, 0, 0],
     "dimensions": [80, 22, 35], "color": "#F5F5F5", "material": "plastic"}
  ],
  "reasoning": "Why the parts are laid out this way"
}

Output ONLY valid JSON.'''


CRITIC_PROMPT = '''You are a 3D model critic. Compare the generated scene against the analysis.

Analysis (what the request describes):
{analysis}

Generated scene:
{scene}

Evaluate object type match, missing parts, extra parts, colors and proportions.

Scoring:
- 9-10: all parts present, correct type
- 7-8: good match, minor issues
- 5-6: partial match
- 3-4: significant issues
- 0-2: wrong object type

A scene is acceptable if score >= 7. It matches the input if the object type is correct.

Respond in JSON:
{
  "score": 8,
  "isAcceptable": true,
  "matchesInput": true,
  "issues": [{"severity": "minor", "description": "Missing LED", "suggestedFix": "Add a small cylinder"}],
  "missingParts": ["led"],
  "extraneousParts": [],
  "colorIssues": [],
  "proportionIssues": [],
  "summary": "Good representation with minor details missing"
}

Organic shapes in an enclosure (or boxes for a toy) are a critical issue.
Output ONLY valid JSON.'''


REFINER_PROMPT = '''You are a 3D model refiner. Fix every issue in the critique.

Analysis:
{analysis}

Current scene:
{scene}

Critique:
{critique}

Add missing parts, remove extraneous parts, fix colors and proportions, and above all
make the object type match (enclosure = boxes, organic = spheres/capsules). Keep the
dimension conventions of the current scene.

Respond in JSON:
{
  "elements": [ ...complete replacement scene... ],
  "changes": ["Added LED indicator", "Changed body color"]
}

Output ONLY valid JSON.'''


VISUAL_CRITIC_PROMPT = '''You are a product designer judging VISUAL APPEAL, not structural accuracy.

Scene:
{scene}

Project description: {description}

Score each aspect from 0 to 2: colorHarmony, contrast, proportionBalance, surfacePolish,
professionalFinish. The overall score (1-10) is their sum. A scene is acceptable at 8 or more.

Respond in JSON:
{
  "score": 7,
  "isAcceptable": false,
  "dimensionScores": {"colorHarmony": 2, "contrast": 1, "proportionBalance": 2, "surfacePolish": 1, "professionalFinish": 1},
  "issues": [{"category": "color", "severity": "major", "description": "Body is flat grey", "suggestedFix": "Use #F5F5F5 with a blue accent"}],
  "strengths": ["Clean silhouette"],
  "overallImpression": "Solid layout that needs a more refined palette"
}

Output ONLY valid JSON.'''


VISUAL_REFINER_PROMPT = '''You are a product designer polishing a 3D scene for a catalog render.

Scene:
{scene}

Project description: {description}

Visual critique:
{critique}

Improve colors, contrast, corner radii, materials and small details. Do not change what
the object is or remove structural parts.

Respond in JSON:
{
  "refinedScene": {"elements": [ ...complete replacement scene... ]},
  "changesApplied": ["Changed body color from #808080 to #F5F5F5"],
  "summary": "Applied a clean white body with blue accents"
}

Output ONLY valid JSON.'''


# =============================================================================
# Output agents
# =============================================================================

OPENSCAD_PROMPT = '''Write OpenSCAD source for this project.

Project: {description}

Scene layout (for reference):
{scene}

Target overall size: {dimensions}

{current}
Use millimetres, $fn = 64, named modules for each part, and keep the lid as a separate part.
Output ONLY OpenSCAD source, no markdown.'''


BOM_PROMPT = '''Create a bill of materials for this hardware project.

Project: {description}

{current}
Respond with a single Markdown table with the columns:
| Item | Part | Quantity | Unit Cost (USD) | Supplier | Notes |
Output only the table.'''


TEXT_OUTPUT_PROMPTS = {
    "assembly": '''Write step-by-step assembly instructions for this project.

Project: {description}

Bill of materials:
{bom}
''',
    "firmware": '''Write the firmware for this project as a single, complete source file with comments.

Project: {description}
''',
    "schematic": '''Describe the electrical schematic for this project: components, nets and pin
connections, as a Markdown list followed by a netlist table.

Project: {description}
''',
    "safety": '''Review this project for electrical, mechanical, thermal and child-safety hazards.
List each hazard with a severity and a mitigation.

Project: {description}

Bill of materials:
{bom}
''',
    "sustainability": '''Assess the sustainability of this project: materials, energy use, repairability
and end of life. Suggest concrete improvements.

Project: {description}

Bill of materials:
{bom}

3D scene:
{scene}
''',
    "cost-optimization": '''Suggest cost optimizations for this project with estimated savings per item.

Project: {description}

Bill of materials:
{bom}
''',
    "dfm": '''Review this design for manufacturability (injection molding, 3D printing, PCB assembly).
List issues and recommended changes.

Project: {description}

3D scene:
{scene}
''',
    "marketing": '''Write a short product launch page: name, tagline, three key features and a
description paragraph.

Project: {description}
''',
    "patent-risk": '''Identify features of this project that may overlap with existing patents and
suggest design-arounds. This is not legal advice.

Project: {description}
''',
}


UPDATE_SUFFIX = '''
Current version (update it according to the instruction, keep what still applies):
{current}

Instruction: {instruction}
'''


# =============================================================================
# Plan drafting
# =============================================================================

PLAN_PROMPT = '''Plan which outputs to produce for this request.

User message: {message}

Project description: {description}

Requested outputs: {requested}

Existing outputs: {existing}

Each task has an id, the agent/outputType it produces, an action ("update" or
"regenerate"), an instruction, and optional dependsOn ids.

Respond in JSON:
{
  "version": 1,
  "requestedOutputs": ["3d-model", "bom"],
  "tasks": [
    {"id": "t1", "agent": "scene-json", "outputType": "scene-json", "action": "regenerate", "instruction": "..."},
    {"id": "t2", "agent": "openscad", "outputType": "openscad", "action": "regenerate", "instruction": "...", "dependsOn": ["t1"]}
  ]
}

Output ONLY valid JSON.'''


__all__ = [
    "SYSTEM_PROMPT",
    "render",
    "VISION_ANALYSIS_PROMPT",
    "STRUCTURE_PLANNER_PROMPT",
    "CRITIC_PROMPT",
    "REFINER_PROMPT",
    "VISUAL_CRITIC_PROMPT",
    "VISUAL_REFINER_PROMPT",
    "OPENSCAD_PROMPT",
    "BOM_PROMPT",
    "TEXT_OUTPUT_PROMPTS",
    "UPDATE_SUFFIX",
    "PLAN_PROMPT",
]
