"""
Bill-of-materials Markdown helpers.

Model output for a BOM often wraps the table in prose. These helpers pull
out the first Markdown table (a header row followed by a ``---`` separator
row) and parse it into headers and rows.
"""

from dataclasses import dataclass
from typing import List, Optional
import re

_SEPARATOR_CELL = re.compile(r"^:?-{3,}:?$")


@dataclass
class BomTable:
    headers: List[str]
    rows: List[List[str]]
    raw: str


def _is_separator_line(line: str) -> bool:
    stripped = line.strip()
    if "|" not in stripped:
        return False
    cells = [c.strip() for c in stripped.split("|") if c.strip()]
    return bool(cells) and all(_SEPARATOR_CELL.match(c) for c in cells)


def _split_row(line: str) -> List[str]:
    cells = [c.strip() for c in line.split("|")]
    if cells and cells[0] == "":
        cells.pop(0)
    if cells and cells[-1] == "":
        cells.pop()
    return cells


def extract_bom_table(markdown: Optional[str]) -> Optional[str]:
    """
    First Markdown table in the text, or None.

    The table runs from its header row to the first blank line or line
    without a pipe.
    """
    if not markdown or not isinstance(markdown, str):
        return None
    lines = markdown.splitlines()

    header_index = None
    for i in range(len(lines) - 1):
        if "|" in lines[i] and _is_separator_line(lines[i + 1]):
            header_index = i
            break
    if header_index is None:
        return None

    table = lines[header_index:header_index + 2]
    for line in lines[header_index + 2:]:
        if not line.strip() or "|" not in line:
            break
        table.append(line)
    return "\n".join(table).strip()


def parse_bom_table(markdown: Optional[str]) -> Optional[BomTable]:
    """
    Parse the first table into headers and rows.

    Short rows are padded with empty cells; cells beyond the header count
    are joined into the last column.
    """
    table = extract_bom_table(markdown) or (markdown or "").strip()
    if not table:
        return None

    lines = [line for line in table.splitlines() if line.strip()]
    if len(lines) < 2 or not _is_separator_line(lines[1]):
        return None

    headers = _split_row(lines[0])
    if not headers:
        return None

    rows = []
    for line in lines[2:]:
        cells = _split_row(line)
        if len(cells) <= len(headers):
            rows.append(cells + [""] * (len(headers) - len(cells)))
        else:
            overflow = " | ".join(cells[len(headers) - 1:])
            rows.append(cells[:len(headers) - 1] + [overflow])

    return BomTable(headers=headers, rows=rows, raw=table)


def normalize_bom_markdown(markdown: str) -> str:
    """The first table if there is one, else the trimmed text."""
    return extract_bom_table(markdown) or markdown.strip()


__all__ = ["BomTable", "extract_bom_table", "parse_bom_table", "normalize_bom_markdown"]
