"""Line-oriented text format for saved navigation paths.

Example::

    Path 1:
      -> chrA ( => chrA [0-1] Contig:- Alignment:+)
      -> chrB ( chrA [120,000-340,000] => chrB [5,000-225,000] Contig:+ Alignment:-)

The first step of a path is entered from the global view and carries only a
target range. Import is best effort; lines that cannot be read are skipped.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from .navigation import AlignmentRange, DetailView, EntryAlignment, SavedPath

logger = logging.getLogger(__name__)

_HEADER_RE = re.compile(r"^\s*Path\s+\d+\s*:\s*$")
_BARE_STEP_RE = re.compile(r"^\s*->\s*(?P<name>\S+)\s*$")
_STEP_RE = re.compile(
    r"^\s*->\s*(?P<name>\S+)\s*\(\s*"
    r"(?:(?P<src_name>\S+)\s*\[(?P<src_start>[\d,]+)-(?P<src_end>[\d,]+)\]\s*)?"
    r"=>\s*(?P<tgt_name>\S+)\s*\[(?P<tgt_start>[\d,]+)-(?P<tgt_end>[\d,]+)\]\s*"
    r"Contig:(?P<contig>[+-])\s*Alignment:(?P<alignment>[+-])\s*\)\s*$"
)


def _format_range(rng: AlignmentRange) -> str:
    return f"{rng.name} [{rng.start:,}-{rng.end:,}]"


def format_step(view: DetailView, step_index: int) -> str:
    line = f"  -> {view.contig_name}"
    entry = view.entry_alignment
    if entry is None:
        return line
    contig_symbol = "-" if view.is_reversed else "+"
    source_part = f"{_format_range(entry.source)} => " if step_index > 0 else "=> "
    return (
        f"{line} ( {source_part}{_format_range(entry.target)} "
        f"Contig:{contig_symbol} Alignment:{entry.target.strand or '+'})"
    )


def export_paths(history: Sequence[SavedPath], in_progress: Optional[SavedPath] = None) -> str:
    paths = list(history)
    if in_progress:
        paths.append(in_progress)
    blocks: List[str] = []
    for number, path in enumerate(paths, start=1):
        lines = [f"Path {number}:"]
        lines.extend(format_step(view, step_index) for step_index, view in enumerate(path))
        blocks.append("\n".join(lines) + "\n\n")
    return "".join(blocks)


def _to_int(text: str) -> int:
    return int(text.replace(",", ""))


def parse_step(line: str) -> Optional[DetailView]:
    bare = _BARE_STEP_RE.match(line)
    if bare:
        return DetailView(contig_name=bare.group("name"), entry_alignment=None, is_reversed=False)

    match = _STEP_RE.match(line)
    if not match:
        return None
    target = AlignmentRange(
        name=match.group("tgt_name"),
        start=_to_int(match.group("tgt_start")),
        end=_to_int(match.group("tgt_end")),
        strand=match.group("alignment"),
    )
    if match.group("src_name"):
        source = AlignmentRange(
            name=match.group("src_name"),
            start=_to_int(match.group("src_start")),
            end=_to_int(match.group("src_end")),
        )
    else:
        source = AlignmentRange(name=target.name, start=target.start, end=target.end)
    return DetailView(
        contig_name=match.group("name"),
        entry_alignment=EntryAlignment(source=source, target=target),
        is_reversed=match.group("contig") == "-",
    )


def parse_paths(text: str) -> List[SavedPath]:
    paths: List[SavedPath] = []
    current: Optional[List[DetailView]] = None
    skipped = 0

    for raw_line in text.splitlines():
        if not raw_line.strip():
            continue
        if _HEADER_RE.match(raw_line):
            if current:
                paths.append(tuple(current))
            current = []
            continue
        if "->" not in raw_line:
            skipped += 1
            continue
        step = parse_step(raw_line)
        if step is None:
            skipped += 1
            continue
        if current is None:
            current = []
        current.append(step)

    if current:
        paths.append(tuple(current))
    if skipped:
        logger.warning("Skipped %d unreadable lines while importing paths", skipped)
    return paths
