"""Project contigs and alignments into the shared 2-D plot space of a view.

Two views exist. The global view lays every telomere-bearing contig along
both axes. A detail view pivots on one contig placed on the y-axis, with
every contig aligned to it laid out along the x-axis. Y-axis reversal is
never applied to coordinates: it only flips the y range. Query contigs
on the x-axis are mirrored inside their own span when their effective
reversal is set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Collection, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .alignments import FORWARD, REVERSE, Alignment
from .params import ExplorerParams
from .registry import Contig, ContigRegistry

GLOBAL_KIND = "global"
DETAIL_KIND = "detail"

TELOMERE_COLORS = {
    ("y", "+"): "green",
    ("y", "-"): "yellow",
    ("x", "+"): "purple",
    ("x", "-"): "orange",
}


def effective_reversed(contig_default: bool, axis_reversed: bool) -> bool:
    """Orientation actually displayed: a contig's own default flipped by the active axis flag."""
    return bool(contig_default) != bool(axis_reversed)


@dataclass(frozen=True)
class AxisLayout:
    name: str
    offset: int
    length: int
    is_reversed: bool = False
    effective_reversed: bool = False
    visited: bool = False

    @property
    def end(self) -> int:
        return self.offset + self.length

    def contains(self, position: float) -> bool:
        return self.offset <= position < self.end


@dataclass(frozen=True)
class Segment:
    alignment: Alignment
    x_start: float
    x_end: float
    y_start: float
    y_end: float


@dataclass(frozen=True)
class TelomereMarker:
    axis: str
    contig: str
    strand: str
    x_start: float
    x_end: float
    y_start: float
    y_end: float

    @property
    def color(self) -> str:
        return TELOMERE_COLORS.get((self.axis, self.strand), "grey")


@dataclass
class Projection:
    kind: str
    contig_name: Optional[str]
    axis_reversed: bool
    x_layouts: List[AxisLayout]
    y_layouts: List[AxisLayout]
    segments: List[Segment]
    markers: List[TelomereMarker]
    x_range: Tuple[float, float]
    y_range: Tuple[float, float]
    _array: Optional[np.ndarray] = field(default=None, repr=False, compare=False)

    def segment_array(self) -> np.ndarray:
        """Rows of ``(x_start, y_start, x_end, y_end)``."""
        if self._array is None:
            self._array = np.array(
                [[s.x_start, s.y_start, s.x_end, s.y_end] for s in self.segments],
                dtype=float,
            ).reshape(-1, 4)
        return self._array

    def nearest_segment(self, x: float, y: float) -> Optional[Segment]:
        """Closest segment to a data-space point by point-to-segment distance."""
        array = self.segment_array()
        if array.shape[0] == 0:
            return None
        point = np.array([x, y], dtype=float)
        starts = array[:, 0:2]
        deltas = array[:, 2:4] - starts
        lengths_sq = (deltas ** 2).sum(axis=1)
        safe = np.where(lengths_sq > 0, lengths_sq, 1.0)
        t = np.where(lengths_sq > 0, ((point - starts) * deltas).sum(axis=1) / safe, 0.0)
        t = np.clip(t, 0.0, 1.0)
        closest = starts + t[:, None] * deltas
        distances = ((closest - point) ** 2).sum(axis=1)
        return self.segments[int(np.argmin(distances))]

    def x_contig_at(self, position: float) -> Optional[AxisLayout]:
        return find_contig_at(position, self.x_layouts)

    def y_contig_at(self, position: float) -> Optional[AxisLayout]:
        return find_contig_at(position, self.y_layouts)

    def to_payload(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "contig_name": self.contig_name,
            "axis_reversed": self.axis_reversed,
            "x_range": list(self.x_range),
            "y_range": list(self.y_range),
            "x_contigs": [_layout_payload(layout) for layout in self.x_layouts],
            "y_contigs": [_layout_payload(layout) for layout in self.y_layouts],
            "segments": [
                {
                    "q_name": s.alignment.q_name,
                    "t_name": s.alignment.t_name,
                    "q_start": s.alignment.q_start_orig,
                    "t_start": s.alignment.t_start_orig,
                    "aln_len": s.alignment.aln_len,
                    "strand": s.alignment.strand,
                    "direction": s.alignment.direction,
                    "x": [s.x_start, s.x_end],
                    "y": [s.y_start, s.y_end],
                }
                for s in self.segments
            ],
            "telomeres": [
                {
                    "axis": m.axis,
                    "contig": m.contig,
                    "strand": m.strand,
                    "color": m.color,
                    "x": [m.x_start, m.x_end],
                    "y": [m.y_start, m.y_end],
                }
                for m in self.markers
            ],
        }


def _layout_payload(layout: AxisLayout) -> Dict[str, object]:
    return {
        "name": layout.name,
        "offset": layout.offset,
        "length": layout.length,
        "is_reversed": layout.is_reversed,
        "effective_reversed": layout.effective_reversed,
        "visited": layout.visited,
    }


def find_contig_at(position: float, layouts: Iterable[AxisLayout]) -> Optional[AxisLayout]:
    for layout in layouts:
        if layout.contains(position):
            return layout
    return None


def global_offsets(registry: ContigRegistry) -> Dict[str, int]:
    offsets: Dict[str, int] = {}
    current = 0
    for contig in registry.telomere_contigs():
        offsets[contig.name] = current
        current += contig.length
    return offsets


def default_reversal(alignments: Iterable[Alignment]) -> bool:
    """Reverse a query contig when most of its aligned length runs in reverse."""
    forward_total = 0
    reverse_total = 0
    for alignment in alignments:
        if alignment.direction == REVERSE:
            reverse_total += alignment.aln_len
        elif alignment.direction == FORWARD:
            forward_total += alignment.aln_len
    return reverse_total > forward_total


def axis_range(length: float, padding: float, reversed_: bool = False) -> Tuple[float, float]:
    if reversed_:
        return (float(length), float(-padding))
    return (float(-padding), float(length))


def _y_markers(layouts: Sequence[AxisLayout], registry: ContigRegistry, marker_pos: float) -> List[TelomereMarker]:
    markers: List[TelomereMarker] = []
    for layout in layouts:
        contig = registry.require(layout.name)
        for telomere in contig.telomeres:
            markers.append(
                TelomereMarker(
                    axis="y",
                    contig=contig.name,
                    strand=telomere.strand,
                    x_start=marker_pos,
                    x_end=marker_pos,
                    y_start=telomere.start + layout.offset,
                    y_end=telomere.end + layout.offset,
                )
            )
    return markers


def _x_markers(layouts: Sequence[AxisLayout], registry: ContigRegistry, marker_pos: float) -> List[TelomereMarker]:
    markers: List[TelomereMarker] = []
    for layout in layouts:
        contig = registry.require(layout.name)
        for telomere in contig.telomeres:
            start_local, end_local = telomere.start, telomere.end
            if layout.effective_reversed:
                start_local, end_local = contig.length - telomere.end, contig.length - telomere.start
            markers.append(
                TelomereMarker(
                    axis="x",
                    contig=contig.name,
                    strand=telomere.strand,
                    x_start=start_local + layout.offset,
                    x_end=end_local + layout.offset,
                    y_start=marker_pos,
                    y_end=marker_pos,
                )
            )
    return markers


def project_global(
    registry: ContigRegistry,
    alignments: Sequence[Alignment],
    axis_reversed: bool = False,
    params: Optional[ExplorerParams] = None,
    visited: Collection[str] = (),
) -> Projection:
    params = params or ExplorerParams()
    offsets = global_offsets(registry)
    layouts = [
        AxisLayout(name=contig.name, offset=offsets[contig.name], length=contig.length, visited=contig.name in visited)
        for contig in registry.telomere_contigs()
    ]
    total_length = sum(layout.length for layout in layouts)

    segments: List[Segment] = []
    for alignment in alignments:
        if alignment.aln_len < params.global_min_alignment_length:
            continue
        q_offset = offsets.get(alignment.q_name)
        t_offset = offsets.get(alignment.t_name)
        if q_offset is None or t_offset is None:
            continue
        x_start = q_offset + alignment.q_start_orig
        segments.append(
            Segment(
                alignment=alignment,
                x_start=x_start,
                x_end=x_start + alignment.aln_len,
                y_start=t_offset + alignment.t_start_orig,
                y_end=t_offset + alignment.t_end_orig,
            )
        )

    markers = _y_markers(layouts, registry, params.telomere_marker_pos)
    markers += _x_markers(layouts, registry, params.telomere_marker_pos)
    return Projection(
        kind=GLOBAL_KIND,
        contig_name=None,
        axis_reversed=bool(axis_reversed),
        x_layouts=layouts,
        y_layouts=list(layouts),
        segments=segments,
        markers=markers,
        x_range=axis_range(total_length, params.axis_padding),
        y_range=axis_range(total_length, params.axis_padding, bool(axis_reversed)),
    )


def _detail_x(alignment: Alignment, layout: AxisLayout) -> Tuple[int, int]:
    q_start = alignment.q_start_orig
    q_end = alignment.q_end_orig
    if layout.effective_reversed:
        q_start = layout.length - q_start
        q_end = layout.length - q_end
        if alignment.direction == FORWARD:
            return layout.offset + q_start, layout.offset + q_end
        return layout.offset + q_end, layout.offset + q_start
    if alignment.direction == FORWARD:
        return layout.offset + q_start, layout.offset + q_end
    return layout.offset + q_end, layout.offset + q_start


def project_detail(
    registry: ContigRegistry,
    alignments: Sequence[Alignment],
    contig_name: str,
    axis_reversed: bool = False,
    params: Optional[ExplorerParams] = None,
    visited: Collection[str] = (),
) -> Projection:
    params = params or ExplorerParams()
    y_contig: Contig = registry.require(contig_name)
    relevant = [alignment for alignment in alignments if alignment.t_name == contig_name]

    grouped: Dict[str, List[Alignment]] = {}
    for alignment in relevant:
        grouped.setdefault(alignment.q_name, []).append(alignment)

    x_layouts: Dict[str, AxisLayout] = {}
    current_offset = 0
    for name, members in grouped.items():
        contig = registry.require(name)
        is_reversed = default_reversal(members)
        x_layouts[name] = AxisLayout(
            name=name,
            offset=current_offset,
            length=contig.length,
            is_reversed=is_reversed,
            effective_reversed=effective_reversed(is_reversed, axis_reversed),
            visited=name in visited,
        )
        current_offset += contig.length

    segments: List[Segment] = []
    for alignment in relevant:
        layout = x_layouts[alignment.q_name]
        x_start, x_end = _detail_x(alignment, layout)
        segments.append(
            Segment(
                alignment=alignment,
                x_start=x_start,
                x_end=x_end,
                y_start=alignment.t_start_orig,
                y_end=alignment.t_end_orig,
            )
        )

    y_layouts = [AxisLayout(name=y_contig.name, offset=0, length=y_contig.length, is_reversed=bool(axis_reversed))]
    x_layout_list = list(x_layouts.values())
    markers = _y_markers(y_layouts, registry, params.telomere_marker_pos)
    markers += _x_markers(x_layout_list, registry, params.telomere_marker_pos)
    return Projection(
        kind=DETAIL_KIND,
        contig_name=contig_name,
        axis_reversed=bool(axis_reversed),
        x_layouts=x_layout_list,
        y_layouts=y_layouts,
        segments=segments,
        markers=markers,
        x_range=axis_range(current_offset, params.axis_padding),
        y_range=axis_range(y_contig.length, params.axis_padding, bool(axis_reversed)),
    )
