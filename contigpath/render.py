from __future__ import annotations

import io
from pathlib import Path
from typing import Optional

from .mpl_backend import configure_headless_matplotlib
from .projection import GLOBAL_KIND, Projection

FORWARD_COLOR = "blue"
REVERSE_COLOR = "red"
EXPORT_FORMATS = {"svg", "png"}


def _draw(projection: Projection, ax) -> None:
    from matplotlib.collections import LineCollection

    array = projection.segment_array()
    reverse_mask = [segment.alignment.is_reverse for segment in projection.segments]
    forward_lines = [[(row[0], row[1]), (row[2], row[3])] for row, rev in zip(array, reverse_mask) if not rev]
    reverse_lines = [[(row[0], row[1]), (row[2], row[3])] for row, rev in zip(array, reverse_mask) if rev]
    ax.add_collection(LineCollection(forward_lines, colors=FORWARD_COLOR, linewidths=1.5, label="Forward"))
    ax.add_collection(LineCollection(reverse_lines, colors=REVERSE_COLOR, linewidths=1.5, label="Reverse"))

    for marker in projection.markers:
        ax.plot(
            [marker.x_start, marker.x_end],
            [marker.y_start, marker.y_end],
            color=marker.color,
            linewidth=5,
            solid_capstyle="butt",
        )

    y_low = min(projection.y_range)
    y_high = max(projection.y_range)
    for layout in projection.x_layouts:
        if layout.offset > 0:
            ax.axvline(layout.offset, color="black", alpha=0.4, linewidth=1, linestyle=":")
        if layout.visited:
            ax.axvspan(layout.offset, layout.end, color="grey", alpha=0.2, zorder=0)
        label = layout.name + ("(-)" if layout.effective_reversed else "")
        ax.text(
            layout.offset + layout.length / 2,
            y_low if not projection.axis_reversed else y_high,
            label,
            rotation=-45 if projection.kind == GLOBAL_KIND else -90,
            fontsize=7,
            color="red" if layout.effective_reversed else "black",
            ha="center",
            va="top",
        )

    if projection.kind == GLOBAL_KIND:
        for layout in projection.y_layouts:
            if layout.offset > 0:
                ax.axhline(layout.offset, color="black", alpha=0.4, linewidth=1, linestyle=":")
            if layout.visited:
                ax.axhspan(layout.offset, layout.end, color="grey", alpha=0.2, zorder=0)
        ax.set_title("Telomere-Containing Contigs")
        ax.set_xticks([])
        ax.set_yticks([])
    else:
        ax.set_title(f"Alignments to {projection.contig_name}")
        ax.set_ylabel(
            f"Contig: {projection.contig_name}",
            color="red" if projection.axis_reversed else "black",
        )
        ax.set_xticks([])

    ax.set_xlim(*projection.x_range)
    ax.set_ylim(*projection.y_range)
    if projection.kind == GLOBAL_KIND:
        ax.set_aspect("equal", adjustable="box")


def render_bytes(
    projection: Projection,
    *,
    fmt: str = "svg",
    width: float = 8.0,
    height: float = 8.0,
    dpi: int = 150,
) -> bytes:
    if fmt not in EXPORT_FORMATS:
        raise ValueError("Export format must be 'svg' or 'png'")
    configure_headless_matplotlib()
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(width, height), dpi=dpi)
    try:
        _draw(projection, ax)
        buffer = io.BytesIO()
        fig.savefig(buffer, format=fmt, bbox_inches="tight")
    finally:
        plt.close(fig)
    return buffer.getvalue()


def write_figure(
    projection: Projection,
    output: Path,
    *,
    width: float = 8.0,
    height: float = 8.0,
    dpi: int = 150,
    fmt: Optional[str] = None,
) -> None:
    output = Path(output)
    fmt = fmt or output.suffix.lstrip(".").lower() or "svg"
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(render_bytes(projection, fmt=fmt, width=width, height=height, dpi=dpi))
