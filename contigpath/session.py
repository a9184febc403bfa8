"""Per-dataset explorer sessions: loading, cached navigator state and view payloads."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .alignments import Alignment, LoadReport, load_alignments
from .errors import NavigationError, UnknownSessionError
from .genome_index import FaiEntry, contig_lengths, load_genome_index
from .navigation import DetailView, EntryAlignment, PathNavigator, SavedPath, View
from .params import ExplorerParams
from .projection import Projection, project_detail, project_global
from .registry import ContigRegistry, build_registry, parse_telomere_bed
from .render import render_bytes
from .sequences import SequencePair, alignment_sequences

logger = logging.getLogger(__name__)


@dataclass
class Dataset:
    fasta_path: Path
    genome_index: Dict[str, FaiEntry]
    registry: ContigRegistry
    alignments: List[Alignment]
    load_report: LoadReport = field(default_factory=LoadReport)


@dataclass
class ExplorerSession:
    token: str
    params: ExplorerParams
    dataset: Dataset
    navigator: PathNavigator
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)


SESSION_CACHE: Dict[str, ExplorerSession] = {}
MAX_SESSIONS = 12
_CACHE_LOCK = threading.RLock()


def _trim_cache() -> None:
    while len(SESSION_CACHE) > MAX_SESSIONS:
        first_key = next(iter(SESSION_CACHE))
        del SESSION_CACHE[first_key]


def load_dataset(
    *,
    fasta_path: Path,
    alignment_path: Path,
    telomere_path: Path,
    fai_path: Optional[Path] = None,
    params: Optional[ExplorerParams] = None,
) -> Dataset:
    params = params or ExplorerParams()
    fasta_path = Path(fasta_path)
    genome_index = load_genome_index(fasta_path, fai_path)
    lengths = contig_lengths(genome_index)

    with Path(alignment_path).open("rb") as handle:
        alignments, report = load_alignments(
            handle,
            lengths,
            min_length=params.min_alignment_length,
            chunk_size=params.read_chunk_size,
        )

    telomere_text = Path(telomere_path).read_text(encoding="utf-8")
    telomeres = parse_telomere_bed(telomere_text, lengths, params.min_telomere_length)
    registry = build_registry(lengths, telomeres)
    return Dataset(
        fasta_path=fasta_path,
        genome_index=genome_index,
        registry=registry,
        alignments=alignments,
        load_report=report,
    )


def prepare_session(
    *,
    fasta_path: Path,
    alignment_path: Path,
    telomere_path: Path,
    fai_path: Optional[Path] = None,
    params: Optional[ExplorerParams] = None,
) -> ExplorerSession:
    params = params or ExplorerParams()
    dataset = load_dataset(
        fasta_path=fasta_path,
        alignment_path=alignment_path,
        telomere_path=telomere_path,
        fai_path=fai_path,
        params=params,
    )
    session = ExplorerSession(
        token=uuid.uuid4().hex,
        params=params,
        dataset=dataset,
        navigator=PathNavigator(dataset.registry),
    )
    with _CACHE_LOCK:
        SESSION_CACHE[session.token] = session
        _trim_cache()
    logger.info("Prepared session %s", session.token)
    return session


def get_session(token: str) -> ExplorerSession:
    with _CACHE_LOCK:
        try:
            return SESSION_CACHE[token]
        except KeyError as exc:
            raise UnknownSessionError("Unknown or expired session token") from exc


def current_projection(session: ExplorerSession) -> Projection:
    with session.lock:
        navigator = session.navigator
        view = navigator.current_view
        if isinstance(view, DetailView):
            return project_detail(
                session.dataset.registry,
                session.dataset.alignments,
                view.contig_name,
                navigator.axis_reversed,
                session.params,
                visited=navigator.visited_contigs(),
            )
        return project_global(
            session.dataset.registry,
            session.dataset.alignments,
            navigator.axis_reversed,
            session.params,
            visited=navigator.visited_in_history(),
        )


def _range_payload(rng) -> Dict[str, object]:
    return {"name": rng.name, "start": rng.start, "end": rng.end, "strand": rng.strand}


def _entry_payload(entry: Optional[EntryAlignment]) -> Optional[Dict[str, object]]:
    if entry is None:
        return None
    return {"source": _range_payload(entry.source), "target": _range_payload(entry.target)}


def view_payload(view: View) -> Dict[str, object]:
    if isinstance(view, DetailView):
        return {
            "kind": "detail",
            "contig_name": view.contig_name,
            "is_reversed": view.is_reversed,
            "entry_alignment": _entry_payload(view.entry_alignment),
        }
    return {"kind": "global"}


def _path_payload(path: SavedPath) -> List[Dict[str, object]]:
    return [view_payload(view) for view in path]


def navigation_state(session: ExplorerSession) -> Dict[str, object]:
    with session.lock:
        navigator = session.navigator
        return {
            "token": session.token,
            "depth": navigator.depth,
            "axis_reversed": navigator.axis_reversed,
            "current_view": view_payload(navigator.current_view),
            "path_label": navigator.path_label(),
            "path_number": navigator.path_number(),
            "history": [_path_payload(path) for path in navigator.history],
        }


def render_view(session: ExplorerSession) -> Dict[str, object]:
    with session.lock:
        projection = current_projection(session)
        payload = navigation_state(session)
        payload["projection"] = projection.to_payload()
        return payload


def enter_contig(session: ExplorerSession, contig_name: str) -> Dict[str, object]:
    with session.lock:
        session.navigator.enter_from_global(contig_name)
        return navigation_state(session)


def enter_at(session: ExplorerSession, y: float) -> Dict[str, object]:
    """Enter the global-view contig under a y coordinate."""
    with session.lock:
        projection = current_projection(session)
        if projection.contig_name is not None:
            raise NavigationError("Contigs can only be entered directly from the global view")
        layout = projection.y_contig_at(y)
        if layout is None:
            raise NavigationError(f"No contig at position {y}")
        return enter_contig(session, layout.name)


def select_at(session: ExplorerSession, x: float, y: float) -> Dict[str, object]:
    """Follow the alignment segment closest to a detail-view point."""
    with session.lock:
        projection = current_projection(session)
        if projection.contig_name is None:
            raise NavigationError("An alignment can only be followed from a detail view")
        segment = projection.nearest_segment(x, y)
        if segment is None:
            raise NavigationError(f"No alignments to {projection.contig_name}")
        session.navigator.enter_from_detail(segment.alignment)
        return navigation_state(session)


def go_back(session: ExplorerSession) -> Dict[str, object]:
    with session.lock:
        session.navigator.back()
        return navigation_state(session)


def go_global(session: ExplorerSession) -> Dict[str, object]:
    with session.lock:
        session.navigator.return_to_global()
        return navigation_state(session)


def resume_path(session: ExplorerSession, index: int) -> Dict[str, object]:
    with session.lock:
        session.navigator.resume(index)
        return navigation_state(session)


def toggle_orientation(session: ExplorerSession) -> Dict[str, object]:
    with session.lock:
        session.navigator.toggle_reversed()
        return navigation_state(session)


def export_paths_text(session: ExplorerSession) -> str:
    with session.lock:
        return session.navigator.export_text()


def import_paths_text(session: ExplorerSession, text: str) -> Dict[str, object]:
    with session.lock:
        imported = session.navigator.import_text(text)
        payload = navigation_state(session)
        payload["imported"] = imported
        payload["offer_resume"] = session.navigator.can_offer_resume(imported)
        return payload


def sequence_at(session: ExplorerSession, x: float, y: float) -> SequencePair:
    """Sequences of the detail-view alignment closest to a point."""
    with session.lock:
        projection = current_projection(session)
        segment = projection.nearest_segment(x, y)
    if segment is None:
        raise ValueError("No alignment segment in the current view")
    return alignment_sequences(session.dataset.fasta_path, session.dataset.genome_index, segment.alignment)


def export_view(session: ExplorerSession, fmt: str) -> bytes:
    with session.lock:
        projection = current_projection(session)
    return render_bytes(
        projection,
        fmt=fmt,
        width=session.params.figure_width,
        height=session.params.figure_height,
        dpi=session.params.dpi,
    )
