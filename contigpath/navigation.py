"""View stack and path history for alignment-chain navigation.

The stack always starts with the global view; every further entry is a
detail view entered from the one below it. Completed or parked paths live in
the history. All mutation goes through the transition methods of
:class:`PathNavigator`, each of which validates fully before touching state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple, Union

from .alignments import Alignment
from .errors import NavigationError
from .projection import effective_reversed
from .registry import ContigRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlobalView:
    def __repr__(self) -> str:
        return "GLOBAL_VIEW"


GLOBAL_VIEW = GlobalView()


@dataclass(frozen=True)
class AlignmentRange:
    name: str
    start: int
    end: int
    strand: Optional[str] = None


@dataclass(frozen=True)
class EntryAlignment:
    source: AlignmentRange
    target: AlignmentRange

    @property
    def is_synthetic(self) -> bool:
        """True for the zero-length self-alignment used when entering from the global view."""
        return self.source.name == self.target.name


@dataclass(frozen=True)
class DetailView:
    contig_name: str
    entry_alignment: Optional[EntryAlignment]
    is_reversed: bool


View = Union[GlobalView, DetailView]
SavedPath = Tuple[DetailView, ...]


def synthetic_entry(contig_name: str) -> EntryAlignment:
    return EntryAlignment(
        source=AlignmentRange(name=contig_name, start=0, end=1),
        target=AlignmentRange(name=contig_name, start=0, end=1, strand="+"),
    )


def entry_from_alignment(alignment: Alignment) -> EntryAlignment:
    return EntryAlignment(
        source=AlignmentRange(
            name=alignment.t_name,
            start=alignment.t_start_orig,
            end=alignment.target_end,
        ),
        target=AlignmentRange(
            name=alignment.q_name,
            start=alignment.q_start_orig,
            end=alignment.q_end_orig,
            strand=alignment.strand,
        ),
    )


def progresses(previous_target: AlignmentRange, alignment: Alignment, axis_reversed: bool) -> bool:
    """Whether ``alignment`` does not move backwards along the current y contig."""
    if axis_reversed:
        return alignment.t_start_orig <= previous_target.start
    return alignment.target_end >= previous_target.end


class PathNavigator:
    def __init__(self, registry: ContigRegistry) -> None:
        self.registry = registry
        self._stack: List[View] = [GLOBAL_VIEW]
        self._history: List[SavedPath] = []
        self._axis_reversed = False

    @property
    def stack(self) -> Tuple[View, ...]:
        return tuple(self._stack)

    @property
    def history(self) -> Tuple[SavedPath, ...]:
        return tuple(self._history)

    @property
    def axis_reversed(self) -> bool:
        return self._axis_reversed

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def current_view(self) -> View:
        return self._stack[-1]

    @property
    def at_global(self) -> bool:
        return len(self._stack) == 1

    @property
    def in_progress_path(self) -> SavedPath:
        return tuple(view for view in self._stack[1:] if isinstance(view, DetailView))

    def visited_in_history(self) -> Set[str]:
        return {view.contig_name for path in self._history for view in path}

    def visited_contigs(self) -> Set[str]:
        return self.visited_in_history() | {view.contig_name for view in self.in_progress_path}

    def _require_unvisited(self, contig_name: str) -> None:
        if contig_name in self.visited_in_history():
            raise NavigationError(f"Contig {contig_name} has already been visited in a completed path")
        if contig_name in {view.contig_name for view in self.in_progress_path}:
            raise NavigationError(f"Contig {contig_name} has already been visited in the current path")

    def enter_from_global(self, contig_name: str) -> DetailView:
        if not self.at_global:
            raise NavigationError("Contigs can only be entered directly from the global view")
        contig = self.registry.require(contig_name)
        if not contig.has_telomere:
            raise NavigationError(f"Contig {contig_name} is not part of the global view")
        self._require_unvisited(contig_name)

        reversed_ = not contig.has_lower_telomere
        view = DetailView(contig_name=contig_name, entry_alignment=synthetic_entry(contig_name), is_reversed=reversed_)
        self._axis_reversed = reversed_
        self._stack.append(view)
        logger.debug("Entered %s from global view (reversed=%s)", contig_name, reversed_)
        return view

    def enter_from_detail(self, alignment: Alignment) -> DetailView:
        current = self.current_view
        if not isinstance(current, DetailView):
            raise NavigationError("An alignment can only be followed from a detail view")
        if alignment.t_name != current.contig_name:
            raise NavigationError(
                f"Alignment targets {alignment.t_name}, but the current view is {current.contig_name}"
            )
        self.registry.require(alignment.q_name)
        self._require_unvisited(alignment.q_name)

        entry = current.entry_alignment
        if entry is not None and not entry.is_synthetic:
            if not progresses(entry.target, alignment, self._axis_reversed):
                if self._axis_reversed:
                    detail = "the start of the previous alignment is further along (in reverse) than the start of the new one"
                else:
                    detail = "the end of the previous alignment is further along than the end of the new one"
                raise NavigationError(f"Cannot move backwards along {current.contig_name}: {detail}")

        reversed_ = effective_reversed(self._axis_reversed, alignment.is_reverse)
        view = DetailView(
            contig_name=alignment.q_name,
            entry_alignment=entry_from_alignment(alignment),
            is_reversed=reversed_,
        )
        self._axis_reversed = reversed_
        self._stack.append(view)
        logger.debug("Followed alignment %s -> %s (reversed=%s)", alignment.t_name, alignment.q_name, reversed_)
        return view

    def back(self) -> View:
        if self.at_global:
            return self.current_view
        self._stack.pop()
        current = self.current_view
        if isinstance(current, DetailView):
            self._axis_reversed = current.is_reversed
        return current

    def return_to_global(self) -> Optional[SavedPath]:
        completed: Optional[SavedPath] = None
        if not self.at_global:
            completed = self.in_progress_path
            self._history.append(completed)
        self._stack = [GLOBAL_VIEW]
        return completed

    def resume(self, index: int) -> SavedPath:
        if isinstance(index, bool) or not isinstance(index, int):
            raise NavigationError("Path index must be an integer")
        if index < 0 or index >= len(self._history):
            raise NavigationError(f"No saved path at index {index}")
        selected = self._history[index]
        if not selected:
            raise NavigationError(f"Saved path {index} is empty")
        for view in selected:
            self.registry.require(view.contig_name)

        history = self._history[:index] + self._history[index + 1 :]
        if not self.at_global:
            history.append(self.in_progress_path)
        self._history = history
        self._stack = [GLOBAL_VIEW, *selected]
        self._axis_reversed = selected[-1].is_reversed
        return selected

    def toggle_reversed(self) -> bool:
        self._axis_reversed = not self._axis_reversed
        return self._axis_reversed

    def add_paths(self, paths: List[SavedPath]) -> int:
        """Append paths to the history, skipping any that would revisit a contig."""
        visited = self.visited_contigs()
        added: List[SavedPath] = []
        for path in paths:
            names = [view.contig_name for view in path]
            if not names:
                continue
            if len(set(names)) != len(names) or visited.intersection(names):
                logger.info("Skipping imported path %s: contig already visited", " -> ".join(names))
                continue
            visited.update(names)
            added.append(tuple(path))
        self._history.extend(added)
        return len(added)

    def export_text(self) -> str:
        from .path_io import export_paths

        return export_paths(self._history, self.in_progress_path)

    def import_text(self, text: str) -> int:
        from .path_io import parse_paths

        return self.add_paths(parse_paths(text))

    def can_offer_resume(self, imported_count: int) -> bool:
        return imported_count == 1 and self.at_global

    def path_label(self) -> str:
        path = self.in_progress_path
        if not path:
            return "Global"
        names = [view.contig_name for view in path]
        if self._axis_reversed:
            names[-1] = f"{names[-1]}(-)"
        return " -> ".join(names)

    def path_number(self) -> int:
        return len(self._history) + 1
