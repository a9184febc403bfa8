"""Navigation and coordinate projection for whole-genome alignment paths."""

from .alignments import Alignment, load_alignments, parse_alignment_line
from .errors import ContigNotFoundError, NavigationError, SequenceFetchError, UnknownSessionError
from .genome_index import FaiEntry, parse_fai
from .navigation import GLOBAL_VIEW, DetailView, PathNavigator
from .params import ExplorerParams
from .projection import effective_reversed, project_detail, project_global
from .registry import Contig, ContigRegistry, build_registry
from .sequences import fetch_sequence, reverse_complement

__all__ = [
    "Alignment",
    "Contig",
    "ContigNotFoundError",
    "ContigRegistry",
    "DetailView",
    "ExplorerParams",
    "FaiEntry",
    "GLOBAL_VIEW",
    "NavigationError",
    "PathNavigator",
    "SequenceFetchError",
    "UnknownSessionError",
    "build_registry",
    "effective_reversed",
    "fetch_sequence",
    "load_alignments",
    "parse_alignment_line",
    "parse_fai",
    "project_detail",
    "project_global",
    "reverse_complement",
]
