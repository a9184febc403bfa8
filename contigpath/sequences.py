"""Byte-offset sequence retrieval through a FASTA index, and the sequence-viewer text."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from textwrap import wrap
from typing import BinaryIO, Dict, Mapping, Union

from .alignments import Alignment
from .errors import SequenceFetchError
from .genome_index import FaiEntry, require_entry
from .params import DEFAULT_SEQUENCE_WRAP

logger = logging.getLogger(__name__)

_COMPLEMENT = str.maketrans("ATCGNatcgn", "TAGCNtagcn")

FastaSource = Union[str, Path, BinaryIO]


def reverse_complement(seq: str) -> str:
    return seq.translate(_COMPLEMENT)[::-1]


def byte_offset(entry: FaiEntry, pos: int) -> int:
    """File offset of the 1-based position ``pos`` within ``entry``'s sequence."""
    zero_based = pos - 1
    return int(
        entry.offset
        + (zero_based // entry.bases_per_line) * entry.bytes_per_line
        + (zero_based % entry.bases_per_line)
    )


def _read_range(source: FastaSource, start: int, length: int) -> bytes:
    if hasattr(source, "seek"):
        source.seek(start)
        return source.read(length)
    with Path(source).open("rb") as handle:
        handle.seek(start)
        return handle.read(length)


def fetch_sequence(
    source: FastaSource,
    index: Mapping[str, FaiEntry],
    contig_name: str,
    start: int,
    end: int,
) -> str:
    """Return bases ``start..end`` (1-based, inclusive) of a contig, clamped to its length."""
    entry = require_entry(index, contig_name)
    real_start = max(1, int(start))
    real_end = min(int(entry.length), int(end))
    if real_end - real_start + 1 <= 0:
        return ""

    start_offset = byte_offset(entry, real_start)
    end_offset = byte_offset(entry, real_end)
    wanted = end_offset - start_offset + 1
    try:
        raw = _read_range(source, start_offset, wanted)
    except OSError as exc:
        raise SequenceFetchError(
            f"Could not read {contig_name}:{real_start}-{real_end} (bytes {start_offset}-{end_offset})"
        ) from exc
    if len(raw) < wanted:
        raise SequenceFetchError(
            f"Short read for {contig_name}:{real_start}-{real_end}: expected {wanted} bytes from offset "
            f"{start_offset}, got {len(raw)}; the index does not match the FASTA file"
        )
    return raw.decode("ascii", errors="replace").replace("\r", "").replace("\n", "")


@dataclass
class SequenceBlock:
    label: str
    name: str
    start: int
    end: int
    strand: str
    sequence: str

    @property
    def header(self) -> str:
        return f">{self.name}:{self.start}-{self.end}({self.strand})"

    def to_text(self, width: int = DEFAULT_SEQUENCE_WRAP) -> str:
        wrapped = wrap(self.sequence, width=width)
        return "\n".join([f"{self.label}:", self.header, *wrapped])


@dataclass
class SequencePair:
    x_axis: SequenceBlock
    y_axis: SequenceBlock

    def to_text(self, width: int = DEFAULT_SEQUENCE_WRAP) -> str:
        return f"{self.x_axis.to_text(width)}\n\n{self.y_axis.to_text(width)}\n"

    def to_payload(self, width: int = DEFAULT_SEQUENCE_WRAP) -> Dict[str, object]:
        return {
            "x_axis": {"header": self.x_axis.header, "sequence": self.x_axis.sequence},
            "y_axis": {"header": self.y_axis.header, "sequence": self.y_axis.sequence},
            "text": self.to_text(width),
        }


def alignment_sequences(
    source: FastaSource,
    index: Mapping[str, FaiEntry],
    alignment: Alignment,
) -> SequencePair:
    """Fetch both sides of an alignment block.

    The query side is read forward. The target side is read from its
    forward-normalized interval and reverse-complemented for ``-`` blocks so
    both sequences read in alignment order.
    """
    q_start = alignment.q_start_orig + 1
    q_end = alignment.q_end_orig
    t_start = alignment.t_start_orig + 1
    t_end = alignment.t_end_orig

    x_seq = fetch_sequence(source, index, alignment.q_name, q_start, q_end)
    y_seq = fetch_sequence(source, index, alignment.t_name, t_start, t_end)
    if alignment.strand == "-":
        y_seq = reverse_complement(y_seq)
    logger.debug("Fetched %d/%d bases for %s vs %s", len(x_seq), len(y_seq), alignment.q_name, alignment.t_name)

    return SequencePair(
        x_axis=SequenceBlock("X-axis", alignment.q_name, q_start, q_end, "+", x_seq),
        y_axis=SequenceBlock("Y-axis", alignment.t_name, t_start, t_end, alignment.strand, y_seq),
    )


def format_sequence_view(pair: SequencePair, width: int = DEFAULT_SEQUENCE_WRAP) -> str:
    return pair.to_text(width)
