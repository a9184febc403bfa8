"""Streaming loader for tabular pairwise alignment blocks."""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from typing import BinaryIO, Container, List, Optional, Tuple

from .params import DEFAULT_MIN_ALIGNMENT_LENGTH, DEFAULT_READ_CHUNK_SIZE

logger = logging.getLogger(__name__)

FORWARD = "forward"
REVERSE = "reverse"
MIN_FIELDS = 11


@dataclass(frozen=True)
class Alignment:
    q_name: str
    q_start_orig: int
    t_name: str
    t_start_orig: int
    t_end_orig: int
    aln_len: int
    strand: str
    direction: str

    @property
    def q_end_orig(self) -> int:
        return self.q_start_orig + self.aln_len

    @property
    def target_end(self) -> int:
        """End of the alignment's span on the target axis as used for path ranges."""
        return self.t_start_orig + self.aln_len

    @property
    def is_reverse(self) -> bool:
        return self.direction == REVERSE


@dataclass
class LoadReport:
    lines: int = 0
    parsed: int = 0
    skipped_malformed: int = 0
    skipped_short: int = 0
    skipped_unknown_contig: int = 0


def flip_interval(start: int, length: int, src_size: int) -> int:
    """Map an interval start between the two strands of a sequence of ``src_size``."""
    return src_size - start - length


class LineBuffer:
    """Reassemble complete lines from arbitrarily split text chunks."""

    def __init__(self) -> None:
        self._leftover = ""

    def feed(self, chunk: str) -> List[str]:
        lines = (self._leftover + chunk).split("\n")
        self._leftover = lines.pop()
        return lines

    def flush(self) -> List[str]:
        leftover, self._leftover = self._leftover, ""
        return [leftover] if leftover else []

    @property
    def pending(self) -> str:
        return self._leftover


def _classify_line(
    line: str,
    known_contigs: Container[str],
    min_length: int,
) -> Tuple[Optional[Alignment], str]:
    stripped = line.strip()
    if not stripped or line.startswith("#"):
        return None, "blank"
    parts = stripped.split("\t")
    if len(parts) < MIN_FIELDS:
        return None, "malformed"

    try:
        q_aln_len = int(parts[3])
        q_start = int(parts[2])
        t_start = int(parts[7])
        t_aln_len = int(parts[8])
        t_src_size = int(parts[10])
    except ValueError:
        return None, "malformed"

    strand = parts[9]
    if strand not in {"+", "-"}:
        return None, "malformed"
    if q_aln_len < min_length or q_aln_len <= 0:
        return None, "short"

    q_name = parts[1]
    t_name = parts[6]
    if q_name not in known_contigs or t_name not in known_contigs:
        return None, "unknown"

    if strand == "+":
        t_start_local = t_start
        t_end_local = t_start + q_aln_len
        direction = FORWARD
    else:
        t_start_local = flip_interval(t_start, t_aln_len, t_src_size)
        t_end_local = t_src_size - t_start
        direction = REVERSE

    alignment = Alignment(
        q_name=q_name,
        q_start_orig=q_start,
        t_name=t_name,
        t_start_orig=t_start_local,
        t_end_orig=t_end_local,
        aln_len=q_aln_len,
        strand=strand,
        direction=direction,
    )
    return alignment, "ok"


def parse_alignment_line(
    line: str,
    known_contigs: Container[str],
    min_length: int = DEFAULT_MIN_ALIGNMENT_LENGTH,
) -> Optional[Alignment]:
    alignment, _ = _classify_line(line, known_contigs, min_length)
    return alignment


class AlignmentStreamParser:
    """Incremental parser: feed decoded text, collect alignments as lines complete."""

    def __init__(self, known_contigs: Container[str], min_length: int = DEFAULT_MIN_ALIGNMENT_LENGTH) -> None:
        self.known_contigs = known_contigs
        self.min_length = min_length
        self.alignments: List[Alignment] = []
        self.report = LoadReport()
        self._buffer = LineBuffer()

    def _consume(self, lines: List[str]) -> None:
        for line in lines:
            self.report.lines += 1
            alignment, outcome = _classify_line(line, self.known_contigs, self.min_length)
            if alignment is not None:
                self.alignments.append(alignment)
                self.report.parsed += 1
            elif outcome == "malformed":
                self.report.skipped_malformed += 1
                logger.debug("Skipping malformed alignment line: %r", line[:120])
            elif outcome == "short":
                self.report.skipped_short += 1
            elif outcome == "unknown":
                self.report.skipped_unknown_contig += 1

    def feed(self, text: str) -> None:
        self._consume(self._buffer.feed(text))

    def close(self) -> List[Alignment]:
        self._consume(self._buffer.flush())
        return self.alignments


def load_alignments(
    stream: BinaryIO,
    known_contigs: Container[str],
    *,
    min_length: int = DEFAULT_MIN_ALIGNMENT_LENGTH,
    chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
) -> Tuple[List[Alignment], LoadReport]:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    parser = AlignmentStreamParser(known_contigs, min_length)
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        parser.feed(decoder.decode(chunk))
    parser.feed(decoder.decode(b"", final=True))
    alignments = parser.close()
    report = parser.report
    logger.info(
        "Loaded %d alignments (%d malformed, %d short, %d unknown contig)",
        report.parsed,
        report.skipped_malformed,
        report.skipped_short,
        report.skipped_unknown_contig,
    )
    return alignments, report
