"""Fixed line-width FASTA index (``.fai``) parsing and construction."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from .errors import ContigNotFoundError

logger = logging.getLogger(__name__)

Number = Union[int, float]


@dataclass(frozen=True)
class FaiEntry:
    name: str
    length: Number
    offset: Number
    bases_per_line: Number
    bytes_per_line: Number

    @property
    def is_valid(self) -> bool:
        values = (self.length, self.offset, self.bases_per_line, self.bytes_per_line)
        if any(isinstance(value, float) and math.isnan(value) for value in values):
            return False
        return self.bases_per_line > 0 and self.bytes_per_line >= self.bases_per_line


def _to_number(text: Optional[str]) -> Number:
    if text is None:
        return float("nan")
    try:
        return int(text.strip())
    except ValueError:
        return float("nan")


def parse_fai(text: str) -> Dict[str, FaiEntry]:
    """Parse index text into ``name -> FaiEntry``.

    Malformed numeric fields become NaN and are kept; use :func:`require_entry`
    to treat such rows as missing.
    """
    index: Dict[str, FaiEntry] = {}
    for raw_line in text.splitlines():
        if not raw_line.strip():
            continue
        parts = raw_line.rstrip("\r").split("\t")
        parts += [None] * (5 - len(parts))
        name, length, offset, bases_per_line, bytes_per_line = parts[:5]
        index[name] = FaiEntry(
            name=name,
            length=_to_number(length),
            offset=_to_number(offset),
            bases_per_line=_to_number(bases_per_line),
            bytes_per_line=_to_number(bytes_per_line),
        )
    return index


def require_entry(index: Mapping[str, FaiEntry], name: str) -> FaiEntry:
    entry = index.get(name)
    if entry is None or not entry.is_valid:
        raise ContigNotFoundError(name, source="genome index")
    return entry


def build_fai_from_fasta(fasta_path: Path) -> Dict[str, FaiEntry]:
    """Scan a FASTA file and compute the index rows a ``samtools faidx`` run would write."""
    index: Dict[str, FaiEntry] = {}
    name: Optional[str] = None
    length = 0
    offset = 0
    bases_per_line = 0
    bytes_per_line = 0

    def _close() -> None:
        if name is not None:
            index[name] = FaiEntry(name, length, offset, bases_per_line, bytes_per_line)

    with Path(fasta_path).open("rb") as handle:
        while True:
            line = handle.readline()
            if not line:
                break
            if line.startswith(b">"):
                _close()
                header = line[1:].strip().split()
                name = header[0].decode("utf-8") if header else ""
                length = 0
                offset = handle.tell()
                bases_per_line = 0
                bytes_per_line = 0
                continue
            seq_line = line.rstrip(b"\r\n")
            if not seq_line:
                continue
            if bases_per_line == 0:
                bases_per_line = len(seq_line)
                bytes_per_line = len(line)
            length += len(seq_line)
    _close()
    logger.debug("Indexed %d contigs from %s", len(index), fasta_path)
    return index


def write_fai(index: Mapping[str, FaiEntry], path: Path) -> None:
    with Path(path).open("w", encoding="utf-8") as handle:
        for entry in index.values():
            handle.write(
                f"{entry.name}\t{entry.length}\t{entry.offset}\t"
                f"{entry.bases_per_line}\t{entry.bytes_per_line}\n"
            )


def load_genome_index(fasta_path: Path, fai_path: Optional[Path] = None) -> Dict[str, FaiEntry]:
    fasta_path = Path(fasta_path)
    candidate = Path(fai_path) if fai_path is not None else Path(f"{fasta_path}.fai")
    if candidate.exists():
        logger.info("Reading FASTA index %s", candidate)
        return parse_fai(candidate.read_text(encoding="utf-8"))
    if fai_path is not None:
        raise FileNotFoundError(f"FASTA index not found: {candidate}")
    logger.info("No index next to %s; scanning FASTA", fasta_path)
    return build_fai_from_fasta(fasta_path)


def contig_lengths(index: Mapping[str, FaiEntry]) -> Dict[str, int]:
    """Lengths of the valid entries, in index order."""
    return {name: int(entry.length) for name, entry in index.items() if entry.is_valid}
