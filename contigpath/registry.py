"""Contig registry: reference lengths merged with telomere calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Container, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import ContigNotFoundError
from .params import DEFAULT_MIN_TELOMERE_LENGTH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Telomere:
    start: int
    end: int
    strand: str

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Contig:
    name: str
    length: int
    telomeres: Tuple[Telomere, ...] = ()

    @property
    def has_telomere(self) -> bool:
        return bool(self.telomeres)

    @property
    def has_lower_telomere(self) -> bool:
        """True when any telomere starts in the first half of the contig."""
        midpoint = self.length / 2
        return any(telomere.start < midpoint for telomere in self.telomeres)


def parse_telomere_bed(
    text: str,
    known_contigs: Container[str],
    min_length: int = DEFAULT_MIN_TELOMERE_LENGTH,
) -> Dict[str, List[Telomere]]:
    telomeres: Dict[str, List[Telomere]] = {}
    for raw_line in text.splitlines():
        parts = raw_line.rstrip("\r").split("\t")
        if len(parts) < 6:
            continue
        try:
            start = int(parts[1])
            end = int(parts[2])
        except ValueError:
            continue
        if end - start < min_length:
            continue
        name = parts[0]
        if name not in known_contigs:
            logger.debug("Ignoring telomere call on unknown contig %s", name)
            continue
        telomeres.setdefault(name, []).append(Telomere(start=start, end=end, strand=parts[5].strip()))
    return telomeres


@dataclass
class ContigRegistry:
    contigs: List[Contig] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._by_name: Dict[str, Contig] = {contig.name: contig for contig in self.contigs}

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Contig]:
        return iter(self.contigs)

    def __len__(self) -> int:
        return len(self.contigs)

    @property
    def names(self) -> List[str]:
        return [contig.name for contig in self.contigs]

    def get(self, name: str) -> Optional[Contig]:
        return self._by_name.get(name)

    def require(self, name: str) -> Contig:
        contig = self._by_name.get(name)
        if contig is None:
            raise ContigNotFoundError(name)
        return contig

    def telomere_contigs(self) -> List[Contig]:
        return [contig for contig in self.contigs if contig.has_telomere]


def build_registry(
    lengths: Mapping[str, int],
    telomeres: Optional[Mapping[str, Sequence[Telomere]]] = None,
) -> ContigRegistry:
    """Merge reference lengths with telomere calls, keeping reference order."""
    telomeres = telomeres or {}
    contigs = [
        Contig(name=name, length=int(length), telomeres=tuple(telomeres.get(name, ())))
        for name, length in lengths.items()
    ]
    registry = ContigRegistry(contigs)
    logger.info(
        "Registry holds %d contigs, %d with telomeres",
        len(registry),
        len(registry.telomere_contigs()),
    )
    return registry
