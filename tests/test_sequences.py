from __future__ import annotations

import io
import tempfile
import unittest
from pathlib import Path

from contigpath.alignments import FORWARD, REVERSE, Alignment
from contigpath.errors import ContigNotFoundError, SequenceFetchError
from contigpath.genome_index import FaiEntry, build_fai_from_fasta
from contigpath.sequences import (
    alignment_sequences,
    byte_offset,
    fetch_sequence,
    format_sequence_view,
    reverse_complement,
)

CHR1 = ("ACGTTGCAAC" * 13)[:130]
QUERY = "GATTACA" * 4
TARGET = "CCGGAATTAC" * 3


def _write_fasta(path: Path, records, width: int = 60) -> None:
    with path.open("w", encoding="utf-8") as handle:
        for name, seq in records:
            handle.write(f">{name}\n")
            for start in range(0, len(seq), width):
                handle.write(seq[start : start + width] + "\n")


class _UnreadableSource:
    def seek(self, offset):
        raise OSError("device not ready")

    def read(self, size):  # pragma: no cover - never reached
        return b""


class SequenceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tempdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tempdir.cleanup)
        self.fasta = Path(self.tempdir.name) / "genome.fa"
        _write_fasta(self.fasta, [("chr1", CHR1), ("q", QUERY), ("t", TARGET)])
        self.index = build_fai_from_fasta(self.fasta)

    def test_reverse_complement(self):
        self.assertEqual(reverse_complement("ATCGNatcgn"), "ncgatNCGAT")
        self.assertEqual(reverse_complement("AAAC"), "GTTT")
        self.assertEqual(reverse_complement(""), "")

    def test_byte_offsets_skip_line_terminators(self):
        entry = FaiEntry("chr1", 130, 6, 60, 61)
        self.assertEqual(byte_offset(entry, 1), 6)
        self.assertEqual(byte_offset(entry, 60), 65)
        self.assertEqual(byte_offset(entry, 61), 67)
        self.assertEqual(byte_offset(entry, 63), 69)
        self.assertEqual(self.index["chr1"].offset, 6)

    def test_fetch_ranges(self):
        self.assertEqual(fetch_sequence(self.fasta, self.index, "chr1", 1, 60), CHR1[:60])
        self.assertEqual(fetch_sequence(self.fasta, self.index, "chr1", 58, 63), CHR1[57:63])
        self.assertEqual(fetch_sequence(self.fasta, self.index, "chr1", 125, 200), CHR1[124:])
        self.assertEqual(fetch_sequence(self.fasta, self.index, "chr1", 0, 3), CHR1[:3])
        self.assertEqual(fetch_sequence(self.fasta, self.index, "chr1", 50, 40), "")
        self.assertEqual(fetch_sequence(self.fasta, self.index, "q", 1, 28), QUERY)

    def test_fetch_from_open_handle(self):
        source = io.BytesIO(self.fasta.read_bytes())
        self.assertEqual(fetch_sequence(source, self.index, "chr1", 58, 63), CHR1[57:63])

    def test_fetch_errors(self):
        with self.assertRaises(ContigNotFoundError):
            fetch_sequence(self.fasta, self.index, "missing", 1, 10)
        with self.assertRaises(SequenceFetchError) as ctx:
            fetch_sequence(_UnreadableSource(), self.index, "chr1", 1, 10)
        self.assertIsInstance(ctx.exception.__cause__, OSError)

    def test_fetch_rejects_index_longer_than_file(self):
        source = io.BytesIO(b">A\nACGTACGTAC\n")
        index = {"A": FaiEntry("A", 100, 3, 10, 11)}
        self.assertEqual(fetch_sequence(source, index, "A", 1, 10), "ACGTACGTAC")
        with self.assertRaisesRegex(SequenceFetchError, "Short read"):
            fetch_sequence(source, index, "A", 1, 100)

    def test_alignment_sequences_orient_target_by_strand(self):
        reverse = Alignment("q", 2, "t", 5, 15, 10, "-", REVERSE)
        pair = alignment_sequences(self.fasta, self.index, reverse)
        self.assertEqual(pair.x_axis.sequence, QUERY[2:12])
        self.assertEqual(pair.y_axis.sequence, reverse_complement(TARGET[5:15]))
        self.assertEqual(pair.x_axis.header, ">q:3-12(+)")
        self.assertEqual(pair.y_axis.header, ">t:6-15(-)")

        forward = Alignment("q", 0, "t", 0, 10, 10, "+", FORWARD)
        pair = alignment_sequences(self.fasta, self.index, forward)
        self.assertEqual(pair.y_axis.sequence, TARGET[:10])

    def test_sequence_view_text_wraps_lines(self):
        pair = alignment_sequences(self.fasta, self.index, Alignment("q", 0, "t", 0, 20, 20, "+", FORWARD))
        text = format_sequence_view(pair, width=8)
        self.assertEqual(
            text.splitlines(),
            [
                "X-axis:",
                ">q:1-20(+)",
                QUERY[0:8],
                QUERY[8:16],
                QUERY[16:20],
                "",
                "Y-axis:",
                ">t:1-20(+)",
                TARGET[0:8],
                TARGET[8:16],
                TARGET[16:20],
            ],
        )
        self.assertEqual(pair.to_payload()["y_axis"]["sequence"], TARGET[:20])


if __name__ == "__main__":
    unittest.main()
