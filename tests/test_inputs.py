from __future__ import annotations

import io
import math
import tempfile
import unittest
from pathlib import Path

from contigpath.alignments import (
    FORWARD,
    REVERSE,
    Alignment,
    AlignmentStreamParser,
    LineBuffer,
    flip_interval,
    load_alignments,
    parse_alignment_line,
)
from contigpath.errors import ContigNotFoundError
from contigpath.genome_index import (
    build_fai_from_fasta,
    contig_lengths,
    load_genome_index,
    parse_fai,
    require_entry,
    write_fai,
)
from contigpath.params import ExplorerParams, to_float, to_int
from contigpath import registry, sequences, session
from contigpath.registry import Telomere, build_registry, parse_telomere_bed

KNOWN = {"qA", "tB", "tC"}

FORWARD_LINE = "a\tqA\t500\t20000\t+\t90000\ttB\t1000\t20000\t+\t100000"
REVERSE_LINE = "a\tqA\t0\t15000\t+\t90000\ttB\t1000\t20000\t-\t100000"
SHORT_LINE = "a\tqA\t0\t5000\t+\t90000\ttC\t0\t5000\t+\t50000"
UNKNOWN_LINE = "a\tqZ\t0\t50000\t+\t90000\ttC\t0\t50000\t+\t50000"


class GenomeIndexTests(unittest.TestCase):
    def test_parse_fai_keeps_malformed_rows_as_nan(self):
        index = parse_fai("chrA\t100\t6\t60\t61\nchrB\tabc\t0\t60\t61\n\nchrC\t10\n")
        self.assertEqual(set(index), {"chrA", "chrB", "chrC"})
        self.assertEqual(index["chrA"].length, 100)
        self.assertTrue(math.isnan(index["chrB"].length))
        self.assertTrue(math.isnan(index["chrC"].bytes_per_line))
        self.assertTrue(index["chrA"].is_valid)
        self.assertFalse(index["chrB"].is_valid)
        self.assertEqual(contig_lengths(index), {"chrA": 100})

    def test_require_entry_treats_invalid_rows_as_missing(self):
        index = parse_fai("chrA\t100\t6\t60\t61\nchrB\tabc\t0\t60\t61\n")
        self.assertEqual(require_entry(index, "chrA").offset, 6)
        with self.assertRaises(ContigNotFoundError):
            require_entry(index, "chrB")
        with self.assertRaises(ContigNotFoundError) as ctx:
            require_entry(index, "chrZ")
        self.assertIn("chrZ", str(ctx.exception))

    def test_build_fai_matches_fixed_width_layout(self):
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        fasta = Path(tmpdir.name) / "genome.fa"
        seq_one = "ACGT" * 30
        fasta.write_text(
            ">one description\n" + seq_one[:60] + "\n" + seq_one[60:] + "\n>two\nGGGCCC\n",
            encoding="utf-8",
        )

        index = build_fai_from_fasta(fasta)
        self.assertEqual(list(index), ["one", "two"])
        self.assertEqual(index["one"].length, 120)
        self.assertEqual(index["one"].offset, len(">one description\n"))
        self.assertEqual(index["one"].bases_per_line, 60)
        self.assertEqual(index["one"].bytes_per_line, 61)
        self.assertEqual(index["two"].length, 6)

        fai = Path(tmpdir.name) / "genome.fa.fai"
        write_fai(index, fai)
        self.assertEqual(load_genome_index(fasta), parse_fai(fai.read_text(encoding="utf-8")))

    def test_load_genome_index_requires_explicit_fai_to_exist(self):
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        fasta = Path(tmpdir.name) / "genome.fa"
        fasta.write_text(">one\nACGT\n", encoding="utf-8")

        self.assertEqual(load_genome_index(fasta)["one"].length, 4)
        with self.assertRaises(FileNotFoundError):
            load_genome_index(fasta, Path(tmpdir.name) / "missing.fai")


class AlignmentParsingTests(unittest.TestCase):
    def test_flip_interval(self):
        self.assertEqual(flip_interval(1000, 20000, 100000), 79000)
        self.assertEqual(flip_interval(0, 10, 10), 0)

    def test_forward_line(self):
        alignment = parse_alignment_line(FORWARD_LINE, KNOWN)
        self.assertEqual(
            alignment,
            Alignment(
                q_name="qA",
                q_start_orig=500,
                t_name="tB",
                t_start_orig=1000,
                t_end_orig=21000,
                aln_len=20000,
                strand="+",
                direction=FORWARD,
            ),
        )
        self.assertEqual(alignment.q_end_orig, 20500)
        self.assertFalse(alignment.is_reverse)

    def test_reverse_line_is_flipped_onto_forward_target_strand(self):
        alignment = parse_alignment_line(REVERSE_LINE, KNOWN)
        self.assertEqual(alignment.t_start_orig, 79000)
        self.assertEqual(alignment.t_end_orig, 99000)
        self.assertEqual(alignment.aln_len, 15000)
        self.assertEqual(alignment.strand, "-")
        self.assertEqual(alignment.direction, REVERSE)
        self.assertTrue(alignment.is_reverse)

    def test_rejected_lines(self):
        self.assertIsNone(parse_alignment_line(SHORT_LINE, KNOWN))
        self.assertIsNone(parse_alignment_line(UNKNOWN_LINE, KNOWN))
        self.assertIsNone(parse_alignment_line("# " + FORWARD_LINE, KNOWN))
        self.assertIsNone(parse_alignment_line("a\tqA\t0\t20000\t+", KNOWN))
        self.assertIsNone(parse_alignment_line(FORWARD_LINE.replace("500", "x5"), KNOWN))
        self.assertIsNone(parse_alignment_line(FORWARD_LINE.replace("\t+\t100000", "\t.\t100000"), KNOWN))
        self.assertIsNotNone(parse_alignment_line(SHORT_LINE, KNOWN, min_length=1000))

    def test_line_buffer_keeps_partial_line(self):
        buffer = LineBuffer()
        self.assertEqual(buffer.feed("ab\ncd"), ["ab"])
        self.assertEqual(buffer.pending, "cd")
        self.assertEqual(buffer.feed("e\n"), ["cde"])
        self.assertEqual(buffer.flush(), [])
        buffer.feed("tail")
        self.assertEqual(buffer.flush(), ["tail"])

    def test_stream_parser_is_insensitive_to_split_point(self):
        text = "\n".join(["# header", FORWARD_LINE, SHORT_LINE, REVERSE_LINE, UNKNOWN_LINE, "bad\tline"])
        expected = [parse_alignment_line(FORWARD_LINE, KNOWN), parse_alignment_line(REVERSE_LINE, KNOWN)]

        for split in range(len(text) + 1):
            parser = AlignmentStreamParser(KNOWN)
            parser.feed(text[:split])
            parser.feed(text[split:])
            self.assertEqual(parser.close(), expected, f"split at {split}")
            self.assertEqual(parser.report.parsed, 2)
            self.assertEqual(parser.report.skipped_short, 1)
            self.assertEqual(parser.report.skipped_unknown_contig, 1)
            self.assertEqual(parser.report.skipped_malformed, 1)

    def test_load_alignments_over_every_chunk_size(self):
        data = ("# contig éé\n" + FORWARD_LINE + "\r\n" + REVERSE_LINE + "\n").encode("utf-8")
        for chunk_size in range(1, len(data) + 2):
            alignments, report = load_alignments(io.BytesIO(data), KNOWN, chunk_size=chunk_size)
            self.assertEqual([a.direction for a in alignments], [FORWARD, REVERSE], f"chunk {chunk_size}")
            self.assertEqual(alignments[0].t_end_orig, 21000)
            self.assertEqual(report.parsed, 2)
            self.assertEqual(report.skipped_malformed, 0)


class RegistryTests(unittest.TestCase):
    def test_parse_telomere_bed_filters(self):
        text = "\n".join(
            [
                "tB\t0\t150\ttel\t0\t+",
                "tB\t900\t950\ttel\t0\t-",
                "tZ\t0\t500\ttel\t0\t+",
                "tC\t0\t500",
                "tC\t49800\t50000\ttel\t0\t-",
            ]
        )
        telomeres = parse_telomere_bed(text, KNOWN)
        self.assertEqual(telomeres, {"tB": [Telomere(0, 150, "+")], "tC": [Telomere(49800, 50000, "-")]})

    def test_build_registry_keeps_reference_order(self):
        registry = build_registry(
            {"A": 1000, "B": 2000, "C": 1500},
            {"C": [Telomere(1400, 1500, "-")], "A": [Telomere(0, 150, "+")]},
        )
        self.assertEqual(registry.names, ["A", "B", "C"])
        self.assertEqual([c.name for c in registry.telomere_contigs()], ["A", "C"])
        self.assertIn("B", registry)
        self.assertEqual(len(registry), 3)
        self.assertTrue(registry.require("A").has_lower_telomere)
        self.assertFalse(registry.require("C").has_lower_telomere)
        self.assertFalse(registry.require("B").has_telomere)
        with self.assertRaises(ContigNotFoundError):
            registry.require("Z")


class ParamsTests(unittest.TestCase):
    def test_payload_parsing(self):
        params = ExplorerParams.from_payload({"min_alignment_length": "5000", "width": "6.5", "dpi": 90})
        self.assertEqual(params.min_alignment_length, 5000)
        self.assertEqual(params.figure_width, 6.5)
        self.assertEqual(params.dpi, 90)
        self.assertEqual(params.global_min_alignment_length, 100000)
        self.assertEqual(ExplorerParams.from_payload(None), ExplorerParams())

    def test_payload_rejections(self):
        with self.assertRaises(ValueError):
            ExplorerParams.from_payload(["width"])
        with self.assertRaisesRegex(ValueError, "dpi"):
            ExplorerParams.from_payload({"dpi": True})
        with self.assertRaisesRegex(ValueError, "min_alignment_length"):
            ExplorerParams.from_payload({"min_alignment_length": 0})
        with self.assertRaisesRegex(ValueError, "height"):
            ExplorerParams.from_payload({"height": "tall"})

    def test_scalar_coercion(self):
        self.assertEqual(to_float("1e9", name="x"), 1e9)
        self.assertEqual(to_float(-2, name="y"), -2.0)
        with self.assertRaisesRegex(ValueError, "x must be positive"):
            to_float(0, name="x", positive=True)
        with self.assertRaisesRegex(ValueError, "floating-point"):
            to_float(None, name="x")
        with self.assertRaises(TypeError):
            to_float(1.0, name="x", max_value=2.0)
        self.assertEqual(to_int("3", name="index"), 3)
        with self.assertRaisesRegex(ValueError, ">= 1"):
            to_int(0, name="n", min_value=1)


class ModuleDocstringTests(unittest.TestCase):
    def test_core_modules_are_documented(self):
        for module in (registry, sequences, session):
            self.assertTrue((module.__doc__ or "").strip(), module.__name__)


if __name__ == "__main__":
    unittest.main()
