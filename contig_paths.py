#!/usr/bin/env python3
"""Command line access to the contig path explorer.

``contigs`` lists the reference contigs with their telomere calls,
``render`` writes the global view (or the detail view of one contig) to an
image file and ``fetch`` prints a sequence range from the indexed FASTA.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from contigpath.genome_index import load_genome_index
from contigpath.mpl_backend import configure_headless_matplotlib
from contigpath.params import (
    DEFAULT_GLOBAL_MIN_ALIGNMENT_LENGTH,
    DEFAULT_MIN_ALIGNMENT_LENGTH,
    DEFAULT_MIN_TELOMERE_LENGTH,
    DEFAULT_SEQUENCE_WRAP,
    ExplorerParams,
)
from contigpath.projection import project_detail, project_global
from contigpath.render import write_figure
from contigpath.sequences import SequenceBlock, fetch_sequence, reverse_complement
from contigpath.session import load_dataset

logger = logging.getLogger("contig_paths")


def _add_dataset_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("fasta", type=Path, help="Reference FASTA file")
    parser.add_argument("alignments", type=Path, help="Tab-separated alignment blocks (MAF-like rows)")
    parser.add_argument("telomeres", type=Path, help="BED file with telomere calls")
    parser.add_argument("--fai", type=Path, default=None, help="FASTA index (defaults to <fasta>.fai)")
    parser.add_argument(
        "--min-alignment-length",
        type=int,
        default=DEFAULT_MIN_ALIGNMENT_LENGTH,
        help="Alignment blocks shorter than this are dropped while loading",
    )
    parser.add_argument(
        "--global-min-alignment-length",
        type=int,
        default=DEFAULT_GLOBAL_MIN_ALIGNMENT_LENGTH,
        help="Alignment blocks shorter than this are hidden in the global view",
    )
    parser.add_argument(
        "--min-telomere-length",
        type=int,
        default=DEFAULT_MIN_TELOMERE_LENGTH,
        help="Telomere calls shorter than this are ignored",
    )
    parser.add_argument("--width", type=float, default=8.0, help="Figure width (inches)")
    parser.add_argument("--height", type=float, default=8.0, help="Figure height (inches)")
    parser.add_argument("--dpi", type=int, default=150, help="Figure resolution in dots per inch")


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Explore chains of contig-to-contig alignments between telomere-bearing contigs."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    commands = parser.add_subparsers(dest="command", required=True)

    contigs = commands.add_parser("contigs", help="List contigs and their telomere calls")
    _add_dataset_args(contigs)

    render = commands.add_parser("render", help="Render the global view or a contig's detail view")
    _add_dataset_args(render)
    render.add_argument("output", type=Path, help="Output file (.svg or .png)")
    render.add_argument("--contig", default=None, help="Render the detail view of this contig")
    render.add_argument(
        "--reversed",
        action="store_true",
        help="Flip the y-axis (and the x-axis orientation of the detail view)",
    )

    fetch = commands.add_parser("fetch", help="Print a 1-based inclusive sequence range")
    fetch.add_argument("fasta", type=Path, help="Reference FASTA file")
    fetch.add_argument("contig", help="Contig name")
    fetch.add_argument("start", type=int, help="First base (1-based)")
    fetch.add_argument("end", type=int, help="Last base (inclusive)")
    fetch.add_argument("--fai", type=Path, default=None, help="FASTA index (defaults to <fasta>.fai)")
    fetch.add_argument("--reverse-complement", action="store_true", help="Print the reverse complement")
    fetch.add_argument("--wrap", type=int, default=DEFAULT_SEQUENCE_WRAP, help="Bases per output line")
    return parser.parse_args(argv)


def _load(args: argparse.Namespace):
    params = ExplorerParams.from_cli_args(args)
    dataset = load_dataset(
        fasta_path=args.fasta,
        alignment_path=args.alignments,
        telomere_path=args.telomeres,
        fai_path=args.fai,
        params=params,
    )
    return params, dataset


def run_contigs(args: argparse.Namespace) -> int:
    _, dataset = _load(args)
    for contig in dataset.registry:
        telomeres = ", ".join(f"{t.start}-{t.end}({t.strand})" for t in contig.telomeres) or "-"
        print(f"{contig.name}\t{contig.length}\t{telomeres}")
    report = dataset.load_report
    print(
        f"# {report.parsed} alignments loaded; skipped {report.skipped_malformed} malformed, "
        f"{report.skipped_short} short, {report.skipped_unknown_contig} on unknown contigs",
        file=sys.stderr,
    )
    return 0


def run_render(args: argparse.Namespace) -> int:
    params, dataset = _load(args)
    if args.contig:
        projection = project_detail(dataset.registry, dataset.alignments, args.contig, args.reversed, params)
    else:
        projection = project_global(dataset.registry, dataset.alignments, args.reversed, params)

    configure_headless_matplotlib()
    write_figure(
        projection,
        args.output,
        width=params.figure_width,
        height=params.figure_height,
        dpi=params.dpi,
    )
    logger.info("Wrote %s with %d segments", args.output, len(projection.segments))
    return 0


def run_fetch(args: argparse.Namespace) -> int:
    index = load_genome_index(args.fasta, args.fai)
    sequence = fetch_sequence(args.fasta, index, args.contig, args.start, args.end)
    strand = "+"
    if args.reverse_complement:
        sequence = reverse_complement(sequence)
        strand = "-"
    block = SequenceBlock("Sequence", args.contig, args.start, args.end, strand, sequence)
    print(block.to_text(args.wrap))
    return 0


COMMANDS = {
    "contigs": run_contigs,
    "render": run_render,
    "fetch": run_fetch,
}


def main(argv: Sequence[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return COMMANDS[args.command](args)
    except (OSError, LookupError, ValueError, RuntimeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main(sys.argv[1:]))
