"""
Command line interface.

    appearance-check validate AnnotationTypes.pdf
    appearance-check compare reference.bin candidate.bin [ref2.bin cand2.bin ...]
    appearance-check tokens stream.bin

Exit status is 0 when everything matched, 1 when any comparison mismatched or
failed, 2 for usage errors.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from .batch import StreamPair, compare_batch
from .comparator import DEFAULT_TOLERANCE, ComparisonConfig
from .config import ValidatorConfig
from .exceptions import AppearanceCheckError, DocumentError
from .logging_config import level_from_verbosity, setup_logging
from .models import ComparisonStatus
from .service import ValidationService
from .tokenizer import tokenize


def build_comparison_config(args: argparse.Namespace) -> ComparisonConfig:
    return ComparisonConfig(
        tolerance=args.tolerance,
        strict_operand_equality=args.strict,
    )


def run_validate(args: argparse.Namespace) -> int:
    config = ValidatorConfig(
        data_dir=args.data_dir,
        comparison=build_comparison_config(args),
        save_regenerated=not args.no_save,
    )
    service = ValidationService(config)
    try:
        report, paths = service.validate_and_save(args.pdf)
    except DocumentError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    for result in report.results:
        print(result.describe())
    stats = report.get_statistics()
    print(
        f"\n{stats['total']} annotations | {stats['matched']} matched | "
        f"{stats['mismatched']} mismatched | {stats['errors']} errors"
    )
    print(f"report: {paths.report_file}")
    if report.regenerated_file:
        print(f"regenerated: {report.regenerated_file}")
    return 0 if report.all_matched else 1


def run_compare(args: argparse.Namespace) -> int:
    files = args.files
    if len(files) % 2:
        print("error: compare needs reference/candidate file pairs", file=sys.stderr)
        return 2

    pairs = []
    try:
        for reference, candidate in zip(files[0::2], files[1::2]):
            pairs.append(
                StreamPair(
                    label=f"{reference} vs {candidate}",
                    reference=Path(reference).read_bytes(),
                    candidate=Path(candidate).read_bytes(),
                )
            )
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    results = compare_batch(pairs, build_comparison_config(args), max_workers=args.workers)
    for result in results:
        print(result.describe())
    return 0 if all(r.status == ComparisonStatus.MATCH for r in results) else 1


def run_tokens(args: argparse.Namespace) -> int:
    try:
        data = Path(args.file).read_bytes()
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    try:
        tokens = tokenize(data)
    except AppearanceCheckError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.json:
        dumped = [{"index": i, "kind": t.kind.value, "token": str(t)} for i, t in enumerate(tokens)]
        print(json.dumps(dumped, ensure_ascii=False, indent=2))
    else:
        for index, token in enumerate(tokens):
            print(f"{index:5d}  {token.kind.value:<10} {token}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appearance-check",
        description="Compare regenerated annotation appearance streams against reference streams.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More log output (-vv for debug)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")

    comparison = argparse.ArgumentParser(add_help=False)
    comparison.add_argument(
        "--tolerance",
        type=float,
        default=DEFAULT_TOLERANCE,
        help=f"Numeric tolerance (default: {DEFAULT_TOLERANCE})",
    )
    comparison.add_argument(
        "--strict",
        action="store_true",
        help="Also compare name, string and composite operand values",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser(
        "validate", parents=[comparison], help="Validate every annotation of a PDF"
    )
    validate.add_argument("pdf", help="PDF whose appearance streams are the reference")
    validate.add_argument("--data-dir", default=ValidatorConfig.data_dir, help="Report output directory")
    validate.add_argument("--no-save", action="store_true", help="Don't save the regenerated PDF")
    validate.set_defaults(handler=run_validate)

    compare = subparsers.add_parser(
        "compare", parents=[comparison], help="Compare raw content stream files"
    )
    compare.add_argument("files", nargs="+", help="reference candidate [reference candidate ...]")
    compare.add_argument("--workers", type=int, default=1, help="Parallel comparisons")
    compare.set_defaults(handler=run_compare)

    tokens = subparsers.add_parser("tokens", help="Print the tokens of a content stream file")
    tokens.add_argument("file")
    tokens.add_argument("--json", action="store_true", help="Output as JSON")
    tokens.set_defaults(handler=run_tokens)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level=level_from_verbosity(args.verbose, args.quiet), log_file=args.log_file)

    if getattr(args, "tolerance", DEFAULT_TOLERANCE) <= 0:
        parser.error("--tolerance must be positive")
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
