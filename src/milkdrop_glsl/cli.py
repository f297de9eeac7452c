"""
Command line interface.

    milkdrop-glsl convert warp.hlsl --slot warp --output-dir out/
    milkdrop-glsl reapply presets/

Exit status: 1 if any input could not be read, 2 if any shader was left
unfixed, otherwise 0.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import DEFAULT_MAX_ITERATIONS, ConverterConfig
from .pipeline.converter import COMP_SLOT, SLOTS, ShaderConverter
from .pipeline.presets import output_filename, strip_preamble_uniforms

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_READ_ERROR = 1
EXIT_UNFIXED = 2

INDEX_FILE = 'index.json'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='milkdrop-glsl',
        description="Convert MilkDrop preset shaders to GLSL ES 3.00"
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log every validation pass and applied fix"
    )
    verbosity.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only log warnings and errors"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    convert = commands.add_parser("convert", help="Convert dialect shader files")
    convert.add_argument(
        "files",
        nargs="+",
        help="Dialect shader files"
    )
    convert.add_argument(
        "--slot",
        default=COMP_SLOT,
        choices=SLOTS,
        help="Shader slot the files belong to (default: comp)"
    )
    convert.add_argument(
        "--output-dir",
        help="Write <name>.glsl files here instead of printing to stdout"
    )
    convert.add_argument(
        "--no-validate",
        action="store_true",
        help="Rewrite only, skip validation and autofix"
    )
    convert.add_argument(
        "--validator",
        help="Path to glslangValidator (default: search PATH)"
    )
    convert.add_argument(
        "--max-iterations",
        type=int,
        default=DEFAULT_MAX_ITERATIONS,
        help=f"Autofix passes per shader (default: {DEFAULT_MAX_ITERATIONS})"
    )
    convert.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Validator timeout in seconds (default: 5.0)"
    )

    reapply = commands.add_parser(
        "reapply",
        help="Strip preamble uniform redeclarations from converted JSON presets"
    )
    reapply.add_argument(
        "directory",
        help="Directory of converted *.json presets"
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ConverterConfig:
    return ConverterConfig(
        max_iterations=args.max_iterations,
        validator_executable=args.validator,
        validator_timeout=args.timeout,
        validate=not args.no_validate,
    )


def run_convert(args: argparse.Namespace, config: ConverterConfig) -> int:
    converter = ShaderConverter(config)
    output_dir = Path(args.output_dir) if args.output_dir else None
    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)

    converted = failed = unfixed = 0
    for file_name in args.files:
        path = Path(file_name)
        try:
            source = path.read_text(encoding='utf-8', errors='replace')
        except OSError as e:
            logger.error(f"FAIL: {path}: {e}")
            failed += 1
            continue

        outcome = converter.convert(source, args.slot, path.stem)
        if outcome.warnings:
            unfixed += 1

        if output_dir is None:
            sys.stdout.write(outcome.shader + '\n')
        else:
            out_name, stale_name = output_filename(path.stem + '.glsl', outcome.warnings)
            stale = output_dir / stale_name
            if stale.exists():
                stale.unlink()
            (output_dir / out_name).write_text(outcome.shader, encoding='utf-8')
        converted += 1
        logger.info(f"{'WARN' if outcome.warnings else 'OK'}: {path}")

    logger.info(f"Done: {converted} converted, {unfixed} unfixed, {failed} failed")
    if failed:
        return EXIT_READ_ERROR
    if unfixed:
        return EXIT_UNFIXED
    return EXIT_OK


def run_reapply(args: argparse.Namespace) -> int:
    directory = Path(args.directory)
    if not directory.is_dir():
        logger.error(f"Not a directory: {directory}")
        return EXIT_READ_ERROR

    changed = unchanged = errors = 0
    for path in sorted(directory.glob('*.json')):
        if path.name == INDEX_FILE:
            continue
        try:
            preset = json.loads(path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            logger.error(f"Parse error {path.name}: {e}")
            errors += 1
            continue

        patched = {
            slot: strip_preamble_uniforms(preset[slot])
            for slot in SLOTS if isinstance(preset.get(slot), str)
        }
        if all(patched[slot] == preset[slot] for slot in patched):
            unchanged += 1
            continue

        preset.update(patched)
        try:
            path.write_text(json.dumps(preset), encoding='utf-8')
        except OSError as e:
            logger.error(f"Write error {path.name}: {e}")
            errors += 1
            continue
        changed += 1

    logger.info(f"Done: {changed} presets patched, {unchanged} unchanged, {errors} errors")
    return EXIT_READ_ERROR if errors else EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')

    if args.command == 'convert':
        try:
            config = config_from_args(args)
        except ValueError as e:
            parser.error(str(e))
        return run_convert(args, config)
    return run_reapply(args)


if __name__ == '__main__':
    sys.exit(main())
