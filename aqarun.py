#!/usr/bin/env python3
"""
aqarun — AQA Assembly Interpreter CLI

Usage:
    python aqarun.py <program.aqa> [--format text|json] [--max-steps N]
                                   [--allow-duplicate-labels] [-q] [-v]
                                   [--log-file FILE]

Prints the machine state after every executed instruction. The first
non-comment line of the program is the initial memory as a JSON array.

Examples:
    python aqarun.py examples/countdown.aqa
    python aqarun.py examples/multiply.aqa --format json > trace.jsonl
    python aqarun.py loop.aqa --max-steps 500 -v

Exit codes: 0 = halted or ran to the end, 1 = program error,
            2 = internal error.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from aqasim import __version__
from aqasim.config import RunConfig, TRACE_FORMATS
from aqasim.errors import InterpreterError
from aqasim.interpreter import Interpreter, StopReason, format_trace, trace_to_dict
from aqasim.loader import load_file

logger = logging.getLogger("aqarun")


def setup_logging(verbose: int = 0, quiet: bool = False, log_file: str = None):
    """Console logging on stderr (stdout carries the trace), optional log file."""
    if quiet:
        level = logging.ERROR
    elif verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    handlers = []
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    handlers.append(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if log_file else level,
        handlers=handlers,
        force=True
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aqarun",
        description="AQA assembly language interpreter with per-step trace",
    )
    parser.add_argument("input", help="Program source file")
    parser.add_argument("--format", choices=TRACE_FORMATS, default="text",
                        help="Trace format: text blocks or one JSON object per line")
    parser.add_argument("--max-steps", type=int, default=None,
                        help="Stop after N executed instructions")
    parser.add_argument("--allow-duplicate-labels", action="store_true",
                        help="Let a redeclared label replace the earlier one")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="No per-step trace, print only the final state")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase log verbosity (-v, -vv)")
    parser.add_argument("--log-file", help="Write a debug log to FILE")
    parser.add_argument("--version", action="version",
                        version=f"aqarun {__version__}")
    return parser


def _printer(out_format: str):
    if out_format == 'json':
        return lambda record: print(json.dumps(trace_to_dict(record)))
    return lambda record: print(format_trace(record))


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.max_steps is not None and args.max_steps < 1:
        parser.error("--max-steps must be positive")

    setup_logging(args.verbose, args.quiet, args.log_file)
    config = RunConfig.from_args(args)

    try:
        program = load_file(args.input, allow_duplicate_labels=config.allow_duplicate_labels)
        logger.info("Loaded %s: %d instructions, %d labels",
                    args.input, len(program), len(program.labels))

        interp = Interpreter(program, config, trace_sink=_printer(args.format))
        reason = interp.run()
        logger.info("Stopped: %s after %d operations", reason.value, interp.operations)

        if args.quiet:
            if args.format == 'json':
                print(json.dumps({
                    'stop': reason.value,
                    'operations': interp.operations,
                    'memory': interp.memory.snapshot(),
                    'registers': interp.regs.snapshot(),
                }))
            else:
                print(f"Stopped: {reason.value} after {interp.operations} operations")
                print(f"Memory: {interp.memory.snapshot()}")
                print(f"Registers: {interp.regs.display()}")

    except InterpreterError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 2

    if reason is StopReason.STEP_LIMIT:
        print(f"Error: step limit of {config.max_steps} reached", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
