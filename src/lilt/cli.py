"""Lilt CLI — parse and run .lt files."""

from __future__ import annotations

import logging
import sys

from . import parse
from .parse import ParseError
from .runtime import DEFAULT_ENTRY, DEFAULT_MAX_DEPTH, EvalError, run

logger = logging.getLogger(__name__)

USAGE: str = """\
lilt [OPTIONS] FILE

Run a Lilt (.lt) program and print the value returned by its entry function.
FILE may be '-' to read the program from standard input.

Options:
  --entry NAME       Function to call (default: main)
  --max-depth N      Maximum number of nested calls (default: 100)
  --debug            Log evaluator activity to stderr
  --help             Show this help message
"""


def _read_source(filepath: str) -> str | None:
    if filepath == "-":
        raw = sys.stdin.buffer.read()
    else:
        try:
            with open(filepath, "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            print("lilt: " + filepath + ": No such file or directory", file=sys.stderr)
            return None
        except OSError as e:
            print("lilt: " + filepath + ": " + str(e), file=sys.stderr)
            return None
    try:
        return raw.decode("utf-8")
    except ValueError:
        print("lilt: " + filepath + ": invalid utf-8", file=sys.stderr)
        return None


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    entry = DEFAULT_ENTRY
    max_depth = DEFAULT_MAX_DEPTH
    debug = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--debug":
            debug = True
            i += 1
        elif arg == "--entry" or arg == "--max-depth":
            if i + 1 >= len(args):
                print("lilt: " + arg + " needs a value", file=sys.stderr)
                return 2
            value = args[i + 1]
            if arg == "--entry":
                entry = value
            elif value.isdigit() and int(value) > 0:
                max_depth = int(value)
            else:
                print("lilt: --max-depth expects a positive integer", file=sys.stderr)
                return 2
            i += 2
        elif arg.startswith("-") and arg != "-":
            print("lilt: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("lilt: unexpected argument '" + arg + "'", file=sys.stderr)
            return 2
    if filepath == "":
        print("lilt: missing file argument", file=sys.stderr)
        return 2

    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    source = _read_source(filepath)
    if source is None:
        return 1

    try:
        program = parse(source)
    except ParseError as e:
        print("lilt: parse error: " + str(e), file=sys.stderr)
        return 1
    logger.debug("parsed %d function(s) from %s", len(program.functions), filepath)

    try:
        result = run(program, entry=entry, max_depth=max_depth)
    except EvalError as e:
        print("lilt: runtime error: " + str(e), file=sys.stderr)
        return 1

    print(result.to_string())
    return 0


if __name__ == "__main__":
    sys.exit(main())
