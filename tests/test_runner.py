"""Data-driven tests for the Lilt parser and evaluator.

Test cases live in parser/*.tests and apps/*.tests. Format:

    === test name
    source code here
    ---
    expected
    ---

Expected is one of:
    ok                       parse (or run) succeeded
    error: <substring>       failed with an error containing substring
    path.to.field = value    dotpath assertions against the result data,
                             one per line

Parser data is the AST as nested dicts (each node has a "kind" key with its
class name). Run data is {"value": ..., "type": ...}.
"""

import dataclasses
import signal
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from lilt import EvalError, ParseError, parse as lilt_parse, run as lilt_run

RUN_TIMEOUT = 5
TESTS_DIR = Path(__file__).parent

TESTS = {
    "lilt_parse": {"dir": "parser"},
    "lilt_run": {"dir": "apps"},
}


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


def _timeout_handler(signum, frame):
    raise TimeoutError("test case timed out")


signal.signal(signal.SIGALRM, _timeout_handler)


# ---------------------------------------------------------------------------
# Spec file parsing
# ---------------------------------------------------------------------------


def parse_spec_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, input, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            test_input = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip()
            result.append((test_name, test_input, expected))
        else:
            i += 1
    return result


def discover_specs(test_dir: Path) -> list[tuple[str, str, str]]:
    """Glob *.tests in test_dir, return (test_id, input, expected) tuples."""
    results = []
    for test_file in sorted(test_dir.glob("*.tests")):
        for name, input_code, expected in parse_spec_file(test_file):
            results.append((f"{test_file.stem}/{name}", input_code, expected))
    return results


# ---------------------------------------------------------------------------
# Phase result + assertion checker
# ---------------------------------------------------------------------------


@dataclass
class PhaseResult:
    errors: list[str] = field(default_factory=list)
    data: dict | None = None


def to_data(node: object) -> object:
    """Convert an AST node into nested dicts/lists with a 'kind' tag."""
    if dataclasses.is_dataclass(node) and not isinstance(node, type):
        data: dict = {"kind": type(node).__name__}
        for f in dataclasses.fields(node):
            data[f.name] = to_data(getattr(node, f.name))
        return data
    if isinstance(node, (list, tuple)):
        return [to_data(item) for item in node]
    return node


def resolve_dotpath(obj: object, path: str) -> object:
    """Resolve a dot-separated path against a nested dict/list structure."""
    current = obj
    for part in path.split("."):
        if part == "length":
            return len(current)
        if isinstance(current, list):
            current = current[int(part)]
        elif isinstance(current, dict):
            current = current[part]
        else:
            raise KeyError(
                f"cannot traverse {type(current).__name__} with key {part!r}"
            )
    return current


def to_comparable(value: object) -> str:
    """Convert a value to its string form for comparison."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value
    return str(value)


def check_expected(expected: str, result: PhaseResult, phase: str) -> None:
    if expected == "ok":
        if result.errors:
            pytest.fail(f"Expected ok, got error: {result.errors[0]}")
        return
    if expected.startswith("error:"):
        expected_msg = expected[6:].strip()
        if not result.errors:
            pytest.fail(f"Expected error containing '{expected_msg}', got ok")
        found = any(expected_msg.lower() in e.lower() for e in result.errors)
        if not found:
            pytest.fail(
                f"Expected error containing '{expected_msg}', got: {result.errors}"
            )
        return
    # Dotpath assertions
    if result.errors:
        pytest.fail(f"{phase} failed: {result.errors[0]}")
    assert result.data is not None, f"No data returned from {phase}"
    for line in expected.split("\n"):
        line = line.strip()
        if not line:
            continue
        if "=" not in line:
            pytest.fail(f"Bad assertion (no '='): {line}")
        path, expected_val = line.split("=", 1)
        path = path.strip()
        expected_val = expected_val.strip()
        try:
            actual = resolve_dotpath(result.data, path)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            pytest.fail(f"Path '{path}' not found in result: {e}")
        actual_str = to_comparable(actual)
        if actual_str != expected_val:
            pytest.fail(
                f"Assertion failed: {path}\n"
                f"  expected: {expected_val!r}\n"
                f"  actual:   {actual_str!r}"
            )


# ---------------------------------------------------------------------------
# Phase runners
# ---------------------------------------------------------------------------


def run_lilt_parse(source: str) -> PhaseResult:
    try:
        signal.alarm(RUN_TIMEOUT)
        program = lilt_parse(source)
        return PhaseResult(data=to_data(program))
    except ParseError as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)


def run_lilt_run(source: str) -> PhaseResult:
    try:
        signal.alarm(RUN_TIMEOUT)
        value = lilt_run(lilt_parse(source))
        return PhaseResult(data={"value": value.to_string(), "type": value.type_name()})
    except ParseError as e:
        return PhaseResult(errors=[f"parse: {e}"])
    except EvalError as e:
        return PhaseResult(errors=[f"{e.kind}: {e}"])
    finally:
        signal.alarm(0)


# ---------------------------------------------------------------------------
# Parametrization
# ---------------------------------------------------------------------------


def pytest_generate_tests(metafunc):
    for name, cfg in TESTS.items():
        fixture = f"{name}_input"
        if fixture in metafunc.fixturenames:
            specs = discover_specs(TESTS_DIR / cfg["dir"])
            params = [pytest.param(inp, exp, id=tid) for tid, inp, exp in specs]
            metafunc.parametrize(f"{fixture},{name}_expected", params)


# ---------------------------------------------------------------------------
# Test functions
# ---------------------------------------------------------------------------


def test_lilt_parse(lilt_parse_input, lilt_parse_expected):
    check_expected(lilt_parse_expected, run_lilt_parse(lilt_parse_input), "lilt_parse")


def test_lilt_run(lilt_run_input, lilt_run_expected):
    check_expected(lilt_run_expected, run_lilt_run(lilt_run_input), "lilt_run")
