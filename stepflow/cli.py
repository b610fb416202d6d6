"""CLI for stepflow: parse, validate, visualize, convert and run workflow files."""

from __future__ import annotations

import argparse
import json
import logging
import sys

import yaml

from .ast_nodes import program_to_dict
from .errors import StepflowError
from .graph import generate_graph, generate_mermaid
from .interpreter import Interpreter
from .parser import parse
from .pipeline import (
    SYNTAX_EXAMPLES,
    convert_to_dsl,
    describe_steps,
    supported_commands,
)
from .validator import Validator


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="stepflow",
        description="Toolchain for the stepflow workflow DSL",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    # parse
    parse_p = sub.add_parser("parse", help="Show parsed AST as JSON")
    parse_p.add_argument("file", help="Input workflow file")
    parse_p.add_argument("--strict", action="store_true", help="Reject stray top-level tokens")

    # validate
    validate_p = sub.add_parser("validate", help="Validate a workflow file")
    validate_p.add_argument("file", help="Input workflow file")

    # graph
    graph_p = sub.add_parser("graph", help="Generate the graph model of the first workflow")
    graph_p.add_argument("file", help="Input workflow file")
    graph_p.add_argument(
        "--format", choices=("json", "yaml", "mermaid"), default="json", dest="fmt",
        help="Output format (default: json)",
    )

    # convert
    convert_p = sub.add_parser("convert", help="Convert a graph model (JSON or YAML) back to DSL")
    convert_p.add_argument("file", help="Input graph file")

    # run
    run_p = sub.add_parser("run", help="Simulate workflow execution")
    run_p.add_argument("file", help="Input workflow file")
    run_p.add_argument("--json", action="store_true", dest="as_json", help="Print the trace as JSON")

    # describe
    describe_p = sub.add_parser("describe", help="List steps in plain language")
    describe_p.add_argument("file", help="Input workflow file")

    # commands / examples
    sub.add_parser("commands", help="List built-in commands")
    examples_p = sub.add_parser("examples", help="Print syntax examples")
    examples_p.add_argument("name", nargs="?", help="Example name")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    # Commands that don't need a file
    if args.command == "commands":
        return _cmd_commands()
    if args.command == "examples":
        return _cmd_examples(args.name)

    try:
        source = _read_file(args.file)
        if args.command == "parse":
            return _cmd_parse(source, strict=args.strict)
        elif args.command == "validate":
            return _cmd_validate(source)
        elif args.command == "graph":
            return _cmd_graph(source, fmt=args.fmt)
        elif args.command == "convert":
            return _cmd_convert(source)
        elif args.command == "run":
            return _cmd_run(source, as_json=args.as_json)
        elif args.command == "describe":
            return _cmd_describe(source)
    except FileNotFoundError:
        print(f"Error: file not found: {args.file}", file=sys.stderr)
        return 1
    except StepflowError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


def _read_file(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


def _validated(source: str):
    """Parse and validate; print findings. Returns the AST or None."""
    program = parse(source)
    result = Validator().validate(program)
    for w in result.warnings:
        print(f"Warning: {w}", file=sys.stderr)
    if not result.is_valid:
        for e in result.errors:
            print(f"Validation error: {e}", file=sys.stderr)
        return None
    return program


def _cmd_parse(source: str, strict: bool = False) -> int:
    program = parse(source, strict=strict)
    print(json.dumps(program_to_dict(program), indent=2))
    return 0


def _cmd_validate(source: str) -> int:
    program = _validated(source)
    if program is None:
        return 1
    steps = sum(len(w.all_steps()) for w in program.workflows)
    print(f"Valid: {len(program.workflows)} workflow(s), {steps} step(s)")
    return 0


def _cmd_graph(source: str, fmt: str = "json") -> int:
    program = _validated(source)
    if program is None:
        return 1
    if fmt == "mermaid":
        print(generate_mermaid(program))
    elif fmt == "yaml":
        print(yaml.safe_dump(generate_graph(program), sort_keys=False), end="")
    else:
        print(json.dumps(generate_graph(program), indent=2))
    return 0


def _cmd_convert(source: str) -> int:
    try:
        graph = yaml.safe_load(source)
    except yaml.YAMLError as e:
        print(f"Error reading graph: {e}", file=sys.stderr)
        return 1
    print(convert_to_dsl(graph))
    return 0


def _cmd_run(source: str, as_json: bool = False) -> int:
    program = _validated(source)
    if program is None:
        return 1
    result = Interpreter().execute(program)
    if as_json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        print(result.summary())
    return 0


def _cmd_describe(source: str) -> int:
    for line in describe_steps(parse(source)):
        print(line)
    return 0


def _cmd_commands() -> int:
    print("Built-in commands:")
    for name in supported_commands():
        print(f"  {name}")
    return 0


def _cmd_examples(name: str | None = None) -> int:
    if name is None:
        for key, text in SYNTAX_EXAMPLES.items():
            print(f"// {key}")
            print(text)
            print()
        return 0
    if name not in SYNTAX_EXAMPLES:
        print(f"Error: unknown example '{name}'. Available: {', '.join(SYNTAX_EXAMPLES)}",
              file=sys.stderr)
        return 1
    print(SYNTAX_EXAMPLES[name])
    return 0


if __name__ == "__main__":
    sys.exit(main())
