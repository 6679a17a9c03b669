#!/usr/bin/env python3
"""
Command-line interface for Arcane Odds.

Analyze spell collections from files, stdin or the bundled examples, list
their parameters, and start the web server.
"""

import argparse
import json
import sys
from typing import Dict, List, Optional

from src.catalog import get_example, list_examples
from src.core.config import get_config
from src.core.logging_config import setup_logging
from src.engine import SpellAnalysis, analyze, discover_parameters, parse_document
from src.host.state import StateStore

HISTOGRAM_WIDTH = 40


def parse_param(text: str):
    """argparse type for --param id=value."""
    name, sep, value = text.partition('=')
    name = name.strip()
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected id=value, got '{text}'")
    try:
        number = int(value)
    except ValueError:
        try:
            number = float(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"value for '{name}' must be a number, got '{value}'")
    return name, number


def read_source(args) -> str:
    """Collection text from --example, a file, or stdin ('-')."""
    if getattr(args, 'example', None):
        return get_example(args.example)['source']
    if not args.file:
        raise ValueError("Provide a collection file, '-' for stdin, or --example")
    if args.file == '-':
        return sys.stdin.read()
    with open(args.file, 'r', encoding='utf-8') as f:
        return f.read()


def format_spell(spell: SpellAnalysis) -> str:
    level = f" [{spell.level}]" if spell.level is not None else ""
    cast = f" cast at {spell.cast_level}" if spell.cast_level is not None else ""
    warning = "  ⚠ below minimum level" if spell.below_minimum else ""
    dist = spell.distribution
    return (
        f"  {spell.name}{level}{cast}: {spell.formula}\n"
        f"    mean {spell.mean:.2f}  sd {spell.stddev:.2f}  "
        f"range {dist.minimum}-{dist.maximum}  p99 {spell.plausible_max}{warning}"
    )


def format_histogram(spell: SpellAnalysis) -> List[str]:
    bars = spell.histogram()
    peak = max(probability for _, probability in bars)
    lines = []
    for outcome, probability in bars:
        width = round(probability / peak * HISTOGRAM_WIDTH)
        lines.append(f"    {outcome:>5} {'█' * width} {probability:.2%}")
    return lines


def cmd_analyze(args):
    """Analyze a collection and print statistics per spell."""
    try:
        source = read_source(args)
    except (OSError, ValueError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    params: Dict[str, float] = {}
    if args.state:
        loaded = StateStore(args.state).load()
        if not loaded:
            print(f"✗ Error: {loaded.error}", file=sys.stderr)
            sys.exit(1)
        params.update(loaded.data.params)
    params.update(dict(args.param or []))

    config = get_config()
    analysis = analyze(source, params, config.engine_limits())

    if args.json:
        print(json.dumps(analysis.to_dict(), indent=2))
    else:
        spells = analysis.spells
        if args.state:
            spells = loaded.data.display_order(analysis)
        print(f"Analyzed {len(analysis.spells)} spells:\n")
        for spell in spells:
            print(format_spell(spell))
            if args.histogram:
                for line in format_histogram(spell):
                    print(line)

    for error in analysis.errors:
        print(f"✗ {error}", file=sys.stderr)
    if analysis.errors:
        sys.exit(1)


def cmd_params(args):
    """List the parameters a collection depends on."""
    try:
        source = read_source(args)
    except (OSError, ValueError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    document = parse_document(source)
    groups = discover_parameters(document.spells)

    if not groups:
        print("No parameters found")
    for group in groups:
        print(f"{group.name}:")
        for p in group.parameters:
            print(f"  {p.id:12} {p.label:28} {p.kind:8} {p.minimum}..{p.maximum} step {p.step}  default {p.default}")

    for error in document.errors:
        print(f"✗ {error}", file=sys.stderr)
    if document.errors:
        sys.exit(1)


def cmd_examples(args):
    """List bundled example collections."""
    examples = list_examples()
    print(f"Found {len(examples)} examples:\n")
    for example in examples:
        print(f"  {example['key']:20} {example['name']} - {example['description']}")


def cmd_serve(args):
    """Start the web server."""
    from src.web.server import run_server

    config = get_config()
    run_server(config, args.host or config.host, args.port or config.port, args.debug or config.debug)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Arcane Odds - exact damage distributions for spell collections'
    )
    parser.add_argument(
        '--log-level', default='ERROR', type=str.upper,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (default: ERROR)'
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # ========== analyze command ==========
    parser_analyze = subparsers.add_parser('analyze', help='Analyze a spell collection')
    parser_analyze.add_argument('file', nargs='?', help="Collection file, or '-' for stdin")
    parser_analyze.add_argument('--example', help='Analyze a bundled example instead of a file')
    parser_analyze.add_argument('--param', action='append', type=parse_param, metavar='ID=VALUE',
                                help='Set a parameter (repeatable)')
    parser_analyze.add_argument('--state', help='Host state file supplying parameters and pins')
    parser_analyze.add_argument('--json', action='store_true', help='Print the full analysis as JSON')
    parser_analyze.add_argument('--histogram', action='store_true', help='Print a histogram per spell')
    parser_analyze.set_defaults(func=cmd_analyze)

    # ========== params command ==========
    parser_params = subparsers.add_parser('params', help='List parameters of a collection')
    parser_params.add_argument('file', nargs='?', help="Collection file, or '-' for stdin")
    parser_params.add_argument('--example', help='Use a bundled example instead of a file')
    parser_params.set_defaults(func=cmd_params)

    # ========== examples command ==========
    parser_examples = subparsers.add_parser('examples', help='List bundled examples')
    parser_examples.set_defaults(func=cmd_examples)

    # ========== serve command ==========
    parser_serve = subparsers.add_parser('serve', help='Run the web API')
    parser_serve.add_argument('--host', help='Host to bind to')
    parser_serve.add_argument('--port', type=int, help='Port to bind to')
    parser_serve.add_argument('--debug', action='store_true', help='Enable debug mode')
    parser_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_config()
    setup_logging(level=args.log_level, log_file=config.log_file)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == '__main__':
    main()
