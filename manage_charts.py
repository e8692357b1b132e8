#!/usr/bin/env python3
"""Chart plugin management CLI tool."""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure project root is in path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

load_dotenv()
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "WARNING").upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

from chart_service.constants import BUNDLED_CHARTS_DIR
from chart_service.plugins.discovery import bundled_loader
from chart_service.plugins.errors import LoaderFailure, PluginNotFoundError
from chart_service.plugins.factory import ChartFactory


def get_factory(strict: bool = False) -> ChartFactory:
    """Create and initialize a ChartFactory over the bundled manifests."""
    factory = ChartFactory(loader=bundled_loader(), strict=strict)
    try:
        asyncio.run(factory.initialize())
    except LoaderFailure as e:
        print(f"Failed to load chart plugins: {e.original}")
        sys.exit(1)
    return factory


def _resolve(factory: ChartFactory, library: str, name: str):
    try:
        return factory.resolve(name, library)
    except PluginNotFoundError as e:
        print(str(e))
        sys.exit(1)


def _print_table(descriptors):
    print(f"{'Library':<10} {'Name':<14} {'Display Name':<26} {'Category':<14} {'Version'}")
    print("-" * 80)
    for d in descriptors:
        print(f"{d.library:<10} {d.name:<14} {d.display_name:<26} {d.category:<14} {d.version}")


def cmd_list(args):
    """List all registered chart plugins."""
    factory = get_factory()
    descriptors = factory.available_plugins()
    if args.library:
        descriptors = [d for d in descriptors if d.library == args.library]
    if args.category:
        descriptors = [d for d in descriptors if d.category == args.category]

    if not descriptors:
        print("No chart plugins found.")
        return
    _print_table(descriptors)


def cmd_info(args):
    """Show detailed chart plugin information."""
    factory = get_factory()
    d = _resolve(factory, args.library, args.name)

    print(f"Chart: {d.key}")
    print(f"  Display Name:   {d.display_name}")
    print(f"  Category:       {d.category}")
    print(f"  Version:        {d.version}")
    print(f"  Description:    {d.description or ''}")
    print(f"  Tags:           {', '.join(d.tags)}")
    print(f"  Export Formats: {', '.join(d.export_formats)}")
    print(f"  Interactions:   {', '.join(sorted(d.interactions))}")
    print(f"  Required Keys:  {', '.join(sorted(d.config_schema.required_keys))}")
    print(f"  Field Roles:    {json.dumps(d.config_schema.field_roles())}")
    print("  Properties:")
    for prop in d.config_schema.iter_properties():
        flags = []
        if d.config_schema.is_required(prop.key):
            flags.append("required")
        if prop.conditional is not None:
            flags.append(f"when {prop.conditional.field}={prop.conditional.value!r}")
        suffix = f" ({'; '.join(flags)})" if flags else ""
        print(f"    - {prop.key:<22} {prop.kind:<8}{suffix}")


def cmd_search(args):
    """Search chart plugins by name, display name or description."""
    factory = get_factory()
    descriptors = factory.search_plugins(args.query)
    if not descriptors:
        print(f"No chart plugins match '{args.query}'.")
        return
    _print_table(descriptors)


def cmd_defaults(args):
    """Print the default configuration of a chart plugin."""
    factory = get_factory()
    d = _resolve(factory, args.library, args.name)
    print(json.dumps(factory.default_configuration(d), indent=2, ensure_ascii=False))


def cmd_validate(args):
    """Validate a JSON configuration against a chart plugin's schema."""
    try:
        configuration = json.loads(args.configuration)
    except json.JSONDecodeError as e:
        print(f"Invalid JSON configuration: {e}")
        sys.exit(1)
    if not isinstance(configuration, dict):
        print("Configuration must be a JSON object.")
        sys.exit(1)

    factory = get_factory()
    d = _resolve(factory, args.library, args.name)
    report = factory.validate(d, configuration)

    for entry in report.errors:
        print(f"  [{entry.severity.value}] {entry.field}: {entry.message}")
    if report.valid:
        print(f"Configuration is valid ({len(report.warning_entries)} warning(s)).")
    else:
        print(f"Configuration is invalid ({len(report.error_entries)} error(s)).")
        sys.exit(1)


def cmd_doctor(args):
    """Run health checks on the bundled chart plugins."""
    issues = []

    if not BUNDLED_CHARTS_DIR.exists():
        issues.append(f"Bundled charts directory missing: {BUNDLED_CHARTS_DIR}")

    factory = get_factory(strict=False)
    for failure in factory.registry.failures:
        issues.append(f"Chart '{failure.key or '<unnamed>'}' rejected: {failure.error}")

    # Defaults must satisfy every required property that declares one.
    for d in factory.available_plugins():
        report = factory.validate(d, factory.default_configuration(d))
        failing = {e.field for e in report.error_entries}
        for key in sorted(d.config_schema.required_keys):
            prop = d.config_schema.get(key)
            if prop.has_default and key in failing:
                issues.append(f"Chart '{d.key}': default for '{key}' does not validate")

    if issues:
        print(f"Found {len(issues)} issue(s):")
        for i, issue in enumerate(issues, 1):
            print(f"  {i}. {issue}")
        sys.exit(1)
    else:
        stats = factory.statistics()
        print(
            f"All checks passed. {stats.total} chart plugin(s) across "
            f"{len(stats.by_library)} librar(ies)."
        )


def main():
    parser = argparse.ArgumentParser(description="Chart Plugin Manager")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list
    list_parser = subparsers.add_parser("list", help="List all chart plugins")
    list_parser.add_argument("--library", help="Only this rendering library")
    list_parser.add_argument("--category", help="Only this category")

    # info
    info_parser = subparsers.add_parser("info", help="Show chart plugin details")
    info_parser.add_argument("library", help="Rendering library, e.g. echarts")
    info_parser.add_argument("name", help="Chart type, e.g. bar")

    # search
    search_parser = subparsers.add_parser("search", help="Search chart plugins")
    search_parser.add_argument("query", help="Text to look for")

    # defaults
    defaults_parser = subparsers.add_parser("defaults", help="Print a chart's default configuration")
    defaults_parser.add_argument("library", help="Rendering library")
    defaults_parser.add_argument("name", help="Chart type")

    # validate
    validate_parser = subparsers.add_parser("validate", help="Validate a JSON configuration")
    validate_parser.add_argument("library", help="Rendering library")
    validate_parser.add_argument("name", help="Chart type")
    validate_parser.add_argument("configuration", help="Configuration as a JSON object")

    # doctor
    subparsers.add_parser("doctor", help="Run health checks")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "list": cmd_list,
        "info": cmd_info,
        "search": cmd_search,
        "defaults": cmd_defaults,
        "validate": cmd_validate,
        "doctor": cmd_doctor,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
