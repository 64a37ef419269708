"""Command-line entrypoint for transformation jobs."""

from __future__ import annotations

import argparse
import os

from jobs.config import load_settings
from jobs.run_transform import configure_logging, describe_schema, fetch_and_transform, transform_file
from pipelines.rules import FieldMappingRule
from pipelines.sources.registry import PROVIDERS, ProviderConfig
from pipelines.views import VIEW_TYPES


def _format_provider(provider: ProviderConfig) -> str:
    endpoints = ", ".join(source_id for _, source_id in provider.endpoints) or "(none)"
    return (
        f"{provider.key}: name='{provider.name}' match='{provider.url_fragment}' "
        f"base_url={provider.base_url} endpoints={endpoints}"
    )


def _format_rule(rule_set: str, rule: FieldMappingRule) -> str:
    required = ",".join(item.value for item in rule.required_type) if rule.required_type else "any"
    exact = " exact" if rule.exact else ""
    return (
        f"{rule_set}.{rule.target_field}: priority={rule.priority} type={required} "
        f"display={rule.display_type}{exact} patterns={', '.join(rule.source_patterns)}"
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Market data transformation job runner")
    parser.add_argument(
        "--log-level",
        help="Override LOG_LEVEL for this invocation (e.g. DEBUG, INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    transform_parser = subparsers.add_parser(
        "transform", help="Transform a saved JSON response ('-' reads stdin)"
    )
    transform_parser.add_argument("path")
    transform_parser.add_argument("--source", help="Source identifier (defaults to the file name)")
    transform_parser.add_argument("--view", choices=VIEW_TYPES, help="Print one view of the dataset")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch a provider URL and transform the response")
    fetch_parser.add_argument("url")
    fetch_parser.add_argument("--source", help="Source identifier (detected from the URL by default)")
    fetch_parser.add_argument("--view", choices=VIEW_TYPES, help="Print one view of the dataset")
    fetch_parser.add_argument(
        "--header",
        action="append",
        default=[],
        help="Request header as 'Name: value' (repeatable)",
    )

    schema_parser = subparsers.add_parser("schema", help="Print the inferred schema of a saved JSON response")
    schema_parser.add_argument("path")

    subparsers.add_parser("list-providers", help="Show known data providers")
    subparsers.add_parser("list-rules", help="Show the active field mapping rules")

    args = parser.parse_args(argv)

    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level
    settings = load_settings()
    configure_logging(settings)

    if args.command == "list-providers":
        for provider in PROVIDERS:
            print(_format_provider(provider))
        return 0

    if args.command == "list-rules":
        rule_sets = settings.rule_sets()
        for rule_set in ("entity", "price", "quote", "time", "metadata", "columnar"):
            for rule in getattr(rule_sets, rule_set):
                print(_format_rule(rule_set, rule))
        return 0

    if args.command == "transform":
        return transform_file(args.path, source=args.source, view=args.view, settings=settings)

    if args.command == "fetch":
        try:
            return fetch_and_transform(
                args.url,
                source=args.source,
                view=args.view,
                headers=args.header,
                settings=settings,
            )
        except ValueError as exc:
            parser.error(str(exc))

    if args.command == "schema":
        return describe_schema(args.path, settings=settings)

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
