"""Command-line interface for the analysis pipeline."""

import argparse
import json
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any

from resale_scout.analysis.errors import NormalizationError
from resale_scout.analysis.models import AnalysisResult, TrackedStore
from resale_scout.analysis.normalizer import normalize
from resale_scout.analysis.orchestrator import analyze
from resale_scout.config import configure_logging, get_settings, load_analysis_config


def create_example_listing() -> dict[str, Any]:
    """An example marketplace listing that passes every stage."""
    return {
        "product_id": "1005006123456789",
        "product_title": "Portable Mini Blender USB Rechargeable Smoothie Cup",
        "app_sale_price": "10.00",
        "target_currency": "EUR",
        "shipping_cost": "2.00",
        "evaluate_rate": "98.0%",
        "positive_feedback": "97.5%",
        "lastest_volume": "600",
        "store_established": "2024-01-15",
        "categories": ["kitchen", "appliances"],
    }


def load_tracked_stores(path: str | None) -> list[TrackedStore]:
    """Load tracked stores from a JSON file holding a list of store objects."""
    if not path:
        return []
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return [TrackedStore.model_validate(item) for item in data]


def print_result(result: AnalysisResult) -> None:
    """Print an analysis result for humans."""
    currency = result.currency.value

    print(f"Product: {result.product_id or '(no id)'}")
    print(f"{'=' * 50}")

    print("\nReasoning:")
    for line in result.reasoning:
        print(f"  - {line}")

    if result.suggested_price is not None:
        print("\nPricing:")
        print(f"  Suggested price:  {result.suggested_price} {currency}")
        print(f"  Net margin/unit:  {result.net_margin_per_unit} {currency}")
        print(f"  Net margin:       {result.net_margin_percent:.1%}")
        if result.projected_monthly_profit is not None:
            print(f"  Monthly profit:   {result.projected_monthly_profit} {currency}")

    if result.saturation_risk is not None:
        print(f"\nSaturation: {result.saturation_risk.value}")
        for store_id in result.matched_competitor_store_ids or ():
            print(f"  - {store_id}")
        if result.ad_difficulty is not None:
            print(f"Ad difficulty: {result.ad_difficulty.value}")

    print(f"\n{'=' * 50}")
    if result.accepted:
        print(
            f"Verdict: ACCEPTED ({result.opportunity_tier.value}, "
            f"score {result.opportunity_score})"
        )
    else:
        print(
            f"Verdict: REJECTED at {result.rejection_stage.value} ({result.rejection_reason})"
        )


def analyze_command(args: argparse.Namespace) -> int:
    """Analyze a listing from JSON or use the example."""
    settings = get_settings()
    config = load_analysis_config(args.config or settings.analysis_config_file)

    if args.markup:
        config = config.model_copy(
            update={"margin": config.margin.model_copy(update={"markup_multiplier": Decimal(args.markup)})}
        )

    if args.json:
        listing = json.loads(args.json)
    else:
        listing = create_example_listing()
        print("Using example listing (use --json to provide your own)\n")

    try:
        snapshot = normalize(listing, reference_currency=config.reference_currency)
    except NormalizationError as e:
        print(f"Cannot analyze listing: {e}", file=sys.stderr)
        return 2

    result = analyze(snapshot, load_tracked_stores(args.tracked_stores), config)

    if args.output_json:
        print(result.model_dump_json(indent=2))
    else:
        print_result(result)
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="resale-scout",
        description="Resale candidate analysis",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a listing")
    analyze_parser.add_argument(
        "--json",
        type=str,
        help="Raw listing as JSON string",
    )
    analyze_parser.add_argument(
        "--tracked-stores",
        type=str,
        help="JSON file with the tracked stores to check for saturation",
    )
    analyze_parser.add_argument(
        "--config",
        type=str,
        help="JSON file with analysis rules (default: settings)",
    )
    analyze_parser.add_argument(
        "--markup",
        type=str,
        help="Flat markup multiplier, overriding the tier table (e.g. 2.5)",
    )
    analyze_parser.add_argument(
        "--output-json",
        action="store_true",
        help="Print the full result as JSON",
    )

    # Example command
    example_parser = subparsers.add_parser(
        "example",
        help="Show example listing JSON",
    )
    example_parser.add_argument(
        "--pretty",
        action="store_true",
        help="Pretty print JSON",
    )

    args = parser.parse_args()
    configure_logging()

    if args.command == "analyze":
        return analyze_command(args)
    elif args.command == "example":
        listing = create_example_listing()
        if args.pretty:
            print(json.dumps(listing, indent=2))
        else:
            print(json.dumps(listing))
    else:
        parser.print_help()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
