"""
main.py - CLI entry point for the Expense Dashboard pipeline.

Usage:
    python main.py --input expenses.csv --output output/
    python main.py --input expenses.csv --output output/ --insights
    python main.py --input expenses.csv --padding symmetric
    python main.py --write-sample sample_expenses.csv
"""

import argparse
import sys
from pathlib import Path


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="expense-dashboard",
        description="Parse an expense CSV and derive spending analytics.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --input expenses.csv --output output/
  python main.py --input expenses.csv --output output/ --insights
  python main.py --write-sample sample_expenses.csv
        """,
    )
    parser.add_argument(
        "--input", "-i",
        type=Path,
        default=None,
        help="Expense CSV file to analyze",
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=Path("output"),
        help="Directory for output files (default: output/)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to custom dashboard.yaml (default: config/dashboard.yaml)",
    )
    parser.add_argument(
        "--padding",
        choices=["leading", "symmetric"],
        default=None,
        help="Monthly trend padding mode (overrides config)",
    )
    parser.add_argument(
        "--insights",
        action="store_true",
        help="Request recommendations from the configured LLM endpoint",
    )
    parser.add_argument(
        "--write-sample",
        type=Path,
        default=None,
        metavar="PATH",
        help="Write the sample CSV template to PATH and exit",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    from expense_dashboard.config import load_config

    try:
        settings = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"\nError loading config: {e}", file=sys.stderr)
        return 1
    if args.padding:
        settings["trend"]["padding"] = args.padding

    if args.write_sample:
        from expense_dashboard.export import write_sample_csv

        path = write_sample_csv(args.write_sample)
        print(f"Sample CSV written to {path.resolve()}")
        return 0

    if args.input is None:
        print("No input file given. Use --input PATH.", file=sys.stderr)
        return 1

    print("=" * 60)
    print("  Expense Dashboard Pipeline")
    print("=" * 60)
    print(f"  Input:   {args.input.resolve()}")
    print(f"  Output:  {args.output.resolve()}")
    print()

    # --- Ingest ---
    from expense_dashboard.ingest import (
        CSVFormatError, CSVReadError, CSVValidationError, load_upload,
    )

    max_size = int(settings["max_file_size_mb"] * 1024 * 1024)
    try:
        print("Step 1/4  Reading CSV...")
        parsed = load_upload(args.input, max_size=max_size)
    except CSVValidationError as e:
        print(f"\nInvalid file: {e}", file=sys.stderr)
        return 1
    except CSVFormatError as e:
        print(f"\nError parsing CSV: {e}", file=sys.stderr)
        return 1
    except CSVReadError as e:
        print(f"\nFailed to read file: {e}", file=sys.stderr)
        return 1

    # --- Transform ---
    from expense_dashboard.transform import transform

    print("\nStep 2/4  Transforming data...")
    df = transform(parsed, settings)
    if df.empty:
        print("No transactions with a non-zero amount found. Exiting.", file=sys.stderr)
        return 1

    # --- Analyze ---
    from expense_dashboard.analyze import analyze
    from expense_dashboard.state import DashboardState

    print("\nStep 3/4  Analyzing...")
    state = DashboardState()
    state.replace_batch(df, analyze(df, settings))

    if args.insights:
        from expense_dashboard.insights import generate_recommendations

        print("\n  Requesting recommendations...")
        recs = generate_recommendations(state.analytics, state.transactions, settings["insights"])
        state.set_recommendations(recs)
        for rec in recs:
            print(f"    [{rec.get('priority', '-')}] {rec.get('title', '(untitled)')}")

    # --- Export ---
    from expense_dashboard.export import export

    print("\nStep 4/4  Exporting...")
    try:
        export(state, args.output)
    except OSError as e:
        print(f"\nError during export: {e}", file=sys.stderr)
        return 1

    print("\n" + "=" * 60)
    print(f"  Done! Dashboard data is in {args.output / 'analytics.json'}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
