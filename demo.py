#!/usr/bin/env python3
"""
UID Aggregator Demo

Demonstrates the complete pipeline:
1. Read spreadsheets and classify them
2. Aggregate rows by UID
3. Find connections between profiles
4. Categorize interests and compose an analysis report

Usage:
    python demo.py [spreadsheet ...]
    python demo.py  # Uses the sample exports in tests/fixtures
"""

import json
import sys
from pathlib import Path

from uid_aggregator.aggregation.aggregator import Aggregator
from uid_aggregator.analysis.analysis_composer import AnalysisComposer
from uid_aggregator.analysis.connection_finder import ConnectionFinder
from uid_aggregator.analysis.interest_categorizer import InterestCategorizer
from uid_aggregator.analysis.statistics import display_name, get_statistics, top_users
from uid_aggregator.parsers.spreadsheet_reader import read_uploaded_file
from uid_aggregator.utils.constants import KIND_LABELS, SOURCE_TYPE_LABELS


SAMPLE_FILES = [
    "friends_list.csv",
    "groups_joined.csv",
    "posts.csv",
    "pages_liked.csv",
]


def main(paths=None):
    """Run the demo pipeline."""
    print("=" * 50)
    print("UID Aggregator Demo")
    print("=" * 50)
    print()

    if not paths:
        fixtures = Path(__file__).parent / "tests" / "fixtures"
        paths = [fixtures / name for name in SAMPLE_FILES]
        print(f"Using sample files from: {fixtures}")
    else:
        paths = [Path(p) for p in paths]

    # =========================================================================
    # Step 1: Read and classify
    # =========================================================================
    print()
    print("[1] Reading and classifying files...")

    files = []
    for path in paths:
        try:
            uploaded = read_uploaded_file(path, uploader_id="demo", uploader_name="Demo")
        except (FileNotFoundError, ValueError) as e:
            print(f"    Error reading {path}: {e}")
            return 1
        files.append(uploaded)
        print(f"    -> {uploaded.name}: {KIND_LABELS[uploaded.type]} "
              f"[{SOURCE_TYPE_LABELS[uploaded.source_type]}] ({uploaded.row_count} rows)")

    # =========================================================================
    # Step 2: Aggregate by UID
    # =========================================================================
    print()
    print("[2] Aggregating by UID...")

    profiles = Aggregator().aggregate(files)
    stats = get_statistics(profiles)

    print(f"    -> Profiles: {stats.total_users}")
    print(f"    -> Friends: {stats.total_friends}, Groups: {stats.total_groups}, "
          f"Posts: {stats.total_posts}, Pages liked: {stats.total_pages_liked}")

    for profile in top_users(profiles, limit=3):
        print(f"    -> Top: {display_name(profile)} ({profile.total_activity} records)")

    # =========================================================================
    # Step 3: Connections
    # =========================================================================
    print()
    print("[3] Finding connections...")

    report = ConnectionFinder().find_connections(profiles)
    for connection in report.connections:
        print(f"    -> {connection.source} -> {connection.target}: "
              f"{connection.strength} ({connection.type})")
    print(f"    -> {report.insights}")

    # =========================================================================
    # Step 4: Analysis of the most active profile
    # =========================================================================
    if not profiles:
        print()
        print("No profiles to analyze.")
        return 0

    subject = top_users(profiles, limit=1)[0]

    print()
    print(f"[4] Analysis for {subject.uid}...")
    print()
    print(AnalysisComposer().compose(subject))

    print("Interests (JSON):")
    print("-" * 30)
    print(json.dumps(InterestCategorizer().categorize(subject).to_dict(), indent=2, ensure_ascii=False))

    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
