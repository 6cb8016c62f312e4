#!/usr/bin/env python3
"""Display a conformance matrix from saved results.

Reads artifacts/conformance_matrix.json and displays the channel x
subscription-version matrix with failure details.

Usage:
    python show_conformance_matrix.py
    python show_conformance_matrix.py artifacts/conformance_matrix.json
"""

import sys
from pathlib import Path

from eventing_conformance.framework.report import format_matrix, load_results, summarize


def print_conformance_matrix(json_file):
    """Print formatted conformance matrix."""
    if not Path(json_file).exists():
        print(f"No conformance matrix found at: {json_file}")
        print("Run: eventing-conformance --output " + str(json_file))
        return

    matrix = load_results(json_file)
    print(format_matrix(matrix))

    counts = summarize(matrix)
    total = sum(counts.values())
    print(f"  {counts['pass']}/{total} cells passed")
    print()


if __name__ == "__main__":
    json_file = sys.argv[1] if len(sys.argv) > 1 else "artifacts/conformance_matrix.json"
    print_conformance_matrix(json_file)
