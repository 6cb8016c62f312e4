"""Conformance matrix rendering and JSON artifacts."""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Mapping

CORNER = "channel ↓ \\ subscription →"

CELL_LABELS = {
    "pass": "PASS",
    "fail": "FAIL",
    "error": "ERR",
    "skip": "SKIP",
}


def results_to_matrix(results: Iterable) -> Dict[str, Dict[str, dict]]:
    """Group results as {channel: {subscription_version: result_dict}}."""
    matrix: Dict[str, Dict[str, dict]] = {}
    for result in results:
        data = result.to_dict() if hasattr(result, "to_dict") else dict(result)
        matrix.setdefault(data["channel"], {})[data["subscription_version"]] = data
    return matrix


def write_results(results: Iterable, output_path: Path) -> Dict[str, Dict[str, dict]]:
    """Write the matrix as JSON and return it."""
    matrix = results_to_matrix(results)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(matrix, f, indent=2)
    return matrix


def load_results(path: Path) -> Dict[str, Dict[str, dict]]:
    with open(path) as f:
        return json.load(f)


def format_matrix(matrix: Mapping[str, Mapping[str, dict]]) -> str:
    """Render channel rows x subscription version columns, then failures."""
    versions: List[str] = sorted({v for row in matrix.values() for v in row})
    width = max([len(CORNER)] + [len(c) for c in matrix])
    lines = ["", "━━━ CONFORMANCE MATRIX", ""]

    header = f"  {CORNER:>{width}}"
    for v in versions:
        header += f"  {v:>8}"
    lines.append(header)

    rule = f"  {'─' * width}"
    for _ in versions:
        rule += f"  {'─' * 8}"
    lines.append(rule)

    failures = []
    for channel in sorted(matrix):
        row = f"  {channel:>{width}}"
        for v in versions:
            cell = matrix[channel].get(v)
            if cell is None:
                row += f"  {'--':>8}"
                continue
            row += f"  {CELL_LABELS.get(cell['status'], '?'):>8}"
            if cell["status"] in ("fail", "error"):
                failures.append((f"{channel} / {v}", cell))
        lines.append(row)
    lines.append("")

    for label, cell in failures:
        detail = (cell.get("error_message") or "").partition("\n")[0]
        lines.append(f"  ✗ {label} [{cell.get('step')}] {cell.get('error_kind')}: {detail}")
    if failures:
        lines.append("")

    return "\n".join(lines)


def summarize(matrix: Mapping[str, Mapping[str, dict]]) -> Dict[str, int]:
    counts = {status: 0 for status in CELL_LABELS}
    for row in matrix.values():
        for cell in row.values():
            counts[cell["status"]] = counts.get(cell["status"], 0) + 1
    return counts
