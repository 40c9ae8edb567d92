"""Run artifact helpers for operational reporting."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Iterable


def build_extraction_report(modules: Iterable[Any]) -> dict[str, Any]:
    """Summarise extracted ModuleDocs for a run report.

    Every entry of ``modules`` needs ``module_name``, ``setup`` and
    ``content`` attributes.
    """
    per_module: list[dict[str, Any]] = []
    total_items = 0
    with_setup = 0
    for module in modules:
        item_count = len(module.content) + (1 if module.setup is not None else 0)
        total_items += item_count
        if module.setup is not None:
            with_setup += 1
        per_module.append(
            {
                "module": module.module_name,
                "items": item_count,
                "has_setup": module.setup is not None,
            }
        )
    return {
        "module_count": len(per_module),
        "doc_item_count": total_items,
        "modules_with_setup": with_setup,
        "modules": per_module,
    }


def write_run_report(
    report: dict[str, Any],
    run_id: str,
    output_dir: str = "output/run_reports",
) -> str:
    """Write a JSON run report and return its path."""
    os.makedirs(output_dir, exist_ok=True)
    payload = dict(report)
    payload.setdefault("run_id", run_id)
    payload.setdefault("timestamp_utc", datetime.now(timezone.utc).isoformat())
    path = os.path.join(output_dir, f"{run_id}.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)
    return path
