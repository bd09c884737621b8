"""
Dashboard figures computed from the local mirror

These work offline, so they are derived from the cached jobs rather than
from /api/analytics/dashboard.
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, List


def _number(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _grouped(jobs: Iterable[Dict[str, Any]], key) -> Dict[str, float]:
    totals = defaultdict(float)
    for job in jobs:
        totals[key(job)] += _number(job.get("totalSavings"))
    return {name: round(value, 2) for name, value in sorted(totals.items())}


def compute_dashboard(
    jobs: List[Dict[str, Any]],
    investment: float,
    feedback_count: int = 0,
    project_count: int = 0,
) -> Dict[str, Any]:
    """
    Totals, return on investment and savings breakdowns

    ``roiPercent`` is cumulative savings as a percentage of the printer
    investment; ``paybackRemaining`` is how much is left to recover.
    """
    total_savings = round(sum(_number(job.get("totalSavings")) for job in jobs), 2)
    total_quantity = sum(int(_number(job.get("totalQuantity"))) for job in jobs)
    total_hours = round(sum(_number(job.get("printingTimeHrs")) for job in jobs), 2)
    total_print_cost = round(
        sum(_number(job.get("printCost")) * _number(job.get("totalQuantity")) for job in jobs), 2
    )

    roi_percent = round(total_savings / investment * 100, 2) if investment else 0.0

    status_counts = defaultdict(int)
    for job in jobs:
        status_counts[job.get("status") or "unknown"] += 1

    return {
        "jobCount": len(jobs),
        "feedbackCount": feedback_count,
        "projectCount": project_count,
        "totalSavings": total_savings,
        "totalQuantity": total_quantity,
        "totalPrintingTime": total_hours,
        "totalPrintCost": total_print_cost,
        "investment": investment,
        "roiPercent": roi_percent,
        "paybackRemaining": round(max(investment - total_savings, 0), 2),
        "savingsByMaterial": _grouped(jobs, lambda job: job.get("materialUsed") or "Unknown"),
        "savingsByCategory": _grouped(jobs, lambda job: job.get("category") or "other"),
        "savingsByMonth": _grouped(jobs, lambda job: str(job.get("date") or "")[:7] or "undated"),
        "statusCounts": dict(sorted(status_counts.items())),
    }
