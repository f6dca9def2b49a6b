from typing import Dict, Iterable, List, Tuple

from core.domain import Status


def _average(durations: List[int]) -> float:
    return sum(durations) / len(durations) if durations else 0


def report_time_metrics(reports: Iterable[Tuple[str, str, int]], timeline: Iterable[Dict]):
    """
    Average status-transition times (ms) derived from the report timeline.

    `reports` yields (id, current status, created_at); `timeline` holds entries
    with report_id, new_status and created_at. A report counts as submitted at
    its creation time unless its timeline records a SUBMITTED entry. When a
    status was entered more than once, the latest entry wins.
    """
    reached: Dict[str, Dict[str, int]] = {}
    for entry in sorted(timeline, key=lambda e: (e["created_at"], e.get("id") or 0)):
        reached.setdefault(entry["report_id"], {})[entry["new_status"]] = entry["created_at"]

    counts = {s.value: 0 for s in Status}
    to_approve, in_progress, to_resolve = [], [], []
    for report_id, status, created_at in reports:
        counts[status] = counts.get(status, 0) + 1
        times = reached.get(report_id, {})
        submitted = times.get(Status.SUBMITTED.value, created_at)
        pending = times.get(Status.PENDING.value)
        started = times.get(Status.IN_PROGRESS.value)
        resolved = times.get(Status.RESOLVED.value)
        if pending is not None:
            to_approve.append(pending - submitted)
        if started is not None and resolved is not None:
            in_progress.append(resolved - started)
        if resolved is not None:
            to_resolve.append(resolved - submitted)

    return {
        "averageResolutionTime": _average(to_resolve),
        "averageTimeInProgress": _average(in_progress),
        "averageTimeToApprove": _average(to_approve),
        "totalResolvedCount": counts[Status.RESOLVED.value],
        "totalInProgressCount": counts[Status.IN_PROGRESS.value],
        "totalPendingCount": counts[Status.PENDING.value],
        "totalSubmittedCount": counts[Status.SUBMITTED.value],
        "totalRejectedCount": counts[Status.REJECTED.value],
    }
