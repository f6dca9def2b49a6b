from core.analytics import report_time_metrics
from core.domain import Status
from core.report_flow import change_report_status
from core.repository import get_report_time_metrics


def _entry(report_id, status, at):
    return {"report_id": report_id, "new_status": status, "created_at": at}


def test_no_reports_gives_zero_metrics():
    metrics = report_time_metrics([], [])
    assert set(metrics.values()) == {0}
    assert len(metrics) == 8


def test_transition_averages():
    reports = [("a", "RESOLVED", 0), ("b", "PENDING", 1_000), ("c", "SUBMITTED", 5_000)]
    timeline = [
        _entry("a", "RESOLVED", 7_000),
        _entry("a", "PENDING", 1_000),
        _entry("a", "IN_PROGRESS", 3_000),
        _entry("b", "PENDING", 4_000),
    ]
    metrics = report_time_metrics(reports, timeline)
    assert metrics["averageTimeToApprove"] == 2_000
    assert metrics["averageTimeInProgress"] == 4_000
    assert metrics["averageResolutionTime"] == 7_000
    assert metrics["totalResolvedCount"] == 1
    assert metrics["totalPendingCount"] == 1
    assert metrics["totalSubmittedCount"] == 1
    assert metrics["totalInProgressCount"] == 0
    assert metrics["totalRejectedCount"] == 0


def test_recorded_submission_overrides_creation_time():
    reports = [("d", "PENDING", 0)]
    timeline = [_entry("d", "SUBMITTED", 500), _entry("d", "PENDING", 1_500)]
    assert report_time_metrics(reports, timeline)["averageTimeToApprove"] == 1_000


def test_latest_entry_for_a_status_wins():
    reports = [("e", "RESOLVED", 0)]
    timeline = [
        _entry("e", "RESOLVED", 2_000),
        _entry("e", "IN_PROGRESS", 3_000),
        _entry("e", "RESOLVED", 6_000),
    ]
    metrics = report_time_metrics(reports, timeline)
    assert metrics["averageResolutionTime"] == 6_000
    assert metrics["averageTimeInProgress"] == 3_000


def test_metrics_from_stored_timeline(session_factory, seed):
    author = seed.user()
    resolved = seed.report(author, 19.43, -99.13, status=Status.SUBMITTED, created_at=0)
    seed.report(author, 19.44, -99.13, status=Status.SUBMITTED, created_at=0)
    change_report_status(session_factory, resolved, Status.RESOLVED)

    with session_factory() as session:
        metrics = get_report_time_metrics(session)
    assert metrics["totalResolvedCount"] == 1
    assert metrics["totalSubmittedCount"] == 1
    assert metrics["averageResolutionTime"] > 0
    assert metrics["averageTimeToApprove"] == 0
