import pytest

from core.domain import Report, Severity, SizeTier, Status
from core.heatmap import build_heatmap, cluster_reports, grid_key, size_tier


def _report(idx, lat, lon, severity=Severity.LOW):
    return Report(
        id=f"r{idx}",
        description="",
        status=Status.PENDING,
        created_at=idx,
        author_id="u1",
        severity=severity,
        latitude=lat,
        longitude=lon,
    )


def test_plurality_severity_in_one_cell():
    severities = [Severity.HIGH, Severity.HIGH, Severity.MEDIUM, Severity.MEDIUM, Severity.MEDIUM, Severity.LOW, Severity.LOW]
    reports = [_report(i, 19.41 + i * 0.001, -99.17 + i * 0.001, sev) for i, sev in enumerate(severities)]

    clusters = cluster_reports(reports, 0.1)
    assert len(clusters) == 1
    cluster = clusters[0]
    assert cluster.member_count == 7
    assert cluster.size_tier == SizeTier.LARGE
    assert cluster.dominant_severity == Severity.MEDIUM
    # positioned on the first member, not the mean
    assert cluster.position == (19.41, -99.17)


def test_empty_input_returns_placeholders():
    clusters = cluster_reports([])
    assert len(clusters) == 3
    assert all(c.placeholder for c in clusters)
    assert [c.dominant_severity for c in clusters] == [Severity.HIGH, Severity.MEDIUM, Severity.LOW]


def test_ties_prefer_higher_severity():
    reports = [
        _report(1, 10.01, 10.01, Severity.LOW),
        _report(2, 10.02, 10.02, Severity.HIGH),
        _report(3, 10.03, 10.03, Severity.MEDIUM),
        _report(4, 10.04, 10.04, Severity.MEDIUM),
        _report(5, 10.05, 10.05, Severity.HIGH),
    ]
    assert cluster_reports(reports)[0].dominant_severity == Severity.HIGH


def test_reports_without_coordinates_are_skipped():
    reports = [_report(1, None, None), _report(2, 10.01, None), _report(3, 10.01, 10.01)]
    clusters = cluster_reports(reports)
    assert len(clusters) == 1
    assert clusters[0].report_ids == ["r3"]


def test_all_reports_skipped_gives_no_clusters():
    assert cluster_reports([_report(1, None, None)]) == []


def test_non_finite_coordinates_are_skipped():
    reports = [
        _report(1, float("nan"), 1.0),
        _report(2, 1.0, float("inf")),
        _report(3, -float("inf"), -float("inf")),
        _report(4, 1.01, 1.01),
    ]
    clusters = cluster_reports(reports)
    assert [c.report_ids for c in clusters] == [["r4"]]
    assert build_heatmap(reports)["totalCount"] == 1


def test_cell_without_severity_votes_is_low():
    reports = [_report(1, 5.01, 5.01, None), _report(2, 5.02, 5.02, None)]
    cluster = cluster_reports(reports)[0]
    assert cluster.member_count == 2
    assert cluster.dominant_severity == Severity.LOW


def test_separate_cells_make_separate_clusters():
    reports = [_report(1, 19.41, -99.17), _report(2, 19.55, -99.17), _report(3, 19.42, -99.16)]
    clusters = sorted(cluster_reports(reports), key=lambda c: -c.member_count)
    assert [c.member_count for c in clusters] == [2, 1]


def test_grid_key_uses_floor_for_negative_coordinates():
    assert grid_key(-0.05, -99.17) == (-1, -992)
    assert grid_key(0.3, 0.7) == (3, 7)


@pytest.mark.parametrize(
    "count,tier",
    [(1, SizeTier.SMALL), (2, SizeTier.SMALL), (3, SizeTier.MEDIUM), (5, SizeTier.MEDIUM),
     (6, SizeTier.LARGE), (9, SizeTier.LARGE), (10, SizeTier.EXTRA_LARGE), (40, SizeTier.EXTRA_LARGE)],
)
def test_size_tiers(count, tier):
    assert size_tier(count) == tier


def test_heatmap_payload():
    payload = build_heatmap([_report(1, 19.41, -99.17, Severity.HIGH)])
    assert payload["totalCount"] == 1
    assert payload["clusters"] == [
        {
            "position": [19.41, -99.17],
            "sizeTier": "small",
            "dominantSeverity": "HIGH",
            "dominantSeverityColor": "#ef4444",
            "memberCount": 1,
            "placeholder": False,
        }
    ]
