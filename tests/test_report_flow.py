import pytest

from core.domain import Severity, Status, ValidationError
from core.report_flow import change_report_status, export_postal, heatmap, submit_report
from core.repository import get_timeline, list_notifications


def test_status_change_notifies_author_and_records_timeline(session_factory, seed):
    author = seed.user()
    report_id = seed.report(author, 19.43, -99.13, status=Status.PENDING, address="Calle 5 de Mayo")

    result = change_report_status(session_factory, report_id, Status.RESOLVED, notes="Reparado")
    assert result["changed"] is True
    assert result["report"]["status"] == "RESOLVED"

    with session_factory() as session:
        notifications = list_notifications(session, author)
        timeline = get_timeline(session, report_id)
    assert len(notifications) == 1
    assert notifications[0]["message"] == "Tu reporte en Calle 5 de Mayo ha sido resuelto."
    assert notifications[0]["related_id"] == report_id
    assert [(t["previous_status"], t["new_status"], t["notes"]) for t in timeline] == [
        ("PENDING", "RESOLVED", "Reparado")
    ]


def test_same_status_is_a_no_op(session_factory, seed):
    author = seed.user()
    report_id = seed.report(author, 19.43, -99.13, status=Status.PENDING)

    result = change_report_status(session_factory, report_id, Status.PENDING)
    assert result["changed"] is False
    with session_factory() as session:
        assert list_notifications(session, author) == []
        assert get_timeline(session, report_id) == []


def test_unknown_report_raises(session_factory):
    with pytest.raises(ValueError):
        change_report_status(session_factory, "missing", Status.RESOLVED)


def test_submit_report_notifies_admins(session_factory, seed):
    author = seed.user(name="Luis")
    admin = seed.user(name="Admin", role="ADMIN")

    report = submit_report(session_factory, author, "Bache", Severity.HIGH, 19.43, -99.13)
    assert report["status"] == "SUBMITTED"
    assert report["author_name"] == "Luis"
    with session_factory() as session:
        notifications = list_notifications(session, admin)
    assert [n["title"] for n in notifications] == ["Nuevo reporte recibido"]


def test_postal_export_renders_selected_reports(session_factory, seed):
    author = seed.user()
    seed.report(author, 0.0005, 0.0005)
    region = [(0.0, 0.0), (0.0, 0.001), (0.001, 0.001), (0.001, 0.0)]

    result = export_postal(session_factory, "Zona centro", region)
    assert result["count"] == 1
    assert result["strategy"] == "precise"
    assert result["filename"] == "postal-Zona-centro.pdf"
    assert result["pdf"].startswith(b"%PDF")


def test_postal_export_rejects_invalid_region(session_factory):
    with pytest.raises(ValidationError):
        export_postal(session_factory, "Nada", [(0.0, 0.0), (0.0, 0.001)])
    with pytest.raises(ValidationError):
        export_postal(session_factory, "Enorme", [(0.0, 0.0), (0.0, 0.01), (0.01, 0.01), (0.01, 0.0)], max_area_m2=1.0)


def test_heatmap_without_reports_shows_placeholders(session_factory):
    payload = heatmap(session_factory)
    assert payload["totalCount"] == 0
    assert len(payload["clusters"]) == 3
