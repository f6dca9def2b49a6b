import logging
import uuid
from typing import Sequence

from core.badges import CATEGORIES, earned_badges
from core.database import run_with_retry
from core.domain import Severity, Status, ValidationError
from core.exports import postal_filename, render_postal_pdf
from core.heatmap import DEFAULT_GRID_RESOLUTION, build_heatmap
from core.region_selector import EXPORT_STATUSES, select_reports_in_region
from core.region_validation import MAX_REGION_AREA_M2, validate_region
from core.repository import (
    SqlReportStore,
    add_timeline_entry,
    award_badge,
    create_notification,
    create_report,
    get_report,
    get_user,
    list_admin_ids,
    list_reports_by_author,
    list_reports_with_coordinates,
    now_ms,
    report_to_dict,
    report_to_domain,
)

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    Status.PENDING: "está pendiente de revisión",
    Status.IN_PROGRESS: "está en proceso de atención",
    Status.RESOLVED: "ha sido resuelto",
    Status.REJECTED: "ha sido rechazado",
    Status.SUBMITTED: "ha sido enviado",
}


def award_badges(session, user_id: str):
    """
    Award every badge the user's reports now qualify for and notify them of
    each new one. Badges already held are left alone. Does not commit.
    """
    session.flush()  # sessions do not autoflush; the scores must see pending changes
    awarded = []
    for badge_type in earned_badges(list_reports_by_author(session, user_id)):
        badge = award_badge(session, user_id, badge_type)
        if badge is None:
            continue
        category = CATEGORIES[badge_type]
        create_notification(
            session,
            user_id=user_id,
            title="¡Has ganado una insignia!",
            message=f'Has obtenido la insignia "{category.name}": {category.description}',
            related_id=badge.id,
            type="BADGE_EARNED",
        )
        awarded.append(badge_type)
    if awarded:
        logger.info("User %s earned badges %s", user_id, ", ".join(awarded))
    return awarded


def submit_report(
    session_factory,
    author_id: str,
    description: str,
    severity: Severity,
    latitude: float,
    longitude: float,
    address: str | None = None,
    picture: str | None = None,
):
    report_id = str(uuid.uuid4())
    with session_factory() as session:
        author = get_user(session, author_id)
        if not author:
            raise ValueError("Author not found")
        create_report(
            session,
            report_id=report_id,
            author_id=author_id,
            description=description,
            severity=severity,
            latitude=latitude,
            longitude=longitude,
            address=address,
            picture=picture,
        )
        for admin_id in list_admin_ids(session):
            create_notification(
                session,
                user_id=admin_id,
                title="Nuevo reporte recibido",
                message=f"{author.name} ha enviado un nuevo reporte que requiere revisión.",
                related_id=report_id,
            )
        award_badges(session, author_id)
        run_with_retry(session.commit)
        report = report_to_dict(report_to_domain(get_report(session, report_id)))
    logger.info("Report %s submitted by %s", report_id, author_id)
    return report


def change_report_status(session_factory, report_id: str, status: Status, notes: str | None = None):
    """
    Move a report to `status`, recording a timeline entry and notifying its
    author. Setting the status it already has changes nothing.
    """
    with session_factory() as session:
        report = get_report(session, report_id)
        if not report:
            raise ValueError("Report not found")
        previous = report.status
        if previous == status.value:
            return {"report": report_to_dict(report_to_domain(report)), "changed": False}

        report.status = status.value
        report.updated_at = now_ms()
        add_timeline_entry(session, report_id, previous, status.value, notes)
        create_notification(
            session,
            user_id=report.author_id,
            title="Estado del reporte actualizado",
            message=f"Tu reporte en {report.address or 'la ubicación indicada'} {STATUS_MESSAGES[status]}.",
            related_id=report_id,
        )
        logger.debug("Notified %s about report %s -> %s", report.author_id, report_id, status.value)
        award_badges(session, report.author_id)
        run_with_retry(session.commit)
        result = report_to_dict(report_to_domain(report))
    logger.info("Report %s status %s -> %s", report_id, previous, status.value)
    return {"report": result, "changed": True}


def export_postal(
    session_factory,
    name: str,
    points: Sequence[Sequence[float]],
    statuses: Sequence[Status] = EXPORT_STATUSES,
    max_area_m2: float = MAX_REGION_AREA_M2,
    generated_at: int | None = None,
):
    """Select the reports inside `points` and render them as a postal PDF."""
    ok, reason, area = validate_region(points, max_area_m2=max_area_m2)
    if not ok:
        raise ValidationError(reason)
    with session_factory() as session:
        selection = select_reports_in_region(SqlReportStore(session), points, statuses)
    if not selection.reports:
        logger.info("No reports found in postal region '%s' (%.0f m^2)", name, area)
    pdf = render_postal_pdf(name, selection.reports, generated_at or now_ms())
    return {
        "pdf": pdf,
        "filename": postal_filename(name),
        "strategy": selection.strategy,
        "count": len(selection.reports),
        "area_m2": area,
    }


def heatmap(session_factory, statuses: Sequence[Status] | None = None, grid_resolution: float = DEFAULT_GRID_RESOLUTION):
    with session_factory() as session:
        reports = list_reports_with_coordinates(session, statuses)
    return build_heatmap(reports, grid_resolution)
