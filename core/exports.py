import csv
import io
import unicodedata
from datetime import datetime, timezone
from typing import List, Sequence
from urllib.parse import quote

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from core.domain import Report

STATUS_LABELS = {
    "SUBMITTED": "Enviado",
    "PENDING": "Pendiente",
    "IN_PROGRESS": "En Proceso",
    "RESOLVED": "Resuelto",
    "REJECTED": "Rechazado",
}

SEVERITY_LABELS = {
    "LOW": "Baja",
    "MEDIUM": "Media",
    "HIGH": "Alta",
}

CSV_COLUMNS = [
    ("id", "ID"),
    ("address", "Dirección"),
    ("description", "Descripción"),
    ("status", "Estado"),
    ("severity", "Gravedad"),
    ("latitude", "Latitud"),
    ("longitude", "Longitud"),
    ("reported_by", "Reportado Por"),
    ("created_at", "Fecha de Creación"),
    ("updated_at", "Última Actualización"),
]

NO_REPORTS_TEXT = "No se encontraron reportes en el área seleccionada."


def format_date(ts_ms: int | None) -> str:
    if not ts_ms:
        return "N/A"
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).strftime("%d/%m/%Y %H:%M")


def status_text(status) -> str:
    value = getattr(status, "value", status) or ""
    return STATUS_LABELS.get(value.upper(), value)


def severity_text(severity) -> str:
    value = getattr(severity, "value", severity) or ""
    return SEVERITY_LABELS.get(value.upper(), value)


def location_text(report: Report) -> str:
    if report.address:
        return report.address
    if report.has_coordinates:
        return f"Lat: {report.latitude:.6f}, Lng: {report.longitude:.6f}"
    return "Ubicación no disponible"


def reports_to_csv(reports: Sequence[Report]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=[label for _, label in CSV_COLUMNS])
    writer.writeheader()
    for r in reports:
        row = {
            "id": r.id,
            "address": r.address or "No disponible",
            "description": r.description,
            "status": status_text(r.status),
            "severity": severity_text(r.severity),
            "latitude": r.latitude,
            "longitude": r.longitude,
            "reported_by": r.author_name or "Anónimo",
            "created_at": format_date(r.created_at),
            "updated_at": format_date(r.updated_at),
        }
        writer.writerow({label: row[key] for key, label in CSV_COLUMNS})
    return buf.getvalue()


def postal_filename(name: str) -> str:
    return f"postal-{'-'.join(name.split())}.pdf"


def ascii_filename(filename: str) -> str:
    """Strip accents, then replace whatever is still not plain ASCII with '-'."""
    decomposed = unicodedata.normalize("NFKD", filename)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return "".join(c if " " <= c <= "~" and c not in '"\\' else "-" for c in stripped)


def content_disposition(filename: str) -> str:
    # header values must stay latin-1; filename* carries the exact UTF-8 name
    fallback = ascii_filename(filename)
    encoded = quote(filename, safe="")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"


def render_postal_pdf(name: str, reports: List[Report], generated_at: int) -> bytes:
    """
    Render a postal: a title block, then one captioned card per report,
    three to a row. With no reports the page carries NO_REPORTS_TEXT instead.
    """
    buf = io.BytesIO()
    width, height = A4
    margin = 40
    gap = 10
    cols = 3
    card_w = (width - 2 * margin - (cols - 1) * gap) / cols
    card_h = 120
    generated = format_date(generated_at)

    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(name)

    def header():
        c.setFont("Helvetica-Bold", 18)
        c.drawString(margin, height - 60, name)
        c.setFont("Helvetica", 10)
        c.drawString(margin, height - 76, f"Postal generada el {generated}")
        c.line(margin, height - 84, width - margin, height - 84)

    def footer():
        c.setFont("Helvetica", 8)
        c.line(margin, 40, width - margin, 40)
        c.drawCentredString(width / 2, 28, f"Postal generada desde la aplicación de Reporte de Baches - {generated}")

    header()
    footer()
    if not reports:
        c.setFont("Helvetica", 12)
        c.drawCentredString(width / 2, height / 2, NO_REPORTS_TEXT)
        c.showPage()
        c.save()
        return buf.getvalue()

    top = height - 100
    y = top
    for idx, report in enumerate(reports):
        col = idx % cols
        if col == 0 and idx:
            y -= card_h + gap
        if y - card_h < 50:
            c.showPage()
            header()
            footer()
            y = top
        x = margin + col * (card_w + gap)
        c.rect(x, y - card_h, card_w, card_h)
        c.setFont("Helvetica-Oblique", 7)
        for i, line in enumerate(simpleSplit(report.picture or "Sin imagen", "Helvetica-Oblique", 7, card_w - 8)[:3]):
            c.drawString(x + 4, y - 12 - i * 9, line)
        c.setFont("Helvetica", 8)
        caption = simpleSplit(location_text(report), "Helvetica", 8, card_w - 8)[:3]
        caption.append(f"Estado: {status_text(report.status)} | Severidad: {severity_text(report.severity)}")
        for i, line in enumerate(caption):
            c.drawString(x + 4, y - card_h + 10 + (len(caption) - 1 - i) * 10, line)
    c.showPage()
    c.save()
    return buf.getvalue()
