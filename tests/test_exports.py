import csv
import io

from core.domain import Report, Severity, Status
from core.exports import (
    content_disposition,
    format_date,
    location_text,
    postal_filename,
    render_postal_pdf,
    reports_to_csv,
)


def _report(idx, **kwargs):
    defaults = dict(
        id=f"r{idx}",
        description="Bache profundo",
        status=Status.IN_PROGRESS,
        created_at=1_700_000_000_000,
        author_id="u1",
        severity=Severity.HIGH,
        latitude=19.4326,
        longitude=-99.1332,
    )
    defaults.update(kwargs)
    return Report(**defaults)


def _page_count(pdf: bytes) -> int:
    return pdf.count(b"/Type /Page") - pdf.count(b"/Type /Pages")


def test_postal_pdf_without_reports_is_still_a_document():
    pdf = render_postal_pdf("Colonia Roma", [], 1_700_000_000_000)
    assert pdf.startswith(b"%PDF")
    assert pdf.rstrip().endswith(b"%%EOF")


def test_postal_pdf_spans_pages_for_many_reports():
    few = render_postal_pdf("Centro", [_report(1)], 1_700_000_000_000)
    many = render_postal_pdf("Centro", [_report(i) for i in range(40)], 1_700_000_000_000)
    assert many.startswith(b"%PDF")
    assert _page_count(many) > _page_count(few) == 1


def test_postal_filename_replaces_whitespace():
    assert postal_filename("Calle  Mayor 5") == "postal-Calle-Mayor-5.pdf"


def test_location_text_prefers_address():
    assert location_text(_report(1, address="Av. Juárez 10")) == "Av. Juárez 10"
    assert location_text(_report(1)) == "Lat: 19.432600, Lng: -99.133200"


def test_format_date():
    assert format_date(1_700_000_000_000) == "14/11/2023 22:13"
    assert format_date(None) == "N/A"


def test_csv_export_labels_and_escaping():
    reports = [
        _report(1, description='Bache "grande", peligroso', author_name="Ana"),
        _report(2, severity=None, status=Status.PENDING),
    ]
    rows = list(csv.reader(io.StringIO(reports_to_csv(reports))))
    assert rows[0][:5] == ["ID", "Dirección", "Descripción", "Estado", "Gravedad"]
    assert rows[1][1] == "No disponible"
    assert rows[1][2] == 'Bache "grande", peligroso'
    assert rows[1][3] == "En Proceso"
    assert rows[1][4] == "Alta"
    assert rows[1][7] == "Ana"
    assert rows[2][3] == "Pendiente"
    assert rows[2][4] == ""
    assert rows[2][7] == "Anónimo"


def test_content_disposition_keeps_ascii_fallback_and_utf8_name():
    header = content_disposition('postal-Calle-"Niño".pdf')
    assert header.startswith('attachment; filename="postal-Calle--Nino-.pdf"; ')
    assert header.endswith("filename*=UTF-8''postal-Calle-%22Ni%C3%B1o%22.pdf")
    header.encode("latin-1")
