"""Descriptor -> artifact rendering.

`render_document` is pure: the same descriptor and context always give the
same layout and byte-identical PDF output (ReportLab invariant mode).
"""

from __future__ import annotations

import io
import re
from typing import Any, Iterable, Iterator
from xml.sax.saxutils import escape

from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .determinism import canonical_json_bytes, sha256_bytes
from .templates import RenderContext, build_sections
from .types import DocumentDescriptor, RenderedArtifact, RenderedPage, RenderedSection

CONTENT_TYPE = "application/pdf"
VERIFICATION_TITLE = "Verification"

# Rows (section titles, lines, table rows) per layout page.
LINES_PER_PAGE = 34

QR_SIZE = 28 * mm

_STYLES = {
    "title": ParagraphStyle(
        "SectionTitle",
        fontName="Helvetica-Bold",
        fontSize=11,
        leading=14,
        textColor=colors.HexColor("#111827"),
        spaceBefore=4 * mm,
        spaceAfter=1.5 * mm,
    ),
    "body": ParagraphStyle(
        "Body",
        fontName="Helvetica",
        fontSize=9,
        leading=12,
        textColor=colors.HexColor("#374151"),
    ),
    "cell": ParagraphStyle(
        "Cell",
        fontName="Helvetica",
        fontSize=8,
        leading=10,
    ),
}

_SAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def artifact_filename(descriptor: DocumentDescriptor, ctx: RenderContext) -> str:
    producer = _SAFE_NAME_RE.sub("-", ctx.producer.producer_id).strip("-") or "producer"
    stamp = ctx.generated_utc.strftime("%Y%m%d")
    return f"EUDR_{descriptor.document_type.value}_{producer}_{ctx.pack_id}_{stamp}.pdf"


def _section_dict(section: RenderedSection) -> dict[str, Any]:
    return {
        "title": section.title,
        "lines": list(section.lines),
        "table": [list(r) for r in section.table],
    }


def _split(section: RenderedSection, rows_per_page: int) -> Iterator[RenderedSection]:
    if section.row_count() <= rows_per_page:
        yield section
        return

    capacity = rows_per_page - 1
    items: list[tuple[str, Any]] = [("line", l) for l in section.lines]
    items.extend(("row", r) for r in section.table)
    for i in range(0, len(items), capacity):
        chunk = items[i : i + capacity]
        yield RenderedSection(
            title=section.title if i == 0 else f"{section.title} (cont.)",
            lines=tuple(v for kind, v in chunk if kind == "line"),
            table=tuple(v for kind, v in chunk if kind == "row"),
        )


def paginate(sections: Iterable[RenderedSection], rows_per_page: int = LINES_PER_PAGE) -> tuple[RenderedPage, ...]:
    """Pack sections onto pages; a section only splits when it exceeds a whole page."""

    if rows_per_page < 2:
        raise ValueError("rows_per_page must allow a title and one row")

    pages: list[RenderedPage] = []
    current: list[RenderedSection] = []
    used = 0
    for section in sections:
        for chunk in _split(section, rows_per_page):
            rows = chunk.row_count()
            if current and used + rows > rows_per_page:
                pages.append(RenderedPage(number=len(pages) + 1, sections=tuple(current)))
                current, used = [], 0
            current.append(chunk)
            used += rows
    if current:
        pages.append(RenderedPage(number=len(pages) + 1, sections=tuple(current)))
    return tuple(pages)


def verification_payload(
    descriptor: DocumentDescriptor,
    ctx: RenderContext,
    content_sections: list[RenderedSection],
) -> dict[str, Any]:
    digest = sha256_bytes(canonical_json_bytes([_section_dict(s) for s in content_sections]))
    return {
        "v": 1,
        "pack_id": ctx.pack_id,
        "reference_number": descriptor.reference_number,
        "document_type": descriptor.document_type.value,
        "producer_id": ctx.producer.producer_id,
        "content_sha256": digest,
        "url": f"{ctx.verify_base_url.rstrip('/')}?ref={descriptor.reference_number}",
    }


def _qr_drawing(data: str) -> Drawing:
    widget = QrCodeWidget(data)
    x0, y0, x1, y1 = widget.getBounds()
    w, h = x1 - x0, y1 - y0
    drawing = Drawing(QR_SIZE, QR_SIZE, transform=[QR_SIZE / w, 0, 0, QR_SIZE / h, 0, 0])
    drawing.add(widget)
    return drawing


def _table(rows: tuple[tuple[str, ...], ...], width: float) -> Table:
    data = [[Paragraph(escape(str(cell)), _STYLES["cell"]) for cell in row] for row in rows]
    ncols = max(len(r) for r in rows)
    table = Table(data, colWidths=[width / ncols] * ncols, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F3F4F6")),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#D1D5DB")),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ]
        )
    )
    return table


def _pdf_bytes(
    descriptor: DocumentDescriptor,
    ctx: RenderContext,
    pages: tuple[RenderedPage, ...],
    qr_data: str,
) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=18 * mm,
        leftMargin=18 * mm,
        topMargin=20 * mm,
        bottomMargin=18 * mm,
        invariant=1,
        title=descriptor.document_type.label,
        author=descriptor.issued_by,
        subject=descriptor.reference_number,
        creator="eudr-packs",
    )

    footer = (
        f"Document: {descriptor.document_type.label} | Pack ID: {ctx.pack_id} "
        f"| Generated: {ctx.generated_date}"
    )

    def decorate(canvas, doc_):
        canvas.saveState()
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(colors.HexColor("#6B7280"))
        top = doc_.pagesize[1] - 12 * mm
        canvas.drawString(doc_.leftMargin, top, descriptor.reference_number)
        canvas.drawString(doc_.leftMargin, 10 * mm, footer)
        canvas.drawRightString(
            doc_.pagesize[0] - doc_.rightMargin, 10 * mm, f"Page {canvas.getPageNumber()}"
        )
        canvas.restoreState()

    elements: list[Any] = []
    for page in pages:
        if page.number > 1:
            elements.append(PageBreak())
        for section in page.sections:
            elements.append(Paragraph(escape(section.title), _STYLES["title"]))
            for line in section.lines:
                elements.append(Paragraph(escape(line), _STYLES["body"]))
            if section.table:
                elements.append(_table(section.table, doc.width))
    elements.append(Spacer(1, 3 * mm))
    elements.append(_qr_drawing(qr_data))

    doc.build(elements, onFirstPage=decorate, onLaterPages=decorate)
    return buffer.getvalue()


def render_document(descriptor: DocumentDescriptor, ctx: RenderContext) -> RenderedArtifact:
    content_sections = build_sections(descriptor, ctx)
    verification = verification_payload(descriptor, ctx, content_sections)
    verification_section = RenderedSection(
        title=VERIFICATION_TITLE,
        lines=(
            f"Verify at: {verification['url']}",
            f"Content SHA-256: {verification['content_sha256']}",
        ),
    )
    pages = paginate([*content_sections, verification_section])
    content = _pdf_bytes(
        descriptor,
        ctx,
        pages,
        canonical_json_bytes(verification).decode("utf-8"),
    )
    return RenderedArtifact(
        document_type=descriptor.document_type,
        reference_number=descriptor.reference_number,
        title=descriptor.document_type.label,
        filename=artifact_filename(descriptor, ctx),
        content_type=CONTENT_TYPE,
        content=content,
        sha256=sha256_bytes(content),
        pages=pages,
        verification=verification,
    )
