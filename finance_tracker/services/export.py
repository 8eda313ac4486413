# finance_tracker/services/export.py
# ----------------------------
# EXPORT (CSV / PDF) of the filtered transaction list
# ----------------------------
from __future__ import annotations

import logging
import os
from datetime import date, datetime
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .formatting import format_amount_plain, format_currency

CSV_HEADERS = {
    "th": "วันที่,ประเภท,หมวดหมู่,รายละเอียด,จำนวนเงิน",
    "en": "Date,Type,Category,Description,Amount",
}

TYPE_LABELS = {
    "th": {"income": "รายรับ", "expense": "รายจ่าย"},
    "en": {"income": "Income", "expense": "Expense"},
}


logger = logging.getLogger(__name__)

FONTS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "static", "fonts")

# (registered name, regular file, bold file); first one found wins.
# Thai faces come first; the bundled DejaVu Sans covers Latin and the baht sign.
PDF_FONT_CANDIDATES = [
    ("NotoSansThai", os.path.join(FONTS_DIR, "NotoSansThai-Regular.ttf"), os.path.join(FONTS_DIR, "NotoSansThai-Bold.ttf")),
    ("NotoSansThai", "/usr/share/fonts/truetype/noto/NotoSansThai-Regular.ttf", "/usr/share/fonts/truetype/noto/NotoSansThai-Bold.ttf"),
    ("Garuda", "/usr/share/fonts/truetype/tlwg/Garuda.ttf", "/usr/share/fonts/truetype/tlwg/Garuda-Bold.ttf"),
    ("DejaVuSans", os.path.join(FONTS_DIR, "DejaVuSans.ttf"), os.path.join(FONTS_DIR, "DejaVuSans-Bold.ttf")),
]


def _register_ttf(name: str, regular: str, bold: str | None) -> str:
    if name in pdfmetrics.getRegisteredFontNames():
        return name
    pdfmetrics.registerFont(TTFont(name, regular))
    bold_name = name
    if bold and os.path.exists(bold):
        bold_name = f"{name}-Bold"
        pdfmetrics.registerFont(TTFont(bold_name, bold))
    # <b> markup needs a family mapping even when there is a single face
    pdfmetrics.registerFontFamily(name, normal=name, bold=bold_name, italic=name, boldItalic=bold_name)
    return name


def _pick_pdf_font(font_path: str | None = None) -> str:
    """
    Register the first Unicode TTF available (an explicit ``font_path``, a Thai
    face, then the bundled DejaVu Sans) and return its name. Helvetica is the
    last resort and cannot draw the baht sign.
    """
    candidates = list(PDF_FONT_CANDIDATES)
    if font_path:
        stem = os.path.splitext(os.path.basename(font_path))[0]
        candidates.insert(0, ("Custom-" + stem, font_path, None))
    for name, regular, bold in candidates:
        if not os.path.exists(regular):
            continue
        try:
            return _register_ttf(name, regular, bold)
        except Exception:
            logger.warning(f"[export] Could not load {regular}; trying next font")
    logger.warning("[export] No Unicode font found; using Helvetica")
    return "Helvetica"


def _type_value(tx) -> str:
    return tx.type.value if hasattr(tx.type, "value") else str(tx.type)


def _quote(value: str | None) -> str:
    return '"' + (value or "").replace('"', '""') + '"'


def export_filename(today: date | None = None, ext: str = "csv") -> str:
    return f"transactions_{(today or date.today()).isoformat()}.{ext}"


def transactions_to_csv(rows, locale: str = "th") -> str:
    """
    Header + one line per row; category and description are always quoted.
    Lines are joined with '\\n' and there is no trailing newline.
    """
    labels = TYPE_LABELS.get(locale, TYPE_LABELS["en"])
    lines = [CSV_HEADERS.get(locale, CSV_HEADERS["en"])]
    for t in rows:
        lines.append(",".join([
            t.date.isoformat(),
            labels["income"] if _type_value(t) == "income" else labels["expense"],
            _quote(t.category),
            _quote(t.description),
            format_amount_plain(t.amount),
        ]))
    return "\n".join(lines)


def _page_decor(canvas, doc):
    """Footer with page number + generated timestamp."""
    canvas.saveState()
    canvas.setStrokeColor(colors.HexColor("#e6e6e6"))
    canvas.setLineWidth(0.6)
    canvas.line(15 * mm, 15 * mm, doc.width + doc.leftMargin, 15 * mm)

    canvas.setFont("Helvetica", 8)
    canvas.setFillColor(colors.HexColor("#666666"))
    canvas.drawString(15 * mm, 11 * mm, f"Page {canvas.getPageNumber()}")

    ts = datetime.now().strftime("%Y-%m-%d %H:%M")
    w = canvas.stringWidth(ts, "Helvetica", 8)
    canvas.drawString(doc.width + doc.leftMargin - w, 11 * mm, ts)
    canvas.restoreState()


def build_transactions_pdf(rows, summary: dict, filters, font_path: str | None = None) -> bytes:
    """
    Multi-page PDF:
    - Header bar "Transaction Report"
    - Active filters + total count
    - Cards: Income / Expense / Balance
    - Table: Date | Type | Category | Description | Amount
    """
    font_name = _pick_pdf_font(font_path)
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=A4,
        leftMargin=15 * mm, rightMargin=15 * mm,
        topMargin=22 * mm, bottomMargin=20 * mm,
    )

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="HeaderBar", fontName=font_name, fontSize=16,
                              textColor=colors.white, alignment=1))
    styles.add(ParagraphStyle(name="Muted", fontName=font_name, fontSize=8,
                              textColor=colors.HexColor("#666666")))
    normal = styles["Normal"]
    normal.fontName = font_name
    normal.fontSize = 9

    story = []

    header_tbl = Table([[Paragraph("Transaction Report", styles["HeaderBar"])]], colWidths=[doc.width])
    header_tbl.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#1f2937")),
        ("TOPPADDING", (0, 0), (-1, -1), 8),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
    ]))
    story.append(header_tbl)
    story.append(Spacer(0, 6))

    active = ", ".join(f"{k}={v}" for k, v in filters.to_query().items()) or "none"
    story.append(Paragraph(f"Filters: {escape(active)}", normal))
    story.append(Paragraph(f"Total Transactions: {len(rows)}", normal))
    story.append(Spacer(0, 8))

    def _mini_card(title, value_html):
        return Table([[Paragraph(title, normal), Paragraph(value_html, normal)]],
                     colWidths=[doc.width / 3 * 0.5, doc.width / 3 * 0.5],
                     style=TableStyle([
                         ("BOX", (0, 0), (-1, -1), 0.8, colors.HexColor("#d1d5db")),
                         ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#f3f4f6")),
                         ("ALIGN", (1, 0), (1, 0), "RIGHT"),
                         ("TOPPADDING", (0, 0), (-1, -1), 8),
                         ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
                     ]))

    balance = summary["balance"]
    balance_color = "#198754" if balance >= 0 else "#dc3545"
    cards_row = Table([[
        _mini_card("Income", f"<font color='#198754'><b>{format_currency(summary['total_income'])}</b></font>"),
        _mini_card("Expense", f"<font color='#dc3545'><b>{format_currency(summary['total_expense'])}</b></font>"),
        _mini_card("Balance", f"<font color='{balance_color}'><b>{format_currency(balance)}</b></font>"),
    ]], colWidths=[doc.width / 3] * 3)
    story.append(cards_row)
    story.append(Spacer(0, 12))

    data = [["Date", "Type", "Category", "Description", "Amount"]]
    for t in rows:
        is_income = _type_value(t) == "income"
        color = "#198754" if is_income else "#dc3545"
        sign = "+" if is_income else "-"
        data.append([
            Paragraph(t.date.isoformat(), normal),
            Paragraph("Income" if is_income else "Expense", normal),
            Paragraph(escape(t.category), normal),
            Paragraph(escape(t.description or "-"), styles["Muted"]),
            Paragraph(f"<font color='{color}'><b>{sign} {format_currency(t.amount)}</b></font>", normal),
        ])

    tbl = Table(data, colWidths=[24 * mm, 20 * mm, 40 * mm, 66 * mm, 30 * mm],
                repeatRows=1, splitByRow=True)
    tbl.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#111111")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.whitesmoke, colors.HexColor("#f5f5f5")]),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#d9d9d9")),
        ("ALIGN", (-1, 1), (-1, -1), "RIGHT"),
    ]))
    story.append(tbl)

    doc.build(story, onFirstPage=_page_decor, onLaterPages=_page_decor)
    pdf = buf.getvalue()
    buf.close()
    return pdf
