from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Tuple

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)

FONT_CANDIDATES = (
    ("DejaVuSans.ttf", "DejaVuSans-Bold.ttf"),
    ("NotoSans-Regular.ttf", "NotoSans-Bold.ttf"),
    ("LiberationSans-Regular.ttf", "LiberationSans-Bold.ttf"),
    ("Arial.ttf", "Arial Bold.ttf"),
)

FONT_DIRS = (
    Path.cwd() / "assets" / "fonts",
    Path.home() / ".fonts",
    Path("/usr/share/fonts/truetype/dejavu"),
    Path("/usr/share/fonts/truetype"),
    Path("/usr/share/fonts"),
    Path("C:/Windows/Fonts"),
    Path("/Library/Fonts"),
)


def _find_font_file() -> tuple[str | None, str | None]:
    for regular_name, bold_name in FONT_CANDIDATES:
        for d in FONT_DIRS:
            reg = d / regular_name
            bold = d / bold_name
            if reg.is_file():
                return str(reg), str(bold) if bold.is_file() else str(reg)
    return None, None


def _ensure_font_registered() -> tuple[str, str]:
    """Register a TrueType font with wide glyph coverage, else fall back to Helvetica."""
    reg_path, bold_path = _find_font_file()
    if not reg_path:
        return "Helvetica", "Helvetica-Bold"
    reg_name, bold_name = "AppFont", "AppFont-Bold"
    registered = pdfmetrics.getRegisteredFontNames()
    if reg_name not in registered:
        pdfmetrics.registerFont(TTFont(reg_name, reg_path))
    if bold_name not in registered:
        pdfmetrics.registerFont(TTFont(bold_name, bold_path or reg_path))
    return reg_name, bold_name


def _measure_col_widths(df: pd.DataFrame, font_name: str, font_size: int, padding: float = 8.0, sample_rows: int = 200) -> List[float]:
    values = df.head(sample_rows).astype(str).values.tolist()
    widths: List[float] = []
    for j, col in enumerate(df.columns):
        max_w = pdfmetrics.stringWidth(str(col), font_name, font_size)
        for row in values:
            max_w = max(max_w, pdfmetrics.stringWidth(str(row[j]), font_name, font_size))
        widths.append(max_w + padding)
    return widths


def _format_cell(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        return f"{value:,.2f}"
    return str(value)


def save_pdf(
    df: pd.DataFrame,
    file_path: str | Path,
    title: str = "Report",
    context: dict[str, Any] | None = None,
    margins_mm: Tuple[float, float, float, float] = (15.0, 15.0, 15.0, 15.0),
) -> Path:
    """Save a DataFrame as a PDF table, picking portrait or landscape A4 and a font size that fits.

    context: optional label -> value pairs printed under the table.
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    regular_font, bold_font = _ensure_font_registered()
    table_df = df.apply(lambda col: col.map(_format_cell)) if not df.empty else df.astype(str)
    left_mm, right_mm, top_mm, bottom_mm = margins_mm

    page, font_size, widths = A4, 10, None
    for page_size in (A4, landscape(A4)):
        avail_w = page_size[0] - (left_mm + right_mm) * mm
        for fs in range(12, 6, -1):
            candidate = _measure_col_widths(table_df, regular_font, fs)
            if sum(candidate) <= avail_w:
                page, font_size, widths = page_size, fs, candidate
                break
        if widths is not None:
            break
    if widths is None:
        # Nothing fits: shrink proportionally on landscape
        page, font_size = landscape(A4), 7
        measured = _measure_col_widths(table_df, regular_font, font_size)
        avail_w = page[0] - (left_mm + right_mm) * mm
        scale = avail_w / sum(measured) if measured else 1.0
        widths = [w * scale for w in measured]
        logger.warning("PDF table wider than the page, columns scaled by %.2f", scale)

    doc = SimpleDocTemplate(
        str(file_path),
        pagesize=page,
        leftMargin=left_mm * mm,
        rightMargin=right_mm * mm,
        topMargin=top_mm * mm,
        bottomMargin=bottom_mm * mm,
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(name="ReportTitle", parent=styles["Title"], fontName=bold_font, fontSize=font_size + 4)
    body_style = ParagraphStyle(name="ReportBody", parent=styles["Normal"], fontName=regular_font, fontSize=font_size)

    story: list = [Paragraph(f"<b>{title}</b>", title_style), Spacer(1, 4 * mm)]
    data = [list(map(str, table_df.columns))] + table_df.values.tolist()
    table = Table(data, colWidths=widths or None, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), bold_font),
                ("FONTNAME", (0, 1), (-1, -1), regular_font),
                ("FONTSIZE", (0, 0), (-1, -1), font_size),
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ]
        )
    )
    story.append(table)
    if context:
        story.append(Spacer(1, 4 * mm))
        lines = [f"{label}: {_format_cell(value)}" for label, value in context.items()]
        story.append(Paragraph("<br/>".join(lines), body_style))

    doc.build(story)
    logger.info("Saved PDF report %s", file_path)
    return file_path
