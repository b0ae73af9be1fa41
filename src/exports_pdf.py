"""
Single-page PDF fact sheet.

Lays out the same numbers the dashboard's fact-sheet tab shows: headline
stats, funding breakdown, the region's largest events, congressional districts
and, for one event, its CDBG-DR grantees.
"""

import io
import logging
import re
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import KeepInFrame, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from fact_sheet import FactSheet

logger = logging.getLogger(__name__)

NAVY = HexColor("#003A63")
TEAL = HexColor("#00A79D")
GREY = HexColor("#F3F4F6")

_styles = getSampleStyleSheet()
style_kicker = ParagraphStyle("kicker", parent=_styles["Normal"], fontSize=8, textColor=colors.grey)
style_title = ParagraphStyle("title", parent=_styles["Title"], fontSize=16, leading=19, textColor=NAVY, alignment=0, spaceAfter=2)
style_subtitle = ParagraphStyle("subtitle", parent=_styles["Normal"], fontSize=10, textColor=TEAL, spaceAfter=6)
style_h2 = ParagraphStyle("h2", parent=_styles["Heading2"], fontSize=11, textColor=NAVY, spaceBefore=6, spaceAfter=3)
style_stat = ParagraphStyle("stat", parent=_styles["Normal"], fontSize=14, leading=16, textColor=TEAL)
style_body = ParagraphStyle("body", parent=_styles["Normal"], fontSize=8, leading=10)
style_note = ParagraphStyle("note", parent=_styles["Normal"], fontSize=7, textColor=colors.grey)


def format_currency(amount, abbreviate: bool = False) -> str:
    if not amount or amount != amount:
        return "$0"
    if abbreviate:
        if amount >= 1e9:
            return f"${amount / 1e9:.1f}B"
        if amount >= 1e6:
            return f"${amount / 1e6:.1f}M"
        if amount >= 1e3:
            return f"${amount / 1e3:.1f}K"
    return f"${amount:,.0f}"


def format_number(num) -> str:
    if not num or num != num:
        return "0"
    return f"{num:,.0f}"


def _para(text, style) -> Paragraph:
    # Paragraph text is markup; event names and labels carry bare "&"
    return Paragraph(escape(str(text)), style)


def _slug(text: str) -> str:
    return re.sub(r"\s+", "-", text.strip()).lower()


def fact_sheet_filename(sheet: FactSheet) -> str:
    if sheet.is_comparison:
        return f"disaster-comparison-{'-'.join(sheet.combined.states)}.pdf"
    event = sheet.event.get("event")
    event_part = _slug(event) if event else "unnamed-event"
    return f"disaster-fact-sheet-{sheet.state_name or 'unknown'}-{event_part}.pdf"


def _grid(data, col_widths, numeric_from: int = 1) -> Table:
    tbl = Table(data, colWidths=col_widths, repeatRows=1)
    tbl.setStyle(TableStyle([
        ("FONTSIZE", (0, 0), (-1, -1), 7.5),
        ("BACKGROUND", (0, 0), (-1, 0), GREY),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("ALIGN", (numeric_from, 0), (-1, -1), "RIGHT"),
        ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.grey),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, GREY]),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]))
    return tbl


def _stat_row(stats, width) -> Table:
    cells = [[_para(value, style_stat), _para(label, style_body)] for value, label in stats]
    tbl = Table([cells], colWidths=[width / len(stats)] * len(stats))
    tbl.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), GREY),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("BOX", (0, 0), (-1, -1), 0.25, colors.white),
        ("INNERGRID", (0, 0), (-1, -1), 4, colors.white),
    ]))
    return tbl


def _headline(sheet: FactSheet, width) -> list:
    if sheet.is_comparison:
        totals = sheet.combined.totals
        stats = [
            (format_currency(totals["total_funding"], True), "Total funding across all selected disasters"),
            (format_currency(totals["ihp_total"], True), "Total Individual & Household Assistance"),
            (format_number(totals["applicants"]), "Total number of applicants across all selected disasters"),
        ]
        story = [_para("Combined Disaster Funding", style_h2), _stat_row(stats, width)]

        rows = [["Event", "IHP", "PA", "CDBG-DR", "Total", "Applicants"]]
        for _, e in sheet.combined.by_event.iterrows():
            rows.append([
                _para(e["name"], style_body),
                format_currency(e["ihp_total"], True),
                format_currency(e["pa_total"], True),
                format_currency(e["cdbg_dr_allocation"], True),
                format_currency(e["total_funding"], True),
                format_number(e["applicants"]),
            ])
        story += [Spacer(0, 6), _grid(rows, [width * 0.4] + [width * 0.12] * 5)]
        return story

    stats = [
        (format_currency(sheet.assistance.average_assistance), "Average assistance to households"),
        (format_number(sheet.assistance.applicants), "Households that applied for assistance"),
        (format_number(sheet.similar_recent), f"{sheet.event.get('incident_type')} disasters nationwide in the past 5 years"),
    ]
    story = [_para("Event Impact", style_h2), _stat_row(stats, width)]
    if sheet.assistance.basis == "estimated":
        story.append(_para("Average assistance estimated from FEMA national averages for this disaster type.", style_note))

    breakdown = sheet.funding_breakdown()
    if not breakdown.empty:
        rows = [["Source", "Amount", "Share"]]
        for _, b in breakdown.iterrows():
            rows.append([b["label"], format_currency(b["amount"]), f"{b['percentage']:.1f}%"])
        story += [_para("Funding Breakdown by Source", style_h2), _grid(rows, [width * 0.6, width * 0.25, width * 0.15])]
    return story


def _region_section(sheet: FactSheet, width) -> list:
    annual = sheet.annual
    story = [
        _para(f"Federal Disaster Spending in {sheet.state_name}", style_h2),
        _stat_row([
            (format_currency(annual.annual_average, True), f"Average annual federal disaster spend ({annual.earliest_year}-{annual.latest_year})"),
            (format_currency(annual.total_funding, True), f"Total over the last {annual.years_span} years"),
        ], width),
    ]

    top = sheet.top_events
    if not top.events.empty:
        rows = [["Event", "IHP", "PA", "CDBG-DR", "Total"]]
        for _, e in top.events.iterrows():
            rows.append([
                _para(str(e["name"]), style_body),
                format_currency(e["ihp_total"], True),
                format_currency(e["pa_total"], True),
                format_currency(e["cdbg_dr_allocation"], True),
                format_currency(e["total_funding"], True),
            ])
        story += [
            _para(f"Major Disasters in {sheet.state_name} ({top.date_range})", style_h2),
            _grid(rows, [width * 0.44] + [width * 0.14] * 4),
        ]
    return story


def _district_section(sheet: FactSheet, width) -> list:
    if sheet.districts.empty:
        return []
    rows = [["Representative", "District", "Party", "Total Funding", "Applicants"]]
    for _, d in sheet.districts.iterrows():
        label = d["district_label"] or f"{d['state_name']} District {int(d['district_number'])}"
        rows.append([
            d["representative"] or "Unknown",
            label,
            d["party"] or "Unknown",
            format_currency(d["total_funding"]),
            format_number(d["total_applicants"]),
        ])
    return [
        _para("Top Congressional Districts by Disaster Assistance (2021-Present)", style_h2),
        _grid(rows, [width * 0.26, width * 0.3, width * 0.14, width * 0.16, width * 0.14], numeric_from=3),
    ]


def _grantee_section(sheet: FactSheet, width) -> list:
    if sheet.is_comparison or sheet.grantees.empty:
        return []
    rows = [["Tranche", "Grantee", "Allocation"]]
    for _, g in sheet.grantees.iterrows():
        rows.append([f"FRN {int(g['tranche'])}", g["name"], format_currency(g["amount"])])
    return [
        _para("CDBG-DR Grantees", style_h2),
        _grid(rows, [width * 0.15, width * 0.6, width * 0.25], numeric_from=2),
    ]


def build_fact_sheet_pdf(sheet: FactSheet) -> bytes:
    """Render the fact sheet onto one letter page and return the PDF bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=letter,
        leftMargin=0.5 * inch, rightMargin=0.5 * inch, topMargin=0.5 * inch, bottomMargin=0.5 * inch,
        title=sheet.title,
    )
    width = doc.width

    story = [
        _para("Multi-Disaster Comparison" if sheet.is_comparison else "Fact Sheet for", style_kicker),
        _para(sheet.title, style_title),
        _para(sheet.subtitle, style_subtitle),
    ]
    story += _headline(sheet, width)
    story += _district_section(sheet, width)
    story += _region_section(sheet, width)
    story += _grantee_section(sheet, width)
    story += [
        Spacer(0, 8),
        _para(
            f"Sources: FEMA, HUD and SBA via the Disaster Dollar Database. Generated {sheet.generated_at:%Y-%m-%d}.",
            style_note,
        ),
    ]

    # Shrink to fit so the export always stays a single page
    doc.build([KeepInFrame(doc.width, doc.height, story, mode="shrink")])
    pdf = buffer.getvalue()
    logger.info("Built fact sheet PDF %s (%d bytes)", fact_sheet_filename(sheet), len(pdf))
    return pdf
