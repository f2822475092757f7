"""
PDF generation for MowerManager.
Generates per-mower service reports and the fleet maintenance report.
"""

import io
from datetime import date, datetime
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import (
    SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, HRFlowable
)

from maintenance_schedule import format_date, mower_display_name


# Brand colors
GREEN_DARK = colors.HexColor('#1a4d2e')
GREEN_MID = colors.HexColor('#2d7a4a')
GRAY_LIGHT = colors.HexColor('#f9fafb')
GRAY_BORDER = colors.HexColor('#e5e7eb')
TEXT_SECONDARY = colors.HexColor('#6b7280')
RED = colors.HexColor('#b91c1c')
AMBER = colors.HexColor('#b45309')

STATUS_LABELS = {
    'overdue': 'Overdue',
    'due_soon': 'Due soon',
    'upcoming': 'Upcoming',
    'in_maintenance': 'In maintenance',
}

_TABLE_STYLE = [
    ('BACKGROUND', (0, 0), (-1, 0), GREEN_DARK),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
    ('FONT', (0, 0), (-1, 0), 'Helvetica-Bold', 8),
    ('ALIGNMENT', (0, 0), (-1, 0), 'CENTER'),
    ('FONT', (0, 1), (-1, -1), 'Helvetica', 8),
    ('GRID', (0, 0), (-1, -1), 0.5, GRAY_BORDER),
    ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, GRAY_LIGHT]),
    ('TOPPADDING', (0, 0), (-1, -1), 4),
    ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
    ('LEFTPADDING', (0, 0), (-1, -1), 4),
    ('RIGHTPADDING', (0, 0), (-1, -1), 4),
    ('VALIGN', (0, 0), (-1, -1), 'TOP'),
]


def _get_styles():
    """Get custom paragraph styles."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        'GreenTitle',
        parent=styles['Title'],
        textColor=GREEN_DARK,
        fontSize=20,
        spaceAfter=6,
    ))
    styles.add(ParagraphStyle(
        'GreenHeading',
        parent=styles['Heading2'],
        textColor=GREEN_DARK,
        fontSize=14,
        spaceBefore=12,
        spaceAfter=8,
    ))
    styles.add(ParagraphStyle(
        'SmallText',
        parent=styles['Normal'],
        fontSize=9,
        textColor=TEXT_SECONDARY,
    ))
    styles.add(ParagraphStyle(
        'Subtitle',
        parent=styles['Normal'],
        fontSize=12,
        textColor=GREEN_MID,
        alignment=TA_CENTER,
        spaceAfter=8,
    ))

    return styles


def _header_footer(canvas, doc, title=''):
    """Add header and footer to each page."""
    canvas.saveState()
    canvas.setStrokeColor(GREEN_DARK)
    canvas.setLineWidth(2)
    canvas.line(36, letter[1] - 36, letter[0] - 36, letter[1] - 36)

    canvas.setFont('Helvetica-Bold', 10)
    canvas.setFillColor(GREEN_DARK)
    canvas.drawString(36, letter[1] - 30, 'MowerManager')

    if title:
        canvas.setFont('Helvetica', 9)
        canvas.setFillColor(TEXT_SECONDARY)
        canvas.drawRightString(letter[0] - 36, letter[1] - 30, title)

    canvas.setFont('Helvetica', 8)
    canvas.setFillColor(TEXT_SECONDARY)
    canvas.drawString(36, 24, f'Generated {datetime.now().strftime("%B %d, %Y at %I:%M %p")}')
    canvas.drawRightString(letter[0] - 36, 24, f'Page {doc.page}')

    canvas.restoreState()


def _new_doc(buffer):
    return SimpleDocTemplate(
        buffer,
        pagesize=letter,
        topMargin=50,
        bottomMargin=40,
        leftMargin=36,
        rightMargin=36
    )


def _fmt_date(value):
    return format_date(value) or '—'


def _fmt_money(value):
    if value in (None, ''):
        return '—'
    return f'${float(value):,.2f}'


def _fmt_days(days):
    if days is None:
        return '—'
    if days < 0:
        return f'{-days} days overdue'
    return f'in {days} days'


def _status_colors(status_col, statuses):
    """Per-row text colour commands for overdue / due-soon cells."""
    commands = []
    for i, status in enumerate(statuses, start=1):
        if status == 'overdue':
            commands.append(('TEXTCOLOR', (status_col, i), (status_col, i), RED))
        elif status == 'due_soon':
            commands.append(('TEXTCOLOR', (status_col, i), (status_col, i), AMBER))
    return commands


def generate_mower_service_report(mower, service_records, due_services, as_of=None):
    """Generate the service report for one mower.

    Args:
        mower: mower dict
        service_records: the mower's service history
        due_services: get_due_services() output for the mower
        as_of: date the due figures were computed for

    Returns:
        io.BytesIO buffer containing the PDF
    """
    buffer = io.BytesIO()
    styles = _get_styles()
    doc = _new_doc(buffer)
    as_of = as_of or date.today()
    name = mower_display_name(mower)

    elements = [
        Paragraph('Mower Service Report', styles['GreenTitle']),
        Paragraph(escape(name), styles['Subtitle']),
        Spacer(1, 4),
    ]

    info_data = [
        ['Serial:', mower.get('serial_number') or '—', 'Year:', str(mower.get('year') or '—')],
        ['Location:', mower.get('location') or '—', 'Status:', (mower.get('status') or '').capitalize()],
        ['Last service:', _fmt_date(mower.get('last_service_date')),
         'Next service:', _fmt_date(mower.get('next_service_date'))],
    ]
    info_table = Table(info_data, colWidths=[80, 180, 80, 180])
    info_table.setStyle(TableStyle([
        ('FONT', (0, 0), (0, -1), 'Helvetica-Bold', 10),
        ('FONT', (2, 0), (2, -1), 'Helvetica-Bold', 10),
        ('FONT', (1, 0), (1, -1), 'Helvetica', 10),
        ('FONT', (3, 0), (3, -1), 'Helvetica', 10),
        ('TEXTCOLOR', (0, 0), (0, -1), GREEN_DARK),
        ('TEXTCOLOR', (2, 0), (2, -1), GREEN_DARK),
        ('TOPPADDING', (0, 0), (-1, -1), 4),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 12))
    elements.append(HRFlowable(width='100%', color=GRAY_BORDER, thickness=1))

    # Due services
    elements.append(Paragraph(f'Recurring Service (as of {as_of.isoformat()})', styles['GreenHeading']))
    if due_services:
        due_rows = [['Service', 'Interval', 'Last done', 'Next due', 'When', 'Status']]
        for d in due_services:
            due_rows.append([
                d['service_type'].capitalize(),
                f"{d['interval_days']} days",
                _fmt_date(d['last_date']),
                _fmt_date(d['next_due']),
                _fmt_days(d['days_until_due']),
                STATUS_LABELS.get(d['status'], d['status']),
            ])
        due_table = Table(due_rows, colWidths=[90, 65, 80, 80, 110, 85], repeatRows=1)
        due_table.setStyle(TableStyle(
            _TABLE_STYLE + _status_colors(5, [d['status'] for d in due_services])
        ))
        elements.append(due_table)
    else:
        elements.append(Paragraph('No recurring services due in the next 12 months.', styles['Normal']))

    # History
    elements.append(Paragraph('Service History', styles['GreenHeading']))
    if service_records:
        hist_rows = [['Date', 'Type', 'Description', 'By', 'Cost']]
        total = 0.0
        for r in service_records:
            total += float(r.get('cost') or 0)
            hist_rows.append([
                _fmt_date(r.get('service_date')),
                (r.get('service_type') or '').capitalize(),
                Paragraph(escape(r.get('description') or ''), styles['SmallText']),
                (r.get('performed_by') or '')[:20],
                _fmt_money(r.get('cost')),
            ])
        hist_rows.append(['', '', '', 'Total', _fmt_money(total)])
        hist_table = Table(hist_rows, colWidths=[65, 75, 230, 90, 60], repeatRows=1)
        hist_table.setStyle(TableStyle(_TABLE_STYLE + [
            ('FONT', (0, -1), (-1, -1), 'Helvetica-Bold', 8),
            ('ALIGNMENT', (4, 1), (4, -1), 'RIGHT'),
        ]))
        elements.append(hist_table)
    else:
        elements.append(Paragraph('No service records logged.', styles['Normal']))

    doc.build(
        elements,
        onFirstPage=lambda c, d: _header_footer(c, d, name),
        onLaterPages=lambda c, d: _header_footer(c, d, name)
    )

    buffer.seek(0)
    return buffer


def generate_fleet_maintenance_report(fleet_stats, maintenance_list, as_of=None):
    """Generate the fleet-wide maintenance worklist report.

    Args:
        fleet_stats: get_fleet_stats() output
        maintenance_list: build_unified_maintenance_list() output
        as_of: date the list was computed for

    Returns:
        io.BytesIO buffer containing the PDF
    """
    buffer = io.BytesIO()
    styles = _get_styles()
    doc = _new_doc(buffer)
    as_of = as_of or date.today()

    elements = [
        Paragraph('Fleet Maintenance Report', styles['GreenTitle']),
        Paragraph(as_of.strftime('%B %d, %Y'), styles['Subtitle']),
        Spacer(1, 8),
        HRFlowable(width='100%', color=GREEN_DARK, thickness=2),
        Spacer(1, 8),
    ]

    summary_data = [
        ['Mowers:', str(fleet_stats.get('total', 0))],
        ['Active:', str(fleet_stats.get('active', 0))],
        ['In maintenance:', str(fleet_stats.get('maintenance', 0))],
        ['Retired:', str(fleet_stats.get('retired', 0))],
        ['Services due (30 days):', str(fleet_stats.get('upcoming_services', 0))],
        ['Services overdue:', str(fleet_stats.get('overdue_services', 0))],
    ]
    sum_table = Table(summary_data, colWidths=[160, 360])
    sum_table.setStyle(TableStyle([
        ('FONT', (0, 0), (0, -1), 'Helvetica-Bold', 11),
        ('FONT', (1, 0), (1, -1), 'Helvetica', 11),
        ('TEXTCOLOR', (0, 0), (0, -1), GREEN_DARK),
        ('TOPPADDING', (0, 0), (-1, -1), 4),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
    ]))
    elements.append(sum_table)

    elements.append(Paragraph('Maintenance Worklist', styles['GreenHeading']))
    if maintenance_list:
        rows = [['#', 'Mower', 'Item', 'Next due', 'When', 'Status']]
        for entry in maintenance_list:
            item = entry['type'].replace('_', ' ').capitalize()
            if entry.get('service_type'):
                item = f"{entry['service_type'].capitalize()} ({item.lower()})"
            rows.append([
                str(entry['priority']),
                entry['mower_name'][:30],
                item,
                _fmt_date(entry.get('next_due')),
                _fmt_days(entry.get('days_until_due')),
                STATUS_LABELS.get(entry['status'], entry['status']),
            ])
        table = Table(rows, colWidths=[20, 140, 140, 70, 85, 70], repeatRows=1)
        table.setStyle(TableStyle(
            _TABLE_STYLE + _status_colors(5, [e['status'] for e in maintenance_list])
        ))
        elements.append(table)
    else:
        elements.append(Paragraph('No maintenance due.', styles['Normal']))

    doc.build(
        elements,
        onFirstPage=lambda c, d: _header_footer(c, d, 'Fleet Maintenance'),
        onLaterPages=lambda c, d: _header_footer(c, d, 'Fleet Maintenance')
    )

    buffer.seek(0)
    return buffer
