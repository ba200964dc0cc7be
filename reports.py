"""
reports.py - Document and Financial Reports
Builds the two document report views from classified entries and renders
the currently filtered and sorted rows to PDF or Excel for download, plus
the monthly financial PDF of a branch.
"""

import calendar
import io
from datetime import date, datetime
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

import list_manager
from analytics import expenditure_figures, percentage
from config import Config
from entities import flatten_vehicles, EXPENSE_TYPES
from expiry import (
    classify, summarize, severity_for, vehicle_owner_name, parse_date,
    EMPLOYEE_DOCUMENTS, TEMP_EMPLOYEE_DOCUMENTS, BRANCH_DOCUMENTS, VEHICLE_DOCUMENTS,
    BUCKET_EXPIRED, BUCKET_CRITICAL, BUCKET_WARNING,
)


VIEW_EXPIRED = 'expired'
VIEW_EXPIRING = 'expiring'

CATEGORY_EMPLOYEE = 'employee'
CATEGORY_TEMP_EMPLOYEE = 'temp_employee'
CATEGORY_BRANCH = 'branch'
CATEGORY_VEHICLE = 'vehicle'

CATEGORY_LABELS = {
    CATEGORY_EMPLOYEE: 'Employee',
    CATEGORY_TEMP_EMPLOYEE: 'Temporary Employee',
    CATEGORY_BRANCH: 'Branch',
    CATEGORY_VEHICLE: 'Vehicle',
}

SEARCH_FIELDS = ('owner_name', 'owner_location')

SORT_TYPES = {
    'days_left': 'number',
    'days_overdue': 'number',
    'expiry_date': 'date',
}

# Fixed default ordering: most overdue first, soonest expiry first
DEFAULT_SORT = {
    VIEW_EXPIRED: ('days_overdue', list_manager.DESC),
    VIEW_EXPIRING: ('days_left', list_manager.ASC),
}


def collect_entries(today, branches=None, employees=None, temp_employees=None, include_vehicles=True):
    """Classify the documents of every entity kind into one flat entry list"""
    entries = []
    entries += classify(today, employees, EMPLOYEE_DOCUMENTS, category=CATEGORY_EMPLOYEE)
    entries += classify(today, temp_employees, TEMP_EMPLOYEE_DOCUMENTS, category=CATEGORY_TEMP_EMPLOYEE)
    entries += classify(today, branches, BRANCH_DOCUMENTS, category=CATEGORY_BRANCH)
    if include_vehicles:
        entries += classify(
            today, flatten_vehicles(branches), VEHICLE_DOCUMENTS,
            category=CATEGORY_VEHICLE, owner_name=vehicle_owner_name
        )
    return entries


def _view(entries, view, search='', type_filter='all', category='all', page=1,
          page_size=None, sort_key=None, sort_dir=None):
    if view == VIEW_EXPIRED:
        source = [e for e in entries if e['bucket'] == BUCKET_EXPIRED]
    else:
        source = [e for e in entries if e['bucket'] in (BUCKET_CRITICAL, BUCKET_WARNING)]

    default_key, default_dir = DEFAULT_SORT[view]
    return list_manager.apply(
        source,
        search=search,
        search_fields=SEARCH_FIELDS,
        filters={'type_key': type_filter, 'category': category},
        sort_key=sort_key or default_key,
        sort_dir=sort_dir or default_dir,
        page=page,
        page_size=page_size or Config.EXPIRY_ROWS_PER_PAGE,
        sort_types=SORT_TYPES,
    )


def expired_view(entries, search='', type_filter='all', category='all', page=1,
                 page_size=None, sort_key=None, sort_dir=None):
    """Expired documents, most overdue first unless another column is chosen"""
    return _view(entries, VIEW_EXPIRED, search, type_filter, category, page, page_size, sort_key, sort_dir)


def expiring_view(entries, search='', type_filter='all', category='all', page=1,
                  page_size=None, sort_key=None, sort_dir=None):
    """Documents expiring within the warning window, soonest first"""
    return _view(entries, VIEW_EXPIRING, search, type_filter, category, page, page_size, sort_key, sort_dir)


def report_rows(entries, view, **options):
    """All rows of a view after search, filter and sort (no pagination)"""
    options.pop('page', None)
    builder = expired_view if view == VIEW_EXPIRED else expiring_view
    return builder(entries, **options)['rows']


def document_type_options(entries):
    """(type_key, label) pairs present in the entries, for the type filter"""
    options = {}
    for entry in entries:
        options.setdefault(entry['type_key'], entry['document_type'])
    return list(options.items())


def expiry_overview(entries):
    """Summary counts for the report header cards"""
    summary = summarize(entries)
    return {
        'expired': len(summary['expired']),
        'expiring': len(summary['expiring']),
        'critical': summary['critical'],
        'warning': summary['warning'],
        'valid': summary['valid'],
        'tracked': summary['tracked'],
        'by_type': summary['by_type'],
    }


# =============================================================================
# EXPORT
# =============================================================================

def rows_to_dataframe(rows, view):
    """Tabular form of report rows, in the given order"""
    records = []
    for row in rows:
        record = {
            'Owner': row['owner_name'],
            'Category': CATEGORY_LABELS.get(row.get('category'), row.get('category') or ''),
            'Location': row.get('owner_location') or '',
            'Document': row['document_type'],
            'Number': row.get('number') or 'N/A',
            'Expiry Date': row['expiry_date'].strftime('%d %b %Y'),
        }
        if view == VIEW_EXPIRED:
            record['Days Overdue'] = row['days_overdue']
        else:
            record['Days Left'] = row['days_left']
            record['Severity'] = severity_for(row['days_left']).title()
        records.append(record)

    columns = ['Owner', 'Category', 'Location', 'Document', 'Number', 'Expiry Date']
    columns += ['Days Overdue'] if view == VIEW_EXPIRED else ['Days Left', 'Severity']
    return pd.DataFrame(records, columns=columns)


def generate_expiry_pdf(rows, report_title, filters, username, view):
    """Generate a PDF of the given report rows"""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4),
                            leftMargin=0.5*inch, rightMargin=0.5*inch,
                            topMargin=0.6*inch, bottomMargin=0.6*inch)

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'ReportTitle',
        parent=styles['Heading1'],
        fontSize=18,
        textColor=colors.HexColor('#1e3a8a'),
        spaceAfter=6,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    subtitle_style = ParagraphStyle(
        'ReportSubtitle',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#475569'),
        alignment=TA_CENTER,
        spaceAfter=12
    )

    elements.append(Paragraph(Config.COMPANY_NAME, title_style))
    elements.append(Paragraph(report_title, title_style))
    elements.append(Spacer(1, 0.15*inch))

    report_date = datetime.now().strftime("%B %d, %Y at %H:%M")
    elements.append(Paragraph(f"Generated: {report_date} | By: {username}", subtitle_style))

    if filters:
        filter_text = "Filters: " + ", ".join([f"{k}: {v}" for k, v in filters.items()])
        elements.append(Paragraph(filter_text, styles['Normal']))
        elements.append(Spacer(1, 0.15*inch))

    df = rows_to_dataframe(rows, view)
    if not df.empty:
        table_data = [list(df.columns)]
        for record in df.itertuples(index=False):
            table_data.append([str(value)[:28] for value in record])

        header_color = '#dc2626' if view == VIEW_EXPIRED else '#d97706'
        table = Table(table_data, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(header_color)),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f8fafc')])
        ]))
        elements.append(table)
        elements.append(Spacer(1, 0.2*inch))
        elements.append(Paragraph(f"Total Records: {len(df)}", styles['Normal']))
    else:
        elements.append(Paragraph("No records found.", styles['Normal']))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def generate_expiry_excel(rows, view):
    """Excel workbook of the given report rows"""
    buffer = io.BytesIO()
    sheet = 'Expired' if view == VIEW_EXPIRED else 'Expiring Soon'
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        rows_to_dataframe(rows, view).to_excel(writer, sheet_name=sheet, index=False)
    buffer.seek(0)
    return buffer


# =============================================================================
# BRANCH MONTHLY FINANCIAL REPORT
# =============================================================================

def _money(value):
    return f"{Config.CURRENCY} {value:,.2f}"


def _amount_table(title, amounts, header_color, empty_text):
    """Two column category / amount table with a closing total row"""
    data = [[title, 'Amount']]
    data += [[name[:40], _money(amount)] for name, amount in amounts.items()] or [[empty_text, _money(0)]]
    data.append(['TOTAL', _money(sum(amounts.values()))])

    table = Table(data, colWidths=[3.2*inch, 1.8*inch], repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(header_color)),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#f1f5f9')),
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ]))
    return table


def generate_branch_month_pdf(branch_name, month, year, summary, username):
    """
    Monthly financial report of one branch.

    Args:
        branch_name: Branch shown in the heading
        month, year: Reported calendar month
        summary: expenditure_summary of that branch and month
        username: Shown in the generated-by line
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4,
                            leftMargin=0.6*inch, rightMargin=0.6*inch,
                            topMargin=0.6*inch, bottomMargin=0.6*inch)

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'BranchTitle',
        parent=styles['Heading1'],
        fontSize=18,
        textColor=colors.HexColor('#1e3a8a'),
        spaceAfter=6,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    subtitle_style = ParagraphStyle(
        'BranchSubtitle',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#475569'),
        alignment=TA_CENTER,
        spaceAfter=12
    )

    section_style = ParagraphStyle(
        'BranchSection',
        parent=styles['Heading2'],
        fontSize=12,
        textColor=colors.HexColor('#dc2626'),
        spaceBefore=10,
        spaceAfter=6
    )

    period = f"{calendar.month_name[int(month)]} {year}"
    elements.append(Paragraph(escape(branch_name or 'All Branches'), title_style))
    elements.append(Paragraph(f"Monthly Financial Report - {period}", title_style))
    report_date = datetime.now().strftime("%B %d, %Y at %H:%M")
    elements.append(Paragraph(f"{Config.COMPANY_NAME} | Generated: {report_date} | By: {username}", subtitle_style))

    earnings = summary['total_earnings']
    totals = Table([
        ['Total Income', 'Total Expenses', 'Net Profit' if earnings >= 0 else 'Net Loss'],
        [_money(summary['total_income']), _money(summary['total_expenses']), _money(abs(earnings))],
    ], colWidths=[2.3*inch] * 3)
    totals.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (0, 0), colors.HexColor('#16a34a')),
        ('BACKGROUND', (1, 0), (1, 0), colors.HexColor('#dc2626')),
        ('BACKGROUND', (2, 0), (2, 0), colors.HexColor('#2563eb' if earnings >= 0 else '#f97316')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 1), (-1, 1), 12),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
    ]))
    elements.append(totals)

    elements.append(Paragraph("Revenue Breakdown", section_style))
    revenue = dict(summary['by_platform'])
    revenue['Own Delivery'] = summary['delivery_money']
    elements.append(_amount_table('Source', revenue, '#1e40af', 'No delivery takings'))

    income = summary['total_income']
    normal_profit = round(100 - percentage(summary['normal_expenses'], income), 1) if income else 0.0
    kpis = Table([
        ['Profit Margin (Normal Exp)', 'Profit Margin (All Exp)', 'Avg Daily Revenue', 'Avg Daily Expenses',
         'Net Income Margin'],
        [f"{normal_profit}%", f"{summary['profit_percentage']}%", _money(summary['avg_income']),
         _money(summary['avg_expenses']), f"{percentage(abs(earnings), income)}%"],
    ])
    kpis.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#e2e8f0')),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 7),
        ('FONTSIZE', (0, 1), (-1, 1), 9),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ]))
    elements.append(Paragraph("Key Performance Indicators", section_style))
    elements.append(kpis)

    elements.append(Paragraph("Expense Breakdown", section_style))
    split = summary['by_expense_type']
    elements.append(_amount_table('Normal Expenses', split.get(EXPENSE_TYPES[0], {}), '#f97316',
                                  'No normal expenses'))
    elements.append(Spacer(1, 0.15*inch))
    elements.append(_amount_table('General Expenses', split.get(EXPENSE_TYPES[1], {}), '#ec4899',
                                  'No general expenses'))

    elements.append(Paragraph("Daily Records", section_style))
    records = sorted(summary['records'], key=lambda e: parse_date(e.get('date')) or date.min)
    if records:
        data = [['Date', 'Income', 'Expenses', 'Online Delivery', 'Earnings']]
        for record in records:
            figures = expenditure_figures(record)
            day = parse_date(record.get('date'))
            data.append([day.isoformat() if day else '', _money(figures['income']), _money(figures['expenses']),
                         _money(figures['online_delivery']), _money(figures['earnings'])])
        table = Table(data, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1e3a8a')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f8fafc')])
        ]))
        elements.append(table)
        elements.append(Spacer(1, 0.2*inch))
        elements.append(Paragraph(f"Total Records: {len(records)}", styles['Normal']))
    else:
        elements.append(Paragraph(f"No records found for {period}.", styles['Normal']))

    doc.build(elements)
    buffer.seek(0)
    return buffer
