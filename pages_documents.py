"""
pages_documents.py - Document Expiry Reports
Expired and expiring-soon documents across employees, temporary employees,
branches and vehicles. Each report has its own search, type filter, sort
and page; downloads contain exactly the filtered and sorted rows.
"""

from datetime import date

import streamlit as st

from audit_logger import AuditLogger
from auth import get_store
from config import Config
from expiry import severity_for
from reports import (
    collect_entries, expired_view, expiring_view, report_rows, rows_to_dataframe,
    document_type_options, expiry_overview, generate_expiry_pdf, generate_expiry_excel,
    VIEW_EXPIRED, VIEW_EXPIRING, DEFAULT_SORT, CATEGORY_LABELS,
)
from table_styles import (
    get_list_state, render_search_box, render_filter_select, render_sort_control,
    render_pagination, render_summary_cards, render_styled_table,
)


VIEWS = {
    VIEW_EXPIRED: {
        'title': 'Expired Documents',
        'icon': '🔴',
        'builder': expired_view,
        'columns': {'days_overdue': 'Days Overdue', 'expiry_date': 'Expiry Date',
                    'owner_name': 'Owner', 'document_type': 'Document'},
    },
    VIEW_EXPIRING: {
        'title': 'Expiring Soon (next 30 days)',
        'icon': '🟠',
        'builder': expiring_view,
        'columns': {'days_left': 'Days Left', 'expiry_date': 'Expiry Date',
                    'owner_name': 'Owner', 'document_type': 'Document'},
    },
}


def document_expiry_page():
    """Expired / expiring document report page"""
    st.header("📄 Document Expiry")
    st.markdown("Documents that have expired or expire within the next 30 days")
    st.markdown("---")

    store = get_store()
    today = date.today()
    include_vehicles = st.checkbox("Include vehicle documents", value=True, key="expiry_include_vehicles")
    entries = collect_entries(today, store['branches'], store['employees'], store['temp_employees'],
                              include_vehicles=include_vehicles)

    overview = expiry_overview(entries)
    render_summary_cards([
        {'label': 'Expired', 'value': overview['expired'], 'icon': '🔴'},
        {'label': 'Critical (≤7 days)', 'value': overview['critical'], 'icon': '🟠'},
        {'label': 'Warning (8-30 days)', 'value': overview['warning'], 'icon': '🟡'},
        {'label': 'Tracked Documents', 'value': overview['tracked'], 'icon': '📄'},
    ])
    st.markdown("---")

    tab1, tab2 = st.tabs([
        f"🔴 Expired ({overview['expired']})", f"🟠 Expiring Soon ({overview['expiring']})"
    ])
    with tab1:
        _report(entries, VIEW_EXPIRED)
    with tab2:
        _report(entries, VIEW_EXPIRING)


def _report(entries, view):
    config = VIEWS[view]
    key = f"expiry_{view}"
    default_key, default_dir = DEFAULT_SORT[view]
    state = get_list_state(key, sort_key=default_key, sort_dir=default_dir,
                           filters={'type_key': 'all', 'category': 'all'})

    types = dict(document_type_options(entries))
    col1, col2, col3 = st.columns(3)
    with col1:
        render_search_box(state, key, placeholder="Owner name or location...")
    with col2:
        render_filter_select(state, key, 'type_key', "Document Type", list(types),
                             format_func=lambda v: 'All' if v == 'all' else types.get(v, v))
    with col3:
        render_filter_select(state, key, 'category', "Category", list(CATEGORY_LABELS),
                             format_func=lambda v: 'All' if v == 'all' else CATEGORY_LABELS[v])
    render_sort_control(state, key, config['columns'])

    options = {
        'search': state.search,
        'type_filter': state.filters.get('type_key', 'all'),
        'category': state.filters.get('category', 'all'),
        'page_size': Config.EXPIRY_ROWS_PER_PAGE,
        'sort_key': state.sort_key,
        'sort_dir': state.sort_dir,
    }
    result = config['builder'](entries, page=state.page, **options)
    if result['total_pages'] and state.page > result['total_pages']:
        state.go_to(state.page, result['total_pages'])
        result = config['builder'](entries, page=state.page, **options)

    if not result['total']:
        st.success(f"✅ No {config['title'].lower()}")
        return

    df = rows_to_dataframe(result['page'], view)
    if view == VIEW_EXPIRING:
        render_styled_table(df, badge_column='Severity', badge_for=lambda value: str(value).lower())
    else:
        render_styled_table(df, badge_column='Days Overdue', badge_for=lambda value: 'expired')
    render_pagination(state, result, key, Config.EXPIRY_ROWS_PER_PAGE)

    _downloads(entries, view, options)


def _downloads(entries, view, options):
    config = VIEWS[view]
    rows = report_rows(entries, view, **options)
    user = st.session_state.get('user') or {}
    username = user.get('name') or user.get('email') or 'Unknown'

    filters = {}
    if options['search']:
        filters['Search'] = options['search']
    if options['type_filter'] != 'all':
        filters['Type'] = options['type_filter']
    if options['category'] != 'all':
        filters['Category'] = CATEGORY_LABELS.get(options['category'], options['category'])

    st.markdown("---")
    critical = sum(1 for row in rows if view == VIEW_EXPIRING and severity_for(row['days_left']) == 'critical')
    st.caption(f"Download includes all {len(rows)} matching row(s)"
               + (f", {critical} critical" if critical else ""))

    col1, col2 = st.columns(2)
    stamp = date.today().isoformat()
    with col1:
        pdf = generate_expiry_pdf(rows, config['title'], filters, username, view)
        if st.download_button("📄 Download PDF", pdf, file_name=f"{view}_documents_{stamp}.pdf",
                              mime="application/pdf", key=f"{view}_pdf"):
            AuditLogger.log_data_export(AuditLogger.MODULE_DOCUMENTS, len(rows), 'PDF')
    with col2:
        excel = generate_expiry_excel(rows, view)
        if st.download_button("📊 Download Excel", excel, file_name=f"{view}_documents_{stamp}.xlsx",
                              mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                              key=f"{view}_excel"):
            AuditLogger.log_data_export(AuditLogger.MODULE_DOCUMENTS, len(rows), 'Excel')
