"""
pages_expenditures.py - Daily Expenditures
Branch income, expense lines and online delivery takings per day, with
monthly totals, profit margins, category and platform breakdowns and a
downloadable branch report. Managers only see their own branch.
"""

import calendar
from datetime import date

import streamlit as st
import pandas as pd
import plotly.express as px

from analytics import expenditure_summary, expenditure_figures, expenditure_branch, branch_expenditures
from audit_logger import AuditLogger
from auth import get_store, get_user_branch, handle_api_error
from config import Config
from entities import expenditure_payload, branches_for_user, record_id, EXPENSE_TYPES, DELIVERY_PLATFORMS, NA
from errors import ApiError, ValidationError
from expiry import parse_date
from list_manager import DESC
from reports import generate_branch_month_pdf
from table_styles import (
    get_list_state, render_search_box, render_filter_select, render_sort_control,
    render_pagination, render_summary_cards, format_currency, format_percentage, format_date,
    style_dataframe,
)


SEARCH_FIELDS = ('branchName', 'date')
SORT_COLUMNS = {'date': 'Date', 'branchName': 'Branch', 'income': 'Income', 'totalExpenses': 'Expenses',
                'earnings': 'Earnings'}
SORT_TYPES = {'date': 'date', 'income': 'number', 'totalExpenses': 'number', 'earnings': 'number'}

ACCESSORS = {
    'branchName': expenditure_branch,
    'totalExpenses': lambda e: expenditure_figures(e)['expenses'],
    'earnings': lambda e: expenditure_figures(e)['earnings'],
}


def expenditures_page():
    """Daily expenditure management page"""
    st.header("💰 Daily Expenditures")
    st.markdown("Record and review branch income and expenses")
    st.markdown("---")

    store = get_store()
    user_branch = get_user_branch()
    branches = branches_for_user(store['branches'], user_branch)
    if user_branch is None:
        expenditures = store['expenditures']
    else:
        expenditures = branch_expenditures(store['expenditures'], branches)
        if branches:
            st.caption(f"Showing records of {branches[0].get('name')}")

    tab1, tab2, tab3 = st.tabs(["📋 Records", "➕ Add Daily Record", "📊 Summary"])

    with tab1:
        _record_list(expenditures, branches, pinned=user_branch is not None)

    with tab2:
        if not branches and user_branch is not None:
            st.warning(f"Your account is linked to branch '{user_branch or NA}', which does not exist. "
                       "Ask an administrator to update your profile.")
        elif not branches:
            st.warning("Add a branch before recording expenditures")
        else:
            form, submitted = _expenditure_form("new_expenditure", {}, branches)
            if submitted and _save_expenditure(form, branches):
                st.session_state.pop("new_expenditure_expense_rows", None)
                st.success("✅ Daily record saved")
                st.rerun()

    with tab3:
        _summary(expenditures, branches)


def _record_list(expenditures, branches, pinned=False):
    state = get_list_state('expenditures', sort_key='date', sort_dir=DESC, filters={'branchName': 'all'})

    col1, col2 = st.columns([3, 1])
    with col1:
        render_search_box(state, 'expenditures', placeholder="Branch or date (YYYY-MM-DD)...")
    with col2:
        if pinned:
            # Records are already limited to the manager's branch
            state.set_filter('branchName', 'all')
            st.text_input("Branch", value=branches[0].get('name') if branches else NA, disabled=True)
        else:
            render_filter_select(state, 'expenditures', 'branchName', "Branch",
                                 [b['name'] for b in branches if b.get('name') not in (None, NA)])
    render_sort_control(state, 'expenditures', SORT_COLUMNS)

    result = state.apply(expenditures, SEARCH_FIELDS, Config.EXPENDITURES_PER_PAGE, ACCESSORS, SORT_TYPES)
    if not result['total']:
        st.info("No expenditure records found")
        return

    for record in result['page']:
        figures = expenditure_figures(record)
        title = (f"{expenditure_branch(record) or NA} · {format_date(record.get('date'))} · "
                 f"income {format_currency(figures['income'])} · earnings {format_currency(figures['earnings'])}")
        with st.expander(title):
            col1, col2, col3 = st.columns(3)
            with col1:
                st.metric("Income", format_currency(figures['income']))
            with col2:
                st.metric("Expenses", format_currency(figures['expenses']))
            with col3:
                st.metric("Online Delivery", format_currency(figures['online_delivery']))

            lines = [e for e in record.get('expenses') or [] if isinstance(e, dict)]
            if lines:
                st.dataframe(style_dataframe(pd.DataFrame(lines), currency_columns=['amount']),
                             use_container_width=True, hide_index=True)
            _record_actions(record, branches)

    render_pagination(state, result, 'expenditures', Config.EXPENDITURES_PER_PAGE)


def _record_actions(record, branches):
    record_key = record_id(record)
    edit_key = f"edit_expenditure_{record_key}"
    label = f"{expenditure_branch(record)} {format_date(record.get('date'))}"

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✏️ Edit", key=f"btn_{edit_key}"):
            st.session_state[edit_key] = not st.session_state.get(edit_key, False)
    with col2:
        if st.button("🗑️ Delete", key=f"delete_expenditure_{record_key}"):
            try:
                get_store().delete('expenditures', record_key)
            except ApiError as e:
                handle_api_error(e, "delete expenditure")
                return
            AuditLogger.log_record_action(AuditLogger.ACTION_DELETE, AuditLogger.MODULE_EXPENDITURE,
                                          label, record_key, old_values=record)
            st.success("Record deleted")
            st.rerun()

    if st.session_state.get(edit_key):
        form, submitted = _expenditure_form(edit_key, record, branches)
        if submitted and _save_expenditure(form, branches, record):
            st.session_state[edit_key] = False
            st.session_state.pop(f"{edit_key}_expense_rows", None)
            st.success("✅ Record updated")
            st.rerun()


def _number(value):
    try:
        return max(float(value or 0), 0.0)
    except (ValueError, TypeError):
        return 0.0


def _expenditure_form(form_key, record, branches):
    branch_ids = [record_id(b) for b in branches]
    names = {record_id(b): b.get('name') or NA for b in branches}

    deliveries = [d for d in record.get('onlineDeliveries') or [] if isinstance(d, dict)]
    recorded = {d.get('platform') for d in deliveries}
    deliveries += [{'platform': p} for p in DELIVERY_PLATFORMS if p not in recorded]

    expenses = [e for e in record.get('expenses') or [] if isinstance(e, dict)]
    rows_key = f"{form_key}_expense_rows"
    if rows_key not in st.session_state:
        st.session_state[rows_key] = max(len(expenses), 1)
    if st.button("➕ Add expense line", key=f"{form_key}_add_line"):
        st.session_state[rows_key] += 1
    expenses += [{}] * (st.session_state[rows_key] - len(expenses))

    form = {'onlineDeliveries': [], 'expenses': []}
    with st.form(form_key):
        col1, col2, col3 = st.columns(3)
        with col1:
            current = record.get('branchId')
            form['branchId'] = st.selectbox("Branch*", branch_ids,
                                            index=branch_ids.index(current) if current in branch_ids else 0,
                                            format_func=lambda branch_id: names.get(branch_id, NA))
        with col2:
            form['date'] = st.date_input("Date*", value=parse_date(record.get('date')) or date.today())
        with col3:
            form['income'] = st.number_input("Income", min_value=0.0, step=10.0,
                                             value=_number(record.get('income')))

        st.markdown("#### 🛵 Online Deliveries")
        for i, delivery in enumerate(deliveries):
            col1, col2, col3 = st.columns([1, 1, 2])
            with col1:
                platform = st.text_input("Platform", value=delivery.get('platform') or '', key=f"{form_key}_dp_{i}")
            with col2:
                amount = st.number_input("Amount", min_value=0.0, step=10.0, value=_number(delivery.get('amount')),
                                         key=f"{form_key}_da_{i}")
            with col3:
                description = st.text_input("Description", value=delivery.get('description') or '',
                                            key=f"{form_key}_dd_{i}")
            form['onlineDeliveries'].append({'platform': platform, 'amount': amount, 'description': description})
        form['deliveryMoney'] = st.number_input("Delivery Money", min_value=0.0, step=10.0,
                                                value=_number(record.get('deliveryMoney')))

        st.markdown("#### 🧾 Expenses")
        types = list(EXPENSE_TYPES)
        for i, expense in enumerate(expenses):
            col1, col2, col3, col4 = st.columns([2, 1, 1, 2])
            with col1:
                category = st.text_input("Category", value=expense.get('category') or '', key=f"{form_key}_ec_{i}")
            with col2:
                amount = st.number_input("Amount", min_value=0.0, step=10.0, value=_number(expense.get('amount')),
                                         key=f"{form_key}_ea_{i}")
            with col3:
                current_type = expense.get('type')
                expense_type = st.selectbox("Type", types,
                                            index=types.index(current_type) if current_type in types else 0,
                                            key=f"{form_key}_et_{i}")
            with col4:
                description = st.text_input("Description", value=expense.get('description') or '',
                                            key=f"{form_key}_ed_{i}")
            form['expenses'].append({'category': category, 'amount': amount, 'type': expense_type,
                                     'description': description})

        submitted = st.form_submit_button("💾 Save Record", use_container_width=True)

    return form, submitted


def _save_expenditure(form, branches, record=None):
    try:
        payload = expenditure_payload(form, branches)
    except ValidationError as e:
        st.error(f"❌ {e}")
        return False

    store = get_store()
    try:
        if record is None:
            store.create('expenditures', payload)
        else:
            store.update('expenditures', record_id(record), payload)
    except ApiError as e:
        handle_api_error(e, "save expenditure")
        return False

    action = AuditLogger.ACTION_ADD if record is None else AuditLogger.ACTION_EDIT
    AuditLogger.log_record_action(
        action, AuditLogger.MODULE_EXPENDITURE, f"{payload['branchName']} {payload['date']}",
        record_id(record) if record else None,
        details=f"income {format_currency(payload['income'])}, expenses {format_currency(payload['totalExpenses'])}",
        new_values=payload
    )
    return True


def _summary(expenditures, branches):
    today = date.today()
    options = ([] if len(branches) == 1 else ['all']) + [record_id(b) for b in branches]
    names = {record_id(b): b.get('name') or NA for b in branches}

    col1, col2, col3 = st.columns([2, 1, 1])
    with col1:
        branch = st.selectbox("Branch", options,
                              format_func=lambda v: 'All Branches' if v == 'all' else names.get(v, NA),
                              key="expenditure_summary_branch")
    with col2:
        month = st.selectbox("Month", list(range(1, 13)), index=today.month - 1,
                             format_func=lambda m: calendar.month_name[m], key="expenditure_summary_month")
    with col3:
        years = sorted({day.year for day in (parse_date(e.get('date')) for e in expenditures) if day} | {today.year},
                       reverse=True)
        year = st.selectbox("Year", years, index=years.index(today.year), key="expenditure_summary_year")

    period = f"{calendar.month_name[month]} {year}"
    summary = expenditure_summary(expenditures, branch, month=month, year=year)
    st.markdown(f"#### {period}")
    render_summary_cards([
        {'label': 'Total Income', 'value': summary['total_income'], 'is_currency': True},
        {'label': 'Total Expenses', 'value': summary['total_expenses'], 'is_currency': True},
        {'label': 'Earnings', 'value': summary['total_earnings'], 'is_currency': True},
        {'label': 'Records', 'value': summary['record_count']},
    ])
    render_summary_cards([
        {'label': 'Expense Ratio', 'value': format_percentage(summary['expense_percentage'])},
        {'label': 'Profit Margin', 'value': format_percentage(summary['profit_percentage'])},
        {'label': 'Normal Expenses', 'value': summary['normal_expenses'], 'is_currency': True},
        {'label': 'Online Delivery', 'value': summary['online_delivery'], 'is_currency': True},
    ])

    if not summary['record_count']:
        st.info(f"No records found for {period}")
        return

    col1, col2 = st.columns(2)
    with col1:
        if summary['by_category']:
            fig = px.pie(names=list(summary['by_category']), values=list(summary['by_category'].values()),
                         title='Expenses by Category', hole=0.4)
            st.plotly_chart(fig, use_container_width=True)
    with col2:
        if summary['by_platform']:
            fig = px.bar(x=list(summary['by_platform']), y=list(summary['by_platform'].values()),
                         labels={'x': 'Platform', 'y': 'Amount'}, title='Online Deliveries by Platform')
            st.plotly_chart(fig, use_container_width=True)

    df = pd.DataFrame([
        {'Branch': name, 'Income': row['income'], 'Expenses': row['expenses'],
         'Earnings': row['earnings'], 'Records': row['records']}
        for name, row in summary['by_branch'].items()
    ])
    fig = px.bar(df.melt(id_vars='Branch', value_vars=['Income', 'Expenses', 'Earnings'],
                         var_name='Type', value_name='Amount'),
                 x='Branch', y='Amount', color='Type', barmode='group', title='Branch Performance')
    st.plotly_chart(fig, use_container_width=True)

    st.dataframe(style_dataframe(df, currency_columns=['Income', 'Expenses', 'Earnings']),
                 use_container_width=True, hide_index=True)

    stamp = f"{year}_{month:02d}"
    col1, col2 = st.columns(2)
    with col1:
        if st.download_button("📄 Download CSV", df.to_csv(index=False).encode('utf-8'),
                              file_name=f"expenditure_summary_{stamp}.csv", mime="text/csv"):
            AuditLogger.log_data_export(AuditLogger.MODULE_EXPENDITURE, len(df), 'CSV')
    with col2:
        if branch != 'all':
            user = st.session_state.get('user') or {}
            username = user.get('name') or user.get('email') or 'Unknown'
            branch_name = names.get(branch, NA)
            pdf = generate_branch_month_pdf(branch_name, month, year, summary, username)
            if st.download_button("📑 Download Branch Report", pdf,
                                  file_name=f"{branch_name.replace(' ', '_')}_{stamp}.pdf",
                                  mime="application/pdf", key="expenditure_branch_pdf"):
                AuditLogger.log_data_export(AuditLogger.MODULE_EXPENDITURE, summary['record_count'], 'PDF')
        else:
            st.caption("Pick a branch to download its monthly report")
