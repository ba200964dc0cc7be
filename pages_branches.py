"""
pages_branches.py - Branch Management
Branch directory with staff counts and licence status, add / edit / delete
and branch analytics.
"""

from datetime import date

import streamlit as st
import pandas as pd
import plotly.express as px

from analytics import branch_analytics, branch_document_status, distribution
from audit_logger import AuditLogger
from auth import get_store, handle_api_error
from config import Config
from entities import BranchIndex, branch_payload, record_id, NA
from errors import ApiError, ValidationError
from expiry import parse_date
from list_manager import filter_options
from table_styles import (
    get_list_state, render_search_box, render_filter_select, render_sort_control,
    render_pagination, render_summary_cards, format_date,
)


SEARCH_FIELDS = ('name', 'location', 'manager', 'contactNumber')
SORT_COLUMNS = {
    'name': 'Name', 'location': 'Location', 'employeeCount': 'Employees',
    'vehicleCount': 'Vehicles', 'crExpiry': 'CR Expiry',
}
SORT_TYPES = {'employeeCount': 'number', 'vehicleCount': 'number', 'crExpiry': 'date'}

DOCUMENT_FIELDS = [
    ('crNumber', 'crExpiry', 'Company CR'),
    ('ruksaNumber', 'ruksaExpiry', 'Ruksa License'),
    ('computerCardNumber', 'computerCardExpiry', 'Computer Card'),
    ('certificationNumber', 'certificationExpiry', 'Certification'),
]


def branch_accessors(index):
    """Derived columns resolved through the branch index"""
    return {
        'employeeCount': lambda branch: index.employee_count(record_id(branch)),
        'vehicleCount': lambda branch: len(branch.get('vehicles') or []),
    }


def branches_page():
    """Branch management page"""
    st.header("🏢 Branch Management")
    st.markdown("Manage branches, their licences and assigned staff")
    st.markdown("---")

    store = get_store()
    branches = store['branches']
    people = store['employees'] + store['temp_employees']
    index = BranchIndex(branches, people)

    tab1, tab2, tab3 = st.tabs(["🏢 All Branches", "➕ Add Branch", "📊 Analytics"])

    with tab1:
        _directory(branches, index)

    with tab2:
        form, submitted = _branch_form("new_branch", None)
        if submitted and _save_branch(form):
            st.success(f"✅ Branch {form.get('name')} added successfully!")
            st.rerun()

    with tab3:
        _analytics(branches, store['employees'])


def _directory(branches, index):
    state = get_list_state('branches', sort_key='name', filters={'location': 'all'})
    accessors = branch_accessors(index)

    col1, col2 = st.columns([3, 1])
    with col1:
        render_search_box(state, 'branches', placeholder="Name, location, manager...")
    with col2:
        render_filter_select(state, 'branches', 'location', "Location", filter_options(branches, 'location'))
    render_sort_control(state, 'branches', SORT_COLUMNS)

    result = state.apply(branches, SEARCH_FIELDS, Config.BRANCHES_PER_PAGE, accessors, SORT_TYPES)
    st.caption(f"{result['total']} of {len(branches)} branch(es)")

    if not result['total']:
        st.info("No branches found")
        return

    today = date.today()
    for branch in result['page']:
        branch_id = record_id(branch)
        status = branch_document_status(branch, today)
        title = f"🏢 {branch['name']} - {branch['location']} · {index.employee_count(branch_id)} staff"
        if status['expired'] or status['expiring']:
            title += f" ⚠️ {status['expired']} expired, {status['expiring']} expiring"

        with st.expander(title):
            col1, col2, col3 = st.columns(3)
            with col1:
                st.markdown(f"**Manager:** {branch.get('manager')}")
                st.markdown(f"**Contact:** {branch.get('contactNumber')}")
                st.markdown(f"**Address:** {branch.get('address') or NA}")
            with col2:
                for number_field, expiry_field, label in DOCUMENT_FIELDS:
                    st.markdown(f"**{label}:** {branch.get(number_field) or NA} "
                                f"(expires {format_date(branch.get(expiry_field))})")
            with col3:
                st.markdown(f"**Vehicles:** {len(branch.get('vehicles') or [])}")
                members = index.members_of(branch_id)
                if members:
                    st.markdown("**Staff:** " + ", ".join(m.get('name') or NA for m in members[:10]))
                    if len(members) > 10:
                        st.caption(f"and {len(members) - 10} more")

            _branch_actions(branch)

    render_pagination(state, result, 'branches', Config.BRANCHES_PER_PAGE)


def _branch_actions(branch):
    branch_id = record_id(branch)
    edit_key = f"edit_branch_{branch_id}"

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✏️ Edit", key=f"btn_{edit_key}"):
            st.session_state[edit_key] = not st.session_state.get(edit_key, False)
    with col2:
        if st.button("🗑️ Delete", key=f"delete_branch_{branch_id}"):
            try:
                get_store().delete('branches', branch_id)
            except ApiError as e:
                handle_api_error(e, f"delete branch {branch['name']}")
                return
            AuditLogger.log_record_action(AuditLogger.ACTION_DELETE, AuditLogger.MODULE_BRANCH,
                                          branch['name'], branch_id)
            st.success(f"Deleted branch {branch['name']}")
            st.rerun()

    if st.session_state.get(edit_key):
        form, submitted = _branch_form(edit_key, branch)
        if submitted and _save_branch(form, branch):
            st.session_state[edit_key] = False
            st.success(f"✅ Branch {form.get('name')} updated")
            st.rerun()


def _branch_form(form_key, branch):
    branch = branch or {}

    def current(key):
        value = branch.get(key)
        return '' if value in (None, NA) else value

    form = {'vehicles': branch.get('vehicles') or []}
    with st.form(form_key):
        st.markdown("#### 🏢 Branch Details")
        col1, col2 = st.columns(2)
        with col1:
            form['name'] = st.text_input("Branch Name*", value=current('name'))
            form['location'] = st.text_input("Location*", value=current('location'))
            form['address'] = st.text_input("Address", value=current('address'))
            form['manager'] = st.text_input("Manager", value=current('manager'))
        with col2:
            form['contactNumber'] = st.text_input("Contact Number", value=current('contactNumber'))
            form['email'] = st.text_input("Email", value=current('email'))
            form['bankName'] = st.text_input("Bank Name", value=current('bankName'))
            form['ibanNumber'] = st.text_input("IBAN", value=current('ibanNumber'))

        st.markdown("#### 📄 Licences")
        for number_field, expiry_field, label in DOCUMENT_FIELDS:
            col3, col4 = st.columns(2)
            with col3:
                form[number_field] = st.text_input(f"{label} Number", value=current(number_field))
            with col4:
                form[expiry_field] = st.date_input(f"{label} Expiry", value=parse_date(branch.get(expiry_field)))

        submitted = st.form_submit_button("💾 Save Branch", use_container_width=True)

    return form, submitted


def _save_branch(form, branch=None):
    try:
        payload = branch_payload(form)
    except ValidationError as e:
        st.error(f"❌ {e}")
        return False

    store = get_store()
    try:
        if branch is None:
            store.create('branches', payload)
        else:
            store.update('branches', record_id(branch), payload)
    except ApiError as e:
        handle_api_error(e, f"save branch {payload['name']}")
        return False

    if branch is None:
        AuditLogger.log_record_action(AuditLogger.ACTION_ADD, AuditLogger.MODULE_BRANCH, payload['name'],
                                      new_values=payload)
    else:
        AuditLogger.log_record_action(AuditLogger.ACTION_EDIT, AuditLogger.MODULE_BRANCH, payload['name'],
                                      record_id(branch), new_values=payload)
    return True


def _analytics(branches, employees):
    stats = branch_analytics(branches, employees)
    render_summary_cards([
        {'label': 'Branches', 'value': stats['total'], 'icon': '🏢'},
        {'label': 'Active Branches', 'value': stats['active_branches'], 'icon': '✅'},
        {'label': 'Vehicles', 'value': stats['total_vehicles'], 'icon': '🚗'},
        {'label': 'Avg Staff / Branch', 'value': stats['avg_employees_per_branch'], 'icon': '👥'},
    ])

    rows = distribution(stats['by_location'])
    if rows:
        fig = px.pie(pd.DataFrame(rows), values='count', names='label', title='Branches by Location', hole=0.4)
        st.plotly_chart(fig, use_container_width=True)

    index = BranchIndex(branches, employees)
    staff = pd.DataFrame([
        {'Branch': b['name'], 'Employees': index.employee_count(record_id(b)),
         'Vehicles': len(b.get('vehicles') or [])}
        for b in branches
    ])
    if not staff.empty:
        fig = px.bar(staff.melt(id_vars='Branch', var_name='Type', value_name='Count'),
                     x='Branch', y='Count', color='Type', barmode='group', title='Staff and Vehicles per Branch')
        st.plotly_chart(fig, use_container_width=True)

    st.caption(f"{stats['total_documents']} branch licence(s) tracked")
