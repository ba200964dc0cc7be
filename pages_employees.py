"""
pages_employees.py - Employee and Temporary Employee Management
Directory with search / filter / sort / pagination, add and edit forms with
document uploads, per-person document expiry and exports.
"""

import io
import logging
from datetime import date

import streamlit as st
import pandas as pd

from audit_logger import AuditLogger
from auth import get_client, get_store, handle_api_error
from config import Config
from entities import (
    BranchIndex, employee_payload, temp_employee_payload, person_branch, NA,
)
from errors import ApiError, ValidationError
from expiry import (
    classify, summarize, parse_date, EMPLOYEE_DOCUMENTS, TEMP_EMPLOYEE_DOCUMENTS,
)
from reports import (
    report_rows, rows_to_dataframe, VIEW_EXPIRED, VIEW_EXPIRING,
    CATEGORY_EMPLOYEE, CATEGORY_TEMP_EMPLOYEE,
)
from table_styles import (
    get_list_state, render_search_box, render_filter_select, render_sort_control,
    render_pagination, render_summary_cards, format_currency, format_date,
)
from list_manager import filter_options
from uploads import upload_documents, merge_documents, upload_summary, EMPLOYEE_UPLOAD_TYPES


logger = logging.getLogger(__name__)


PEOPLE_KINDS = {
    'employees': {
        'title': 'Employee',
        'icon': '👥',
        'payload': employee_payload,
        'documents': EMPLOYEE_DOCUMENTS,
        'category': CATEGORY_EMPLOYEE,
        'module': AuditLogger.MODULE_EMPLOYEE,
        'has_visa': True,
    },
    'temp_employees': {
        'title': 'Temporary Employee',
        'icon': '🕒',
        'payload': temp_employee_payload,
        'documents': TEMP_EMPLOYEE_DOCUMENTS,
        'category': CATEGORY_TEMP_EMPLOYEE,
        'module': AuditLogger.MODULE_TEMP_EMPLOYEE,
        'has_visa': False,
    },
}

STATUS_OPTIONS = ["Working", "On Leave", "Vacation", "Resigned", "Terminated"]

SEARCH_FIELDS = ('name', 'email', 'phone', 'role', 'qid', 'branchName')
SORT_COLUMNS = {'name': 'Name', 'role': 'Role', 'status': 'Status', 'doj': 'Joining Date', 'salary': 'Salary'}
SORT_TYPES = {'doj': 'date', 'salary': 'number'}

PERSON_ACCESSORS = {'branchName': lambda person: person_branch(person) or 'Unassigned'}


def employees_page():
    _people_page('employees')


def temp_employees_page():
    _people_page('temp_employees')


def _people_page(kind):
    config = PEOPLE_KINDS[kind]
    st.header(f"{config['icon']} {config['title']} Management")
    st.markdown(f"Manage {config['title'].lower()} records and documents")
    st.markdown("---")

    store = get_store()
    people = store[kind]
    index = BranchIndex(store['branches'], people)

    tab1, tab2, tab3, tab4 = st.tabs([
        f"{config['icon']} Directory", f"➕ Add {config['title']}", "📄 Document Expiry", "📥 Export"
    ])

    with tab1:
        _directory(kind, people, index)

    with tab2:
        form, files, submitted = _person_form(f"new_{kind}", kind, None, index.names())
        if submitted and _save_person(kind, form, files):
            st.success(f"✅ {config['title']} {form.get('name')} added successfully!")
            st.rerun()

    with tab3:
        _document_expiry(kind, people)

    with tab4:
        _export(kind, people)


# =============================================================================
# DIRECTORY
# =============================================================================

def _directory(kind, people, index):
    config = PEOPLE_KINDS[kind]
    state = get_list_state(kind, sort_key='name', filters={'role': 'all', 'status': 'all', 'branchName': 'all'})

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        render_search_box(state, kind, placeholder="Name, email, phone, QID...")
    with col2:
        render_filter_select(state, kind, 'role', "Role", filter_options(people, 'role'))
    with col3:
        render_filter_select(state, kind, 'status', "Status", filter_options(people, 'status'))
    with col4:
        render_filter_select(state, kind, 'branchName', "Branch",
                             filter_options(people, 'branchName', PERSON_ACCESSORS))
    render_sort_control(state, kind, SORT_COLUMNS)

    result = state.apply(people, SEARCH_FIELDS, Config.EMPLOYEES_PER_PAGE, PERSON_ACCESSORS, SORT_TYPES)

    render_summary_cards([
        {'label': 'Showing', 'value': result['total'], 'icon': '🔎'},
        {'label': 'Total', 'value': len(people), 'icon': config['icon']},
        {'label': 'Working', 'value': sum(1 for p in people if p.get('status') == 'Working'), 'icon': '✅'},
        {'label': 'Unassigned', 'value': len(index.unassigned), 'icon': '❔'},
    ])
    st.markdown("---")

    if not result['total']:
        st.info(f"No {config['title'].lower()} records found")
        return

    today = date.today()
    for person in result['page']:
        summary = summarize(classify(today, [person], config['documents']))
        alerts = len(summary['expired']) + len(summary['expiring'])
        title = f"{person['name']} - {person['role']} ({person_branch(person) or 'Unassigned'})"
        if alerts:
            title += f" ⚠️ {alerts} document alert(s)"

        with st.expander(title):
            _person_details(person, summary)
            _person_actions(kind, person, index)

    render_pagination(state, result, kind, Config.EMPLOYEES_PER_PAGE)


def _person_details(person, summary):
    col1, col2, col3 = st.columns(3)
    with col1:
        st.markdown(f"**Email:** {person.get('email')}")
        st.markdown(f"**Phone:** {person.get('phone')}")
        st.markdown(f"**Nationality:** {person.get('nationality')}")
    with col2:
        st.markdown(f"**Status:** {person.get('status')}")
        st.markdown(f"**Joined:** {format_date(person.get('doj'))}")
        st.markdown(f"**Salary:** {format_currency(person.get('salary'))}")
    with col3:
        st.markdown(f"**QID:** {person.get('qid') or NA}")
        st.markdown(f"**Passport:** {person.get('passportNumber') or NA}")
        st.markdown(f"**Medical Card:** {person.get('medicalCardNumber') or NA}")

    for entry in summary['expired']:
        st.error(f"🔴 {entry['document_type']} expired {entry['days_overdue']} day(s) ago")
    for entry in summary['expiring']:
        st.warning(f"🟠 {entry['document_type']} expires in {entry['days_left']} day(s)")

    documents = person.get('documents') or {}
    if documents:
        st.markdown("**Documents:** " + " · ".join(
            f"[{doc_type}]({record.get('url')})" for doc_type, record in documents.items()
            if isinstance(record, dict) and record.get('url')
        ))


def _person_actions(kind, person, index):
    config = PEOPLE_KINDS[kind]
    person_id = person['_id']

    edit_key = f"edit_{kind}_{person_id}"
    col1, col2 = st.columns(2)
    with col1:
        if st.button("✏️ Edit", key=f"btn_{edit_key}"):
            st.session_state[edit_key] = not st.session_state.get(edit_key, False)
    with col2:
        if st.button("🗑️ Delete", key=f"delete_{kind}_{person_id}"):
            try:
                get_store().delete(kind, person_id)
            except ApiError as e:
                handle_api_error(e, f"delete {person['name']}")
                return
            AuditLogger.log_record_action(
                AuditLogger.ACTION_DELETE, config['module'], person['name'], person_id, old_values=person
            )
            st.success(f"Deleted {person['name']}")
            st.rerun()

    if st.session_state.get(edit_key):
        form, files, submitted = _person_form(edit_key, kind, person, index.names())
        if submitted and _save_person(kind, form, files, person):
            st.session_state[edit_key] = False
            st.success(f"✅ {form.get('name')} updated")
            st.rerun()


# =============================================================================
# FORMS
# =============================================================================

def _select(label, options, current, key):
    options = list(options)
    if current and current not in options:
        options.append(current)
    choices = [''] + options
    return st.selectbox(label, choices, index=choices.index(current) if current in choices else 0, key=key)


def _salary(value):
    try:
        return max(float(value or 0), 0.0)
    except (ValueError, TypeError):
        return 0.0


def _person_form(form_key, kind, person, branch_names):
    """
    Render the add / edit form.

    Returns:
        (form values, {upload type: UploadedFile}, submitted)
    """
    config = PEOPLE_KINDS[kind]
    person = person or {}

    def current(key):
        value = person.get(key)
        return '' if value in (None, NA) else value

    form = {}
    uploads = {}
    with st.form(form_key):
        st.markdown("#### 👤 Basic Information")
        col1, col2 = st.columns(2)
        with col1:
            form['name'] = st.text_input("Full Name*", value=current('name'))
            form['role'] = st.text_input("Role*" if kind == 'employees' else "Role", value=current('role'))
            form['email'] = st.text_input("Email", value=current('email'))
            form['phone'] = st.text_input("Phone", value=current('phone'))
        with col2:
            form['nationality'] = st.text_input("Nationality", value=current('nationality'))
            form['salary'] = st.number_input("Salary", min_value=0.0, step=100.0,
                                             value=_salary(person.get('salary')))
            form['workLocation'] = _select("Work Location (Branch)", branch_names,
                                           person_branch(person), f"{form_key}_branch")
            if kind == 'employees':
                form['status'] = _select("Status", STATUS_OPTIONS, current('status') or 'Working',
                                         f"{form_key}_status")

        if kind == 'employees':
            col3, col4 = st.columns(2)
            with col3:
                form['doj'] = st.date_input("Joining Date", value=parse_date(person.get('doj')))
            with col4:
                form['visaAddedBranch'] = _select("Visa Added Branch", branch_names,
                                                  current('visaAddedBranch'), f"{form_key}_visa_branch")
            form['emergencyContact'] = st.text_input("Emergency Contact", value=current('emergencyContact'))

        st.markdown("---")
        st.markdown("#### 🪪 Documents")
        pairs = [('qid', 'qidExpiry', 'QID'), ('passportNumber', 'passportExpiry', 'Passport')]
        if config['has_visa']:
            pairs.append(('visaNumber', 'visaExpiry', 'Visa'))
        pairs.append(('medicalCardNumber', 'medicalCardExpiry', 'Medical Card'))

        for number_field, expiry_field, label in pairs:
            col5, col6 = st.columns(2)
            with col5:
                form[number_field] = st.text_input(f"{label} Number", value=current(number_field))
            with col6:
                form[expiry_field] = st.date_input(f"{label} Expiry", value=parse_date(person.get(expiry_field)))

        st.markdown("---")
        st.markdown("#### 📎 Uploads")
        cols = st.columns(3)
        for idx, (doc_type, label, extensions) in enumerate(EMPLOYEE_UPLOAD_TYPES):
            if doc_type == 'visa' and not config['has_visa']:
                continue
            with cols[idx % 3]:
                uploads[doc_type] = st.file_uploader(label, type=extensions, key=f"{form_key}_{doc_type}")

        submitted = st.form_submit_button("💾 Save", use_container_width=True)

    return form, uploads, submitted


def _save_person(kind, form, uploads, person=None):
    """Validate, upload documents, then create or update; True on success"""
    config = PEOPLE_KINDS[kind]
    store = get_store()

    try:
        payload = config['payload'](form)
    except ValidationError as e:
        st.error(f"❌ {e}")
        return False

    files = {
        doc_type: (upload.name, upload.getvalue(), upload.type)
        for doc_type, upload in uploads.items() if upload is not None
    }
    if files:
        try:
            outcome = upload_documents(get_client(), files, email=payload.get('email'))
        except ApiError as e:
            handle_api_error(e, "upload documents")
            return False
        AuditLogger.log_upload(payload['name'], len(outcome['documents']), len(outcome['failed']))
        message = upload_summary(outcome)
        if outcome['failed']:
            st.warning(message)
        else:
            st.info(message)
        existing = dict(payload, documents=(person or {}).get('documents') or {})
        payload = merge_documents(existing, outcome['documents'])

    try:
        if person is None:
            store.create(kind, payload)
        else:
            store.update(kind, person['_id'], payload)
    except ApiError as e:
        handle_api_error(e, f"save {payload['name']}")
        return False

    if person is None:
        AuditLogger.log_record_action(AuditLogger.ACTION_ADD, config['module'], payload['name'],
                                      new_values=payload)
    else:
        AuditLogger.log_record_action(AuditLogger.ACTION_EDIT, config['module'], payload['name'],
                                      person['_id'], old_values=person, new_values=payload)
    logger.info("Saved %s %s", kind, payload['name'])
    return True


# =============================================================================
# DOCUMENT EXPIRY & EXPORT
# =============================================================================

def _document_expiry(kind, people):
    config = PEOPLE_KINDS[kind]
    today = date.today()
    entries = classify(today, people, config['documents'], category=config['category'])
    summary = summarize(entries, total_possible=len(people) * len(config['documents']))

    render_summary_cards([
        {'label': 'Expired', 'value': len(summary['expired']), 'icon': '🔴'},
        {'label': 'Critical', 'value': summary['critical'], 'icon': '🟠'},
        {'label': 'Warning', 'value': summary['warning'], 'icon': '🟡'},
        {'label': 'Not Recorded', 'value': summary['untracked'], 'icon': '❔'},
    ])

    st.markdown("##### 🔴 Expired")
    expired = rows_to_dataframe(report_rows(entries, VIEW_EXPIRED), VIEW_EXPIRED)
    if expired.empty:
        st.success("No expired documents")
    else:
        st.dataframe(expired, use_container_width=True, hide_index=True)

    st.markdown("##### 🟠 Expiring within 30 days")
    expiring = rows_to_dataframe(report_rows(entries, VIEW_EXPIRING), VIEW_EXPIRING)
    if expiring.empty:
        st.success("No documents expiring soon")
    else:
        st.dataframe(expiring, use_container_width=True, hide_index=True)


def people_dataframe(people):
    """Export table of people, one row per person"""
    return pd.DataFrame([
        {
            'Name': p.get('name'),
            'Role': p.get('role'),
            'Status': p.get('status'),
            'Branch': person_branch(p) or 'Unassigned',
            'Email': p.get('email'),
            'Phone': p.get('phone'),
            'Nationality': p.get('nationality'),
            'Joining Date': format_date(p.get('doj')),
            'QID': p.get('qid') or NA,
            'QID Expiry': format_date(p.get('qidExpiry')),
            'Passport Expiry': format_date(p.get('passportExpiry')),
            'Visa Expiry': format_date(p.get('visaExpiry')),
            'Medical Card Expiry': format_date(p.get('medicalCardExpiry')),
        }
        for p in people
    ])


def _export(kind, people):
    config = PEOPLE_KINDS[kind]
    state = get_list_state(kind, sort_key='name')
    rows = state.apply(people, SEARCH_FIELDS, Config.EMPLOYEES_PER_PAGE, PERSON_ACCESSORS, SORT_TYPES)['rows']

    st.markdown(f"Exports the **{len(rows)}** record(s) matching the directory's current search and filters.")
    df = people_dataframe(rows)
    if df.empty:
        st.info("Nothing to export")
        return

    st.dataframe(df, use_container_width=True, hide_index=True)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=config['title'][:31], index=False)
    buffer.seek(0)

    col1, col2 = st.columns(2)
    with col1:
        if st.download_button("📊 Download Excel", buffer,
                              file_name=f"{kind}_{date.today().isoformat()}.xlsx",
                              mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"):
            AuditLogger.log_data_export(config['module'], len(df), 'Excel')
    with col2:
        if st.download_button("📄 Download CSV", df.to_csv(index=False).encode('utf-8'),
                              file_name=f"{kind}_{date.today().isoformat()}.csv", mime="text/csv"):
            AuditLogger.log_data_export(config['module'], len(df), 'CSV')
