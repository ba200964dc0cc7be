"""
pages_vacations.py - Vacation Management
Vacations are booked by duration code; the end date is always derived from
the start date, both when adding and when editing.
"""

from datetime import date

import streamlit as st
import pandas as pd

from audit_logger import AuditLogger
from auth import get_store, handle_api_error
from config import Config
from entities import record_id, NA
from errors import ApiError, ValidationError
from list_manager import filter_options, DESC
from table_styles import (
    get_list_state, render_search_box, render_filter_select, render_sort_control,
    render_pagination, render_summary_cards, format_date,
)
from vacations import (
    build_vacation_payload, form_from_vacation, resolve_end_date, vacation_accessors,
    vacation_status, days_remaining, DURATION_LABELS,
    STATUS_UPCOMING, STATUS_ACTIVE, STATUS_COMPLETED,
)


SEARCH_FIELDS = ('employeeName', 'qid', 'reason', 'branch')
SORT_COLUMNS = {'startDate': 'Start Date', 'endDate': 'End Date', 'employeeName': 'Employee', 'totalDays': 'Days'}
SORT_TYPES = {'startDate': 'date', 'endDate': 'date', 'totalDays': 'number'}

STATUS_ICONS = {STATUS_UPCOMING: '🗓️', STATUS_ACTIVE: '🏖️', STATUS_COMPLETED: '✅'}


def vacations_page():
    """Vacation management page"""
    st.header("🏖️ Vacation Management")
    st.markdown("Schedule and track employee vacations")
    st.markdown("---")

    store = get_store()
    vacations = store['vacations']
    people = store['employees']
    today = date.today()

    tab1, tab2 = st.tabs(["📅 Vacations", "➕ Schedule Vacation"])

    with tab1:
        _vacation_list(vacations, people, today)

    with tab2:
        form, submitted = _vacation_form("new_vacation", {}, people)
        if submitted and _save_vacation(form, people):
            st.success("✅ Vacation scheduled successfully!")
            st.rerun()


def _vacation_list(vacations, people, today):
    accessors = vacation_accessors(people, today)
    state = get_list_state('vacations', sort_key='startDate', sort_dir=DESC,
                           filters={'status': 'all', 'branch': 'all'})

    statuses = [accessors['status'](v) for v in vacations]
    render_summary_cards([
        {'label': 'Total', 'value': len(vacations), 'icon': '📅'},
        {'label': 'On Vacation Now', 'value': statuses.count(STATUS_ACTIVE), 'icon': '🏖️'},
        {'label': 'Upcoming', 'value': statuses.count(STATUS_UPCOMING), 'icon': '🗓️'},
        {'label': 'Completed', 'value': statuses.count(STATUS_COMPLETED), 'icon': '✅'},
    ])
    st.markdown("---")

    col1, col2, col3 = st.columns(3)
    with col1:
        render_search_box(state, 'vacations', placeholder="Employee, QID, reason...")
    with col2:
        render_filter_select(state, 'vacations', 'status', "Status", list(STATUS_ICONS))
    with col3:
        render_filter_select(state, 'vacations', 'branch', "Branch",
                             filter_options(vacations, 'branch', accessors))
    render_sort_control(state, 'vacations', SORT_COLUMNS)

    result = state.apply(vacations, SEARCH_FIELDS, Config.VACATIONS_PER_PAGE, accessors, SORT_TYPES)
    if not result['total']:
        st.info("No vacations found")
        return

    for vacation in result['page']:
        status = vacation_status(vacation.get('startDate'), vacation.get('endDate'), today)
        title = (f"{STATUS_ICONS.get(status, '❔')} {vacation.get('employeeName') or NA} · "
                 f"{format_date(vacation.get('startDate'))} to {format_date(vacation.get('endDate'))}")
        with st.expander(title):
            col1, col2, col3 = st.columns(3)
            with col1:
                st.markdown(f"**QID:** {vacation.get('qid') or NA}")
                st.markdown(f"**Branch:** {accessors['branch'](vacation) or 'Unassigned'}")
            with col2:
                st.markdown(f"**Status:** {status}")
                st.markdown(f"**Total Days:** {accessors['totalDays'](vacation)}")
            with col3:
                st.markdown(f"**Days Remaining:** "
                            f"{days_remaining(vacation.get('startDate'), vacation.get('endDate'), today)}")
                st.markdown(f"**Reason:** {vacation.get('reason') or NA}")

            _vacation_actions(vacation, people)

    render_pagination(state, result, 'vacations', Config.VACATIONS_PER_PAGE)

    st.markdown("---")
    df = pd.DataFrame([
        {
            'Employee': v.get('employeeName'),
            'QID': v.get('qid'),
            'Branch': accessors['branch'](v),
            'Start': format_date(v.get('startDate')),
            'End': format_date(v.get('endDate')),
            'Days': accessors['totalDays'](v),
            'Status': accessors['status'](v),
            'Reason': v.get('reason'),
        }
        for v in result['rows']
    ])
    if st.download_button("📄 Download CSV", df.to_csv(index=False).encode('utf-8'),
                          file_name=f"vacations_{today.isoformat()}.csv", mime="text/csv"):
        AuditLogger.log_data_export(AuditLogger.MODULE_VACATION, len(df), 'CSV')


def _vacation_actions(vacation, people):
    vacation_id = record_id(vacation)
    edit_key = f"edit_vacation_{vacation_id}"

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✏️ Edit", key=f"btn_{edit_key}"):
            st.session_state[edit_key] = not st.session_state.get(edit_key, False)
    with col2:
        if st.button("🗑️ Delete", key=f"delete_vacation_{vacation_id}"):
            try:
                get_store().delete('vacations', vacation_id)
            except ApiError as e:
                handle_api_error(e, "delete vacation")
                return
            AuditLogger.log_record_action(AuditLogger.ACTION_DELETE, AuditLogger.MODULE_VACATION,
                                          vacation.get('employeeName') or NA, vacation_id, old_values=vacation)
            st.success("Vacation deleted")
            st.rerun()

    if st.session_state.get(edit_key):
        form, submitted = _vacation_form(edit_key, form_from_vacation(vacation), people)
        if submitted and _save_vacation(form, people, vacation):
            st.session_state[edit_key] = False
            st.success("✅ Vacation updated")
            st.rerun()


def _vacation_form(form_key, initial, people):
    people_by_id = {p['_id']: p for p in people if p.get('_id')}
    person_ids = list(people_by_id)
    codes = list(DURATION_LABELS)

    form = {}
    with st.form(form_key):
        if not person_ids:
            st.warning("No employees available")

        current_person = initial.get('employeeId')
        form['employeeId'] = st.selectbox(
            "Employee*", person_ids,
            index=person_ids.index(current_person) if current_person in person_ids else 0,
            format_func=lambda pid: f"{people_by_id[pid].get('name')} ({people_by_id[pid].get('qid') or 'no QID'})",
        ) if person_ids else None

        col1, col2 = st.columns(2)
        with col1:
            form['startDate'] = st.date_input("Start Date*", value=initial.get('startDate') or date.today())
        with col2:
            current_code = initial.get('duration')
            form['duration'] = st.selectbox(
                "Duration*", codes, index=codes.index(current_code) if current_code in codes else 0,
                format_func=lambda code: DURATION_LABELS[code],
            )

        form['reason'] = st.text_area("Reason", value=initial.get('reason') or '')

        if initial.get('endDate'):
            st.caption(f"Currently ends {format_date(initial['endDate'])}; saving recomputes the end date "
                       "from the start date and duration.")

        submitted = st.form_submit_button("💾 Save Vacation", use_container_width=True)

    if form.get('startDate') and form.get('duration'):
        st.caption(f"Ends on {format_date(resolve_end_date(form['startDate'], form['duration']))}")
    return form, submitted


def _save_vacation(form, people, vacation=None):
    try:
        payload = build_vacation_payload(form, people)
    except ValidationError as e:
        st.error(f"❌ {e}")
        return False

    store = get_store()
    try:
        if vacation is None:
            store.create('vacations', payload)
        else:
            store.update('vacations', record_id(vacation), payload)
    except ApiError as e:
        handle_api_error(e, "save vacation")
        return False

    action = AuditLogger.ACTION_ADD if vacation is None else AuditLogger.ACTION_EDIT
    AuditLogger.log_record_action(
        action, AuditLogger.MODULE_VACATION, payload['employeeName'],
        record_id(vacation) if vacation else None,
        details=f"{payload['startDate']} to {payload['endDate']}", new_values=payload
    )
    return True
