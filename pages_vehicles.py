"""
pages_vehicles.py - Vehicle Management
Vehicles are stored inside their branch. The page works on the flattened
list and writes through the store, which keeps branch ownership in step.
"""

from datetime import date

import streamlit as st
import pandas as pd
import plotly.express as px

from analytics import vehicle_status, vehicle_document_stats
from audit_logger import AuditLogger
from auth import get_client, get_store, handle_api_error
from config import Config
from entities import flatten_vehicles, vehicle_payload, record_id, NA
from errors import ApiError, ValidationError
from expiry import parse_date
from list_manager import filter_options
from reports import report_rows, rows_to_dataframe, VIEW_EXPIRED, VIEW_EXPIRING
from table_styles import (
    get_list_state, render_search_box, render_filter_select, render_sort_control,
    render_pagination, render_summary_cards, format_date,
)
from uploads import upload_documents, upload_summary, VEHICLE_UPLOAD_TYPES


SEARCH_FIELDS = ('licenseNumber', 'make', 'model', 'type', 'branchName')
SORT_COLUMNS = {
    'licenseNumber': 'License Number', 'make': 'Make', 'year': 'Year', 'branchName': 'Branch',
    'licenseExpiry': 'License Expiry', 'insuranceExpiry': 'Insurance Expiry',
}
SORT_TYPES = {'year': 'number', 'licenseExpiry': 'date', 'insuranceExpiry': 'date'}

VEHICLE_TYPES = ["Car", "Van", "Pickup", "Truck", "Motorcycle", "Bus", "Other"]
STATUS_ICONS = {'Expired': '🔴', 'Expiring Soon': '🟠', 'Valid': '🟢'}


def vehicles_page():
    """Vehicle management page"""
    st.header("🚗 Vehicle Management")
    st.markdown("Track branch vehicles and their licence and insurance documents")
    st.markdown("---")

    store = get_store()
    branches = store['branches']
    vehicles = flatten_vehicles(branches)
    today = date.today()

    tab1, tab2, tab3 = st.tabs(["🚗 All Vehicles", "➕ Add Vehicle", "📄 Document Status"])

    with tab1:
        _directory(vehicles, branches, today)

    with tab2:
        if not branches:
            st.warning("Add a branch before registering vehicles")
        else:
            form, uploads, submitted = _vehicle_form("new_vehicle", None, branches)
            if submitted and _save_vehicle(form, uploads):
                st.success(f"✅ Vehicle {form.get('licenseNumber')} added successfully!")
                st.rerun()

    with tab3:
        _document_status(vehicles, today)


def _directory(vehicles, branches, today):
    accessors = {'docStatus': lambda vehicle: vehicle_status(vehicle, today)}
    state = get_list_state('vehicles', sort_key='licenseNumber',
                           filters={'branchName': 'all', 'type': 'all', 'docStatus': 'all'})

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        render_search_box(state, 'vehicles', placeholder="Plate, make, model...")
    with col2:
        render_filter_select(state, 'vehicles', 'branchName', "Branch", filter_options(vehicles, 'branchName'))
    with col3:
        render_filter_select(state, 'vehicles', 'type', "Type", filter_options(vehicles, 'type'))
    with col4:
        render_filter_select(state, 'vehicles', 'docStatus', "Document Status", list(STATUS_ICONS))
    render_sort_control(state, 'vehicles', SORT_COLUMNS)

    result = state.apply(vehicles, SEARCH_FIELDS, Config.VEHICLES_PER_PAGE, accessors, SORT_TYPES)
    st.caption(f"{result['total']} of {len(vehicles)} vehicle(s)")

    if not result['total']:
        st.info("No vehicles found")
        return

    for vehicle in result['page']:
        status = vehicle_status(vehicle, today)
        title = (f"{STATUS_ICONS[status]} {vehicle['licenseNumber']} - {vehicle['make']} {vehicle['model']} "
                 f"({vehicle['branchName']})")
        with st.expander(title):
            col1, col2, col3 = st.columns(3)
            with col1:
                st.markdown(f"**Type:** {vehicle.get('type')}")
                st.markdown(f"**Year:** {vehicle.get('year')}")
                st.markdown(f"**Color:** {vehicle.get('color')}")
            with col2:
                st.markdown(f"**License Expiry:** {format_date(vehicle.get('licenseExpiry'))}")
                st.markdown(f"**Insurance Expiry:** {format_date(vehicle.get('insuranceExpiry'))}")
                st.markdown(f"**Status:** {vehicle.get('status')}")
            with col3:
                for doc_type, label, _ in VEHICLE_UPLOAD_TYPES:
                    record = vehicle.get(doc_type)
                    if isinstance(record, dict) and record.get('url'):
                        st.markdown(f"[📎 {label}]({record['url']})")

            _vehicle_actions(vehicle, branches)

    render_pagination(state, result, 'vehicles', Config.VEHICLES_PER_PAGE)


def _vehicle_actions(vehicle, branches):
    license_number = vehicle['licenseNumber']
    edit_key = f"edit_vehicle_{license_number}"

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✏️ Edit / Move", key=f"btn_{edit_key}"):
            st.session_state[edit_key] = not st.session_state.get(edit_key, False)
    with col2:
        if st.button("🗑️ Delete", key=f"delete_vehicle_{license_number}"):
            try:
                get_store().delete_vehicle(license_number)
            except ApiError as e:
                handle_api_error(e, f"delete vehicle {license_number}")
                return
            AuditLogger.log_record_action(AuditLogger.ACTION_DELETE, AuditLogger.MODULE_VEHICLE,
                                          license_number, license_number)
            st.success(f"Deleted vehicle {license_number}")
            st.rerun()

    if st.session_state.get(edit_key):
        form, uploads, submitted = _vehicle_form(edit_key, vehicle, branches)
        if submitted and _save_vehicle(form, uploads, vehicle):
            st.session_state[edit_key] = False
            st.success(f"✅ Vehicle {license_number} updated")
            st.rerun()


def _vehicle_form(form_key, vehicle, branches):
    vehicle = vehicle or {}
    branch_ids = [record_id(b) for b in branches]
    branch_names = {record_id(b): b.get('name') or NA for b in branches}

    def current(key):
        value = vehicle.get(key)
        return '' if value in (None, NA) else value

    form = {}
    uploads = {}
    with st.form(form_key):
        col1, col2 = st.columns(2)
        with col1:
            # The licence number is the vehicle's key and cannot change once created
            form['licenseNumber'] = st.text_input("License Number*", value=current('licenseNumber'),
                                                  disabled=bool(vehicle))
            current_branch = vehicle.get('branchId')
            form['branchId'] = st.selectbox(
                "Branch*", branch_ids,
                index=branch_ids.index(current_branch) if current_branch in branch_ids else 0,
                format_func=lambda branch_id: branch_names.get(branch_id, NA),
            )
            vehicle_type = current('type')
            types = VEHICLE_TYPES if vehicle_type in VEHICLE_TYPES or not vehicle_type else VEHICLE_TYPES + [vehicle_type]
            form['type'] = st.selectbox("Type", types, index=types.index(vehicle_type) if vehicle_type in types else 0)
            form['status'] = st.selectbox("Status", ["active", "inactive", "maintenance"],
                                          index=["active", "inactive", "maintenance"].index(vehicle['status'])
                                          if vehicle.get('status') in ("active", "inactive", "maintenance") else 0)
        with col2:
            form['make'] = st.text_input("Make", value=current('make'))
            form['model'] = st.text_input("Model", value=current('model'))
            form['year'] = st.text_input("Year", value=str(current('year')))
            form['color'] = st.text_input("Color", value=current('color'))

        col3, col4 = st.columns(2)
        with col3:
            form['licenseExpiry'] = st.date_input("License Expiry", value=parse_date(vehicle.get('licenseExpiry')))
        with col4:
            form['insuranceExpiry'] = st.date_input("Insurance Expiry",
                                                    value=parse_date(vehicle.get('insuranceExpiry')))

        col5, col6 = st.columns(2)
        for column, (doc_type, label, extensions) in zip((col5, col6), VEHICLE_UPLOAD_TYPES):
            with column:
                uploads[doc_type] = st.file_uploader(label, type=extensions, key=f"{form_key}_{doc_type}")
            form[doc_type] = vehicle.get(doc_type)

        submitted = st.form_submit_button("💾 Save Vehicle", use_container_width=True)

    if vehicle:
        form['licenseNumber'] = vehicle['licenseNumber']
    return form, uploads, submitted


def _save_vehicle(form, uploads, vehicle=None):
    files = {
        doc_type: (upload.name, upload.getvalue(), upload.type)
        for doc_type, upload in uploads.items() if upload is not None
    }

    try:
        payload = vehicle_payload(form)
    except ValidationError as e:
        st.error(f"❌ {e}")
        return False

    if files:
        try:
            outcome = upload_documents(get_client(), files)
        except ApiError as e:
            handle_api_error(e, "upload vehicle documents")
            return False
        AuditLogger.log_upload(payload['licenseNumber'], len(outcome['documents']), len(outcome['failed']))
        if outcome['failed']:
            st.warning(upload_summary(outcome))
        payload.update(outcome['documents'])

    store = get_store()
    try:
        if vehicle is None:
            store.create_vehicle(payload)
        else:
            store.update_vehicle(vehicle['licenseNumber'], payload)
    except ApiError as e:
        handle_api_error(e, f"save vehicle {payload['licenseNumber']}")
        return False
    except KeyError as e:
        st.error(f"❌ {e}")
        return False

    if vehicle is None:
        AuditLogger.log_record_action(AuditLogger.ACTION_ADD, AuditLogger.MODULE_VEHICLE,
                                      payload['licenseNumber'], payload['licenseNumber'], new_values=payload)
    else:
        details = ""
        if vehicle.get('branchId') != payload['branch']:
            details = f"moved from {vehicle.get('branchName')}"
        AuditLogger.log_record_action(AuditLogger.ACTION_EDIT, AuditLogger.MODULE_VEHICLE,
                                      payload['licenseNumber'], payload['licenseNumber'], details=details,
                                      new_values=payload)
    return True


def _document_status(vehicles, today):
    stats = vehicle_document_stats(vehicles, today)
    render_summary_cards([
        {'label': 'Tracked Documents', 'value': stats['total'], 'icon': '📄'},
        {'label': 'Expired', 'value': stats['expired'], 'icon': '🔴'},
        {'label': 'Expiring ≤7 days', 'value': stats['critical'], 'icon': '🟠'},
        {'label': 'Valid', 'value': stats['valid'], 'icon': '🟢'},
    ])

    if stats['by_type']:
        df = pd.DataFrame([
            {'Document': label, 'Status': status.title(), 'Count': count}
            for label, counts in stats['by_type'].items()
            for status, count in counts.items()
        ])
        fig = px.bar(df, x='Document', y='Count', color='Status', barmode='group',
                     title='Vehicle Documents by Status',
                     color_discrete_map={'Expired': '#dc3545', 'Expiring': '#ffc107', 'Valid': '#28a745'})
        st.plotly_chart(fig, use_container_width=True)

    for view, heading in ((VIEW_EXPIRED, "🔴 Expired"), (VIEW_EXPIRING, "🟠 Expiring within 30 days")):
        st.markdown(f"##### {heading}")
        df = rows_to_dataframe(report_rows(stats['entries'], view), view)
        if df.empty:
            st.success("None")
        else:
            st.dataframe(df, use_container_width=True, hide_index=True)
