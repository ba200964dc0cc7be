"""
pages_activity.py - Activity Log
Local audit trail of dashboard actions plus the backend's own activity feed.
"""

from datetime import date, timedelta

import streamlit as st
import pandas as pd

from audit_logger import AuditLogger
from auth import get_client, handle_api_error
from errors import ApiError


ACTIONS = [
    AuditLogger.ACTION_ADD, AuditLogger.ACTION_EDIT, AuditLogger.ACTION_DELETE, AuditLogger.ACTION_EXPORT,
    AuditLogger.ACTION_UPLOAD, AuditLogger.ACTION_LOGIN, AuditLogger.ACTION_LOGOUT,
]
MODULES = [
    AuditLogger.MODULE_EMPLOYEE, AuditLogger.MODULE_TEMP_EMPLOYEE, AuditLogger.MODULE_BRANCH,
    AuditLogger.MODULE_VEHICLE, AuditLogger.MODULE_VACATION, AuditLogger.MODULE_EXPENDITURE,
    AuditLogger.MODULE_DOCUMENTS, AuditLogger.MODULE_SYSTEM,
]


def activity_log_page():
    st.header("📜 Activity Log")
    st.markdown("Who changed what, and when")
    st.markdown("---")

    tab1, tab2 = st.tabs(["🖥️ Dashboard Activity", "🌐 Server Activity"])

    with tab1:
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            action = st.selectbox("Action", ["All"] + ACTIONS, key="activity_action")
        with col2:
            module = st.selectbox("Module", ["All"] + MODULES, key="activity_module")
        with col3:
            start = st.date_input("From", value=date.today() - timedelta(days=30), key="activity_from")
        with col4:
            end = st.date_input("To", value=date.today(), key="activity_to")

        logs = AuditLogger.get_activity_logs(
            action_type=None if action == "All" else action,
            module=None if module == "All" else module,
            start_date=start.isoformat() if start else None,
            end_date=end.isoformat() if end else None,
            limit=500,
        )

        if not logs:
            st.info("No activity recorded for the selected filters")
        else:
            df = pd.DataFrame(logs)[['timestamp', 'username', 'action_type', 'module', 'description']]
            df.columns = ['Time', 'User', 'Action', 'Module', 'Description']
            st.dataframe(df, use_container_width=True, hide_index=True)
            st.download_button("📄 Download CSV", df.to_csv(index=False).encode('utf-8'),
                               file_name=f"activity_log_{date.today().isoformat()}.csv", mime="text/csv")

    with tab2:
        if st.button("🔄 Load server activity", key="load_server_activity"):
            try:
                st.session_state['server_activities'] = get_client().list_activities()
            except ApiError as e:
                handle_api_error(e, "load server activity")

        activities = st.session_state.get('server_activities')
        if activities is None:
            st.caption("Server activity is loaded on request")
        elif not activities:
            st.info("The server reported no activity")
        else:
            st.dataframe(pd.json_normalize(activities), use_container_width=True, hide_index=True)
