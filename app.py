"""
app.py - Main Application Entry Point
BranchDesk HR & Fleet Administration Dashboard
Menu items are filtered by the logged-in user's role
"""

import logging

import streamlit as st

from auth import login_page, logout, get_store, get_accessible_menu_items, get_user_role, handle_api_error
from config import Config, configure_logging
from errors import ApiError

from pages_home import home_page
from pages_employees import employees_page, temp_employees_page
from pages_branches import branches_page
from pages_vehicles import vehicles_page
from pages_vacations import vacations_page
from pages_expenditures import expenditures_page
from pages_documents import document_expiry_page
from pages_activity import activity_log_page


logger = logging.getLogger(__name__)


PAGES = {
    "🏠 Home": home_page,
    "👥 Employees": employees_page,
    "🕒 Temporary Employees": temp_employees_page,
    "🏢 Branches": branches_page,
    "🚗 Vehicles": vehicles_page,
    "🏖️ Vacations": vacations_page,
    "💰 Expenditures": expenditures_page,
    "📄 Document Expiry": document_expiry_page,
    "📜 Activity Log": activity_log_page,
}


def load_data():
    """Fetch every collection when the session asks for a refresh"""
    store = get_store()
    if st.session_state.get('needs_refresh'):
        with st.spinner("Loading data..."):
            try:
                store.refresh()
            except ApiError as e:
                handle_api_error(e, "load data")
                return
        st.session_state['needs_refresh'] = False
        for name, message in store.errors.items():
            logger.warning("Loaded %s with errors: %s", name, message)

    # Failed collections stay flagged until the next successful refresh
    warning = store.load_warning()
    if warning:
        st.warning(f"⚠️ {warning}")


def main():
    """Main application entry point"""

    st.set_page_config(
        page_title=f"{Config.COMPANY_NAME} - HR & Fleet Dashboard",
        page_icon="🏢",
        layout="wide",
        initial_sidebar_state="expanded"
    )

    if 'logging_configured' not in st.session_state:
        configure_logging()
        st.session_state.logging_configured = True

    if not st.session_state.get('authenticated', False):
        login_page()
        return

    load_data()

    user = st.session_state.get('user') or {}
    st.sidebar.markdown(f"## 🏢 {Config.COMPANY_NAME}")
    st.sidebar.markdown("---")
    st.sidebar.markdown(f"**👤 {user.get('name') or user.get('email') or 'User'}**")
    st.sidebar.markdown(f"*{get_user_role().title()}*")
    st.sidebar.markdown("---")

    available = get_accessible_menu_items(list(PAGES))
    if st.session_state.get('current_page') not in available:
        st.session_state.current_page = available[0]

    page = st.sidebar.radio("Navigation", available, index=available.index(st.session_state.current_page))
    st.session_state.current_page = page

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Refresh Data", use_container_width=True):
        st.session_state['needs_refresh'] = True
        st.rerun()

    if st.sidebar.button("🚪 Logout", use_container_width=True):
        logout()
        st.rerun()

    store = get_store()
    if store.loaded_at:
        st.sidebar.caption(f"Data as of {store.loaded_at.strftime('%H:%M:%S')}")

    PAGES[page]()


if __name__ == "__main__":
    main()
