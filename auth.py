"""
auth.py - Login, Logout and Page Access
The backend issues the bearer token; this module keeps it on one ApiClient
per Streamlit session and builds the session's DashboardStore around it.
"""

import logging

import streamlit as st

from api_client import ApiClient
from audit_logger import AuditLogger
from errors import ApiError, AuthenticationError
from store import DashboardStore


logger = logging.getLogger(__name__)


ROLE_ADMIN = 'admin'
ROLE_MANAGER = 'manager'

# Pages a manager may open; admins see everything
MANAGER_PAGES = {
    "🏠 Home",
    "👥 Employees",
    "🕒 Temporary Employees",
    "🏖️ Vacations",
    "💰 Expenditures",
    "📄 Document Expiry",
}


def get_user_role() -> str:
    user = st.session_state.get('user') or {}
    return str(user.get('role') or ROLE_MANAGER).lower()


def get_user_branch():
    """Branch name a manager is limited to; None for administrators"""
    if get_user_role() == ROLE_ADMIN:
        return None
    user = st.session_state.get('user') or {}
    return str(user.get('branch') or '')


def can_access_page(page_name: str) -> bool:
    """Check whether the current user may open a page"""
    if get_user_role() == ROLE_ADMIN:
        return True
    return page_name in MANAGER_PAGES


def get_accessible_menu_items(menu_items: list) -> list:
    return [item for item in menu_items if can_access_page(item)]


def start_session(client: ApiClient, user: dict):
    """Store the authenticated client and a fresh store in the session"""
    st.session_state['authenticated'] = True
    st.session_state['user'] = user or {}
    st.session_state['api_client'] = client
    st.session_state['store'] = DashboardStore(client)
    st.session_state['needs_refresh'] = True


def get_client() -> ApiClient:
    return st.session_state['api_client']


def get_store() -> DashboardStore:
    return st.session_state['store']


def login_page():
    """Display login page"""
    st.title("🔐 BranchDesk - Login")

    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        st.markdown("### Please login to continue")

        with st.form("login_form"):
            email = st.text_input("Email", key="login_email")
            password = st.text_input("Password", type="password", key="login_password")
            submitted = st.form_submit_button("🔓 Login", use_container_width=True)

        if submitted:
            if not email or not password:
                st.warning("Please enter both email and password")
                return

            client = ApiClient()
            try:
                data = client.login(email, password)
            except AuthenticationError as e:
                st.error(e.message)
                return
            except ApiError as e:
                st.error(f"Login failed: {e.message}")
                return

            user = data.get('user') or {'email': email}
            start_session(client, user)
            AuditLogger.log_action(
                AuditLogger.ACTION_LOGIN, AuditLogger.MODULE_SYSTEM,
                f"User logged in: {user.get('name') or email}"
            )
            st.success(f"Welcome back, {user.get('name') or email}!")
            st.rerun()


def logout():
    """Logout current user and drop the session's client and data"""
    if st.session_state.get('authenticated'):
        AuditLogger.log_action(AuditLogger.ACTION_LOGOUT, AuditLogger.MODULE_SYSTEM, "User logged out")

    client = st.session_state.get('api_client')
    if client is not None:
        client.set_token(None)

    for key in ('authenticated', 'user', 'api_client', 'store', 'needs_refresh'):
        st.session_state.pop(key, None)


def handle_api_error(error: ApiError, action: str):
    """Show an API failure; an expired session sends the user back to login"""
    if isinstance(error, AuthenticationError):
        logger.info("Session expired during %s", action)
        logout()
        st.warning("Your session has expired. Please log in again.")
        st.rerun()
    st.error(f"❌ Failed to {action}: {error.message}")
