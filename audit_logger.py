"""
audit_logger.py - Activity Tracking and Audit Trail
Records every create / edit / delete / export made from the dashboard in a
local SQLite activity log so administrators can see who changed what.
"""

import json
import logging
import sqlite3
from datetime import datetime
from typing import Optional, Dict, Any

import streamlit as st

from config import Config


logger = logging.getLogger(__name__)


def _connect(db_path=None):
    conn = sqlite3.connect(db_path or Config.AUDIT_DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute('''
        CREATE TABLE IF NOT EXISTS activity_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT,
            timestamp TEXT,
            action_type TEXT,
            module TEXT,
            description TEXT,
            affected_record_id TEXT,
            old_values TEXT,
            new_values TEXT
        )
    ''')
    return conn


def _session_username():
    """Username of the logged-in dashboard user, None when logged out"""
    if not st.session_state.get('authenticated', False):
        return None
    user = st.session_state.get('user') or {}
    return user.get('name') or user.get('email') or 'Unknown'


class AuditLogger:
    """
    Centralized audit logging for user activities
    """

    ACTION_ADD = "Add"
    ACTION_EDIT = "Edit"
    ACTION_DELETE = "Delete"
    ACTION_EXPORT = "Export"
    ACTION_UPLOAD = "Upload"
    ACTION_LOGIN = "Login"
    ACTION_LOGOUT = "Logout"

    MODULE_EMPLOYEE = "Employee"
    MODULE_TEMP_EMPLOYEE = "Temporary Employee"
    MODULE_BRANCH = "Branch"
    MODULE_VEHICLE = "Vehicle"
    MODULE_VACATION = "Vacation"
    MODULE_EXPENDITURE = "Expenditure"
    MODULE_DOCUMENTS = "Documents"
    MODULE_SYSTEM = "System"

    db_path = None

    @staticmethod
    def log_action(
        action_type: str,
        module: str,
        description: str,
        affected_record_id: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        username: Optional[str] = None
    ):
        """
        Log a user action to the audit trail

        Args:
            action_type: Type of action (Add, Edit, Delete, Export, ...)
            module: Feature area (Employee, Branch, ...)
            description: Human-readable description of the action
            affected_record_id: ID of the affected record (optional)
            old_values: Previous values before change (optional)
            new_values: New values after change (optional)
            username: Acting user; defaults to the logged-in session user

        Returns:
            True when the entry was written
        """
        username = username or _session_username()
        if not username:
            return False

        try:
            conn = _connect(AuditLogger.db_path)
            try:
                conn.execute('''
                    INSERT INTO activity_log (
                        username, timestamp, action_type, module, description,
                        affected_record_id, old_values, new_values
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ''', (
                    username,
                    datetime.now().isoformat(timespec='seconds'),
                    action_type,
                    module,
                    description,
                    str(affected_record_id) if affected_record_id is not None else None,
                    json.dumps(old_values, default=str) if old_values else None,
                    json.dumps(new_values, default=str) if new_values else None,
                ))
                conn.commit()
            finally:
                conn.close()
            return True
        except sqlite3.Error as e:
            # The audit trail must never block the user's operation
            logger.warning("Audit logging error: %s", e)
            return False

    @staticmethod
    def log_record_action(action_type: str, module: str, record_name: str, record_id=None,
                          details: str = "", old_values=None, new_values=None, username=None):
        """Convenience method for add/edit/delete of any dashboard record"""
        description = f"{action_type} {module.lower()}: {record_name}"
        if details:
            description += f" - {details}"
        return AuditLogger.log_action(
            action_type=action_type,
            module=module,
            description=description,
            affected_record_id=record_id,
            old_values=old_values,
            new_values=new_values,
            username=username
        )

    @staticmethod
    def log_upload(owner_name: str, uploaded: int, failed: int, username=None):
        description = f"Uploaded {uploaded} document(s) for {owner_name}"
        if failed:
            description += f", {failed} failed"
        return AuditLogger.log_action(
            action_type=AuditLogger.ACTION_UPLOAD,
            module=AuditLogger.MODULE_DOCUMENTS,
            description=description,
            username=username
        )

    @staticmethod
    def log_data_export(module: str, record_count: int, export_format: str, username=None):
        """Convenience method for logging report downloads"""
        description = f"Exported {record_count} records from {module} as {export_format}"
        return AuditLogger.log_action(
            action_type=AuditLogger.ACTION_EXPORT,
            module=module,
            description=description,
            username=username
        )

    @staticmethod
    def get_activity_logs(
        username: Optional[str] = None,
        action_type: Optional[str] = None,
        module: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 1000
    ):
        """
        Retrieve activity logs with optional filtering, newest first

        Returns:
            List of dicts
        """
        query = "SELECT * FROM activity_log WHERE 1=1"
        params = []

        if username:
            query += " AND username = ?"
            params.append(username)
        if action_type:
            query += " AND action_type = ?"
            params.append(action_type)
        if module:
            query += " AND module = ?"
            params.append(module)
        if start_date:
            query += " AND DATE(timestamp) >= ?"
            params.append(start_date)
        if end_date:
            query += " AND DATE(timestamp) <= ?"
            params.append(end_date)

        query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
        params.append(limit)

        conn = _connect(AuditLogger.db_path)
        try:
            return [dict(row) for row in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    @staticmethod
    def get_recent_activities(limit: int = 50):
        """Most recent activities across all users"""
        return AuditLogger.get_activity_logs(limit=limit)
