"""
Audit trail tests against a temporary SQLite file.
"""

import json
import sqlite3

import pytest

import audit_logger
from audit_logger import AuditLogger


@pytest.fixture(autouse=True)
def audit_db(tmp_path, monkeypatch):
    path = str(tmp_path / 'audit.db')
    monkeypatch.setattr(AuditLogger, 'db_path', path)
    return path


class TestLogging:
    """Tests for writing audit entries."""

    def test_record_action(self, audit_db):
        assert AuditLogger.log_record_action(
            AuditLogger.ACTION_EDIT, AuditLogger.MODULE_EMPLOYEE, 'Ahmed', 'e1',
            details='role changed', old_values={'role': 'Cashier'}, new_values={'role': 'Supervisor'},
            username='admin'
        ) is True

        logs = AuditLogger.get_activity_logs()
        assert len(logs) == 1
        entry = logs[0]
        assert entry['username'] == 'admin'
        assert entry['description'] == 'Edit employee: Ahmed - role changed'
        assert entry['affected_record_id'] == 'e1'
        assert json.loads(entry['new_values']) == {'role': 'Supervisor'}

    def test_no_user_no_entry(self, monkeypatch):
        monkeypatch.setattr(audit_logger, '_session_username', lambda: None)

        assert AuditLogger.log_action(AuditLogger.ACTION_ADD, AuditLogger.MODULE_BRANCH, 'x') is False
        assert AuditLogger.get_activity_logs() == []

    def test_session_user_is_default(self, monkeypatch):
        monkeypatch.setattr(audit_logger, '_session_username', lambda: 'manager@shop.qa')

        AuditLogger.log_data_export(AuditLogger.MODULE_DOCUMENTS, 12, 'PDF')
        entry = AuditLogger.get_recent_activities(limit=1)[0]
        assert entry['username'] == 'manager@shop.qa'
        assert entry['description'] == 'Exported 12 records from Documents as PDF'

    def test_upload_description(self):
        AuditLogger.log_upload('Ahmed', 2, 1, username='admin')
        assert AuditLogger.get_recent_activities()[0]['description'] == 'Uploaded 2 document(s) for Ahmed, 1 failed'

    def test_database_error_is_swallowed(self, monkeypatch):
        def broken(db_path=None):
            raise sqlite3.OperationalError('disk I/O error')

        monkeypatch.setattr(audit_logger, '_connect', broken)
        assert AuditLogger.log_action(AuditLogger.ACTION_ADD, AuditLogger.MODULE_BRANCH, 'x',
                                      username='admin') is False


class TestQueries:
    """Tests for filtering the activity log."""

    def test_filters_and_order(self):
        AuditLogger.log_action(AuditLogger.ACTION_ADD, AuditLogger.MODULE_BRANCH, 'first', username='a')
        AuditLogger.log_action(AuditLogger.ACTION_DELETE, AuditLogger.MODULE_VEHICLE, 'second', username='b')
        AuditLogger.log_action(AuditLogger.ACTION_ADD, AuditLogger.MODULE_VEHICLE, 'third', username='a')

        assert [e['description'] for e in AuditLogger.get_recent_activities()] == ['third', 'second', 'first']
        assert [e['description'] for e in AuditLogger.get_activity_logs(username='a')] == ['third', 'first']
        assert [e['description'] for e in AuditLogger.get_activity_logs(module='Vehicle',
                                                                         action_type='Delete')] == ['second']
        assert len(AuditLogger.get_activity_logs(limit=2)) == 2

    def test_date_filters(self):
        AuditLogger.log_action(AuditLogger.ACTION_ADD, AuditLogger.MODULE_BRANCH, 'x', username='a')
        assert AuditLogger.get_activity_logs(start_date='2000-01-01') != []
        assert AuditLogger.get_activity_logs(end_date='2000-01-01') == []
