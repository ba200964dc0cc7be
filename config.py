"""
config.py - Application Configuration
BranchDesk HR & Fleet Administration Dashboard
All settings come from environment variables with local-development defaults
"""

import os
import logging


class Config:
    API_BASE_URL = os.environ.get('BRANCHDESK_API_URL', 'http://localhost:5000')
    REQUEST_TIMEOUT = float(os.environ.get('BRANCHDESK_TIMEOUT', '30'))
    AUDIT_DB_PATH = os.environ.get('BRANCHDESK_AUDIT_DB', 'branchdesk_audit.db')
    LOG_LEVEL = os.environ.get('BRANCHDESK_LOG_LEVEL', 'INFO')

    # 'pessimistic' waits for the server before touching local state,
    # 'optimistic' applies locally first and rolls back on failure
    MUTATION_POLICY = os.environ.get('BRANCHDESK_MUTATION_POLICY', 'pessimistic')

    COMPANY_NAME = os.environ.get('BRANCHDESK_COMPANY', 'BranchDesk')
    CURRENCY = os.environ.get('BRANCHDESK_CURRENCY', 'QAR')

    # Page sizes per view
    EMPLOYEES_PER_PAGE = 10
    BRANCHES_PER_PAGE = 10
    VEHICLES_PER_PAGE = 15
    VACATIONS_PER_PAGE = 10
    EXPENDITURES_PER_PAGE = 10
    DOCUMENTS_PER_PAGE = 15
    EXPIRY_ROWS_PER_PAGE = 10

    # Expiry thresholds (days)
    CRITICAL_DAYS = 7
    WARNING_DAYS = 30
    BADGE_WARNING_DAYS = 15


def configure_logging(level=None):
    """Configure root logging once for the whole application"""
    level = level or Config.LOG_LEVEL
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
