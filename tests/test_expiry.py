"""
Expiry classification tests

Covers date parsing, bucket and severity thresholds, classification of
each entity kind and summary counts.
"""

from datetime import date, datetime

import pytest

from expiry import (
    parse_date, bucket_for, severity_for, classify, summarize, document_count,
    vehicle_owner_name, owner_location,
    EMPLOYEE_DOCUMENTS, BRANCH_DOCUMENTS, VEHICLE_DOCUMENTS,
    BUCKET_EXPIRED, BUCKET_CRITICAL, BUCKET_WARNING, BUCKET_VALID,
)


# ============================================================================
# PARSING
# ============================================================================

class TestParseDate:
    """Tests for parse_date."""

    @pytest.mark.parametrize('value, expected', [
        ('2024-06-03', date(2024, 6, 3)),
        ('2024-06-03T00:00:00.000Z', date(2024, 6, 3)),
        ('2024-06-03T10:15:00+03:00', date(2024, 6, 3)),
        ('2024-06-03 10:15', date(2024, 6, 3)),
        (' 2024-06-03 ', date(2024, 6, 3)),
        (date(2024, 6, 3), date(2024, 6, 3)),
        (datetime(2024, 6, 3, 18, 30), date(2024, 6, 3)),
    ])
    def test_accepted_inputs(self, value, expected):
        assert parse_date(value) == expected

    @pytest.mark.parametrize('value', [
        None, '', '   ', 'garbage', '2024-13-01', '03/06/2024', 20240603, [], {},
        '2024-06-03garbage', '2024-06-03xyz', '2024-06-031', '2024-06-03T', '2024-06-03T10:00junk',
    ])
    def test_rejected_inputs_return_none(self, value):
        assert parse_date(value) is None


# ============================================================================
# THRESHOLDS
# ============================================================================

class TestBuckets:
    """Tests for bucket_for and severity_for."""

    @pytest.mark.parametrize('days_left, bucket', [
        (-30, BUCKET_EXPIRED),
        (-1, BUCKET_EXPIRED),
        (0, BUCKET_CRITICAL),
        (7, BUCKET_CRITICAL),
        (8, BUCKET_WARNING),
        (30, BUCKET_WARNING),
        (31, BUCKET_VALID),
        (400, BUCKET_VALID),
    ])
    def test_bucket_boundaries(self, days_left, bucket):
        assert bucket_for(days_left) == bucket

    @pytest.mark.parametrize('days_left, severity', [
        (0, 'critical'),
        (7, 'critical'),
        (8, 'warning'),
        (15, 'warning'),
        (16, 'expiring'),
        (30, 'expiring'),
    ])
    def test_severity_boundaries(self, days_left, severity):
        assert severity_for(days_left) == severity


# ============================================================================
# CLASSIFICATION
# ============================================================================

class TestClassify:
    """Tests for classify."""

    def test_qid_two_days_out_is_critical(self, today):
        entries = classify(today, [{'_id': 'e1', 'name': 'Ahmed', 'qidExpiry': '2024-06-03'}], EMPLOYEE_DOCUMENTS)

        assert len(entries) == 1
        assert entries[0]['days_left'] == 2
        assert entries[0]['bucket'] == BUCKET_CRITICAL
        assert entries[0]['days_overdue'] == 0

    def test_passport_twelve_days_overdue(self, today):
        entries = classify(today, [{'name': 'Ahmed', 'passportExpiry': '2024-05-20'}], EMPLOYEE_DOCUMENTS)

        assert entries[0]['bucket'] == BUCKET_EXPIRED
        assert entries[0]['days_left'] == -12
        assert entries[0]['days_overdue'] == 12

    def test_datetime_today_counts_whole_days(self):
        morning = datetime(2024, 6, 1, 9, 0)
        entries = classify(morning, [{'name': 'A', 'qidExpiry': '2024-06-03'}], EMPLOYEE_DOCUMENTS)

        assert entries[0]['days_left'] == 2
        assert entries[0]['bucket'] == BUCKET_CRITICAL

    def test_trailing_text_after_date_yields_no_entry(self, today):
        record = {'name': 'A', 'qidExpiry': '2024-06-03garbage', 'visaExpiry': '2024-06-031'}
        assert classify(today, [record], EMPLOYEE_DOCUMENTS) == []

    def test_expiry_today_is_critical(self, today):
        entries = classify(today, [{'qidExpiry': today}], EMPLOYEE_DOCUMENTS)

        assert entries[0]['days_left'] == 0
        assert entries[0]['bucket'] == BUCKET_CRITICAL

    def test_entry_fields(self, today, employees):
        entries = classify(today, employees[:1], EMPLOYEE_DOCUMENTS, category='employee')
        qid = next(e for e in entries if e['type_key'] == 'qid')

        assert qid['owner_id'] == 'e1'
        assert qid['owner_name'] == 'Ahmed'
        assert qid['owner_location'] == 'Doha Central'
        assert qid['category'] == 'employee'
        assert qid['document_type'] == 'QID'
        assert qid['number'] == '289'
        assert qid['expiry_date'] == date(2024, 6, 3)

    def test_missing_number_defaults(self, today, employees):
        entries = classify(today, employees[:1], EMPLOYEE_DOCUMENTS)
        passport = next(e for e in entries if e['type_key'] == 'passport')
        assert passport['number'] == 'N/A'

    def test_absent_and_malformed_fields_yield_no_entries(self, today, employees):
        # Li only carries a malformed passport date
        assert classify(today, [employees[2]], EMPLOYEE_DOCUMENTS) == []

    def test_never_raises_on_junk(self, today):
        records = [None, 'x', 5, {'qidExpiry': 12345}, {'visaExpiry': {'$date': 1}}, {}]
        assert classify(today, records, EMPLOYEE_DOCUMENTS) == []
        assert classify(today, None, EMPLOYEE_DOCUMENTS) == []

    def test_branch_documents(self, today, branches):
        entries = classify(today, branches, BRANCH_DOCUMENTS, category='branch')
        by_type = {(e['owner_name'], e['type_key']): e for e in entries}

        assert by_type[('Doha Central', 'cr')]['bucket'] == BUCKET_EXPIRED
        assert by_type[('Doha Central', 'cr')]['number'] == 'CR-100'
        assert by_type[('Doha Central', 'ruksa')]['days_left'] == 4
        assert by_type[('Doha Central', 'computerCard')]['bucket'] == BUCKET_VALID
        assert by_type[('Dubai Marina', 'certification')]['days_left'] == 24
        assert by_type[('Dubai Marina', 'certification')]['owner_location'] == 'Dubai'
        assert len(entries) == 4

    def test_vehicle_owner_name(self, today):
        vehicle = {'licenseNumber': 'QA-1', 'make': 'Toyota', 'model': 'Hiace', 'licenseExpiry': '2024-06-10'}
        entries = classify(today, [vehicle], VEHICLE_DOCUMENTS, owner_name=vehicle_owner_name)

        assert entries[0]['owner_name'] == 'Toyota Hiace (QA-1)'
        assert entries[0]['number'] == 'QA-1'

    def test_owner_location_prefers_first_field(self):
        assert owner_location({'location': 'Doha', 'workLocation': 'X'}) == 'Doha'
        assert owner_location({'visaAddedBranch': 'Lusail'}) == 'Lusail'
        assert owner_location({}) == ''


# ============================================================================
# SUMMARY
# ============================================================================

class TestSummarize:
    """Tests for summarize and document_count."""

    def test_counts(self, today, employees):
        entries = classify(today, employees, EMPLOYEE_DOCUMENTS)
        summary = summarize(entries, total_possible=len(employees) * len(EMPLOYEE_DOCUMENTS))

        assert summary['tracked'] == 4
        assert len(summary['expired']) == 1
        assert len(summary['expiring']) == 2
        assert summary['critical'] == 1
        assert summary['warning'] == 1
        assert summary['valid'] == 1
        assert summary['untracked'] == 8

    def test_by_type(self, today, employees):
        summary = summarize(classify(today, employees, EMPLOYEE_DOCUMENTS))

        assert summary['by_type']['Passport'] == {'expired': 1, 'expiring': 0, 'valid': 0}
        assert summary['by_type']['QID'] == {'expired': 0, 'expiring': 1, 'valid': 0}
        assert summary['by_type']['Medical Card'] == {'expired': 0, 'expiring': 0, 'valid': 1}

    def test_empty(self):
        summary = summarize([])
        assert summary['tracked'] == 0
        assert summary['expired'] == []
        assert summary['untracked'] == 0

    def test_document_count(self, employees):
        assert document_count(employees[0], EMPLOYEE_DOCUMENTS) == 2
        assert document_count(employees[2], EMPLOYEE_DOCUMENTS) == 0
