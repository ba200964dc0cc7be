"""
Report view and export tests.
"""

import pandas as pd
import pytest

from analytics import expenditure_summary
from list_manager import ASC, DESC
from reports import (
    collect_entries, expired_view, expiring_view, report_rows, rows_to_dataframe,
    document_type_options, expiry_overview, generate_expiry_pdf, generate_expiry_excel, generate_branch_month_pdf,
    VIEW_EXPIRED, VIEW_EXPIRING,
)


@pytest.fixture
def entries(today, branches, employees, temp_employees):
    return collect_entries(today, branches, employees, temp_employees)


class TestCollectEntries:
    """Tests for collect_entries."""

    def test_all_categories_present(self, entries):
        assert {e['category'] for e in entries} == {'employee', 'temp_employee', 'branch', 'vehicle'}

    def test_vehicles_optional(self, today, branches, employees, temp_employees):
        entries = collect_entries(today, branches, employees, temp_employees, include_vehicles=False)
        assert all(e['category'] != 'vehicle' for e in entries)

    def test_vehicle_entries_carry_branch_location(self, entries):
        vehicle = next(e for e in entries if e['category'] == 'vehicle' and e['number'] == 'DX-7')
        assert vehicle['owner_location'] == 'Dubai Marina'
        assert vehicle['owner_name'] == 'Nissan Urvan (DX-7)'

    def test_tolerates_missing_collections(self, today):
        assert collect_entries(today) == []


class TestViews:
    """Tests for the expired and expiring views."""

    def test_expired_default_sort_most_overdue_first(self, entries):
        result = expired_view(entries)
        overdue = [row['days_overdue'] for row in result['rows']]

        # CR 31, passport 12, vehicle licence DX-7 2, temp QID 1
        assert overdue == [31, 12, 2, 1]
        assert result['total'] == 4

    def test_expiring_default_sort_soonest_first(self, entries):
        result = expiring_view(entries)
        days = [row['days_left'] for row in result['rows']]

        assert days == sorted(days)
        assert days == [2, 4, 9, 19, 24]

    def test_expiring_excludes_valid_and_expired(self, entries):
        for row in expiring_view(entries)['rows']:
            assert 0 <= row['days_left'] <= 30

    def test_sort_override(self, entries):
        result = expired_view(entries, sort_key='days_overdue', sort_dir=ASC)
        assert [row['days_overdue'] for row in result['rows']] == [1, 2, 12, 31]

    def test_search_owner_name_and_location(self, entries):
        by_name = expired_view(entries, search='ahmed')
        assert [row['document_type'] for row in by_name['rows']] == ['Passport']

        by_location = expiring_view(entries, search='dubai')
        assert {row['owner_location'] for row in by_location['rows']} == {'Dubai', 'Dubai Marina'}

    def test_type_filter(self, entries):
        result = expired_view(entries, type_filter='qid')
        assert [row['owner_name'] for row in result['rows']] == ['Omar']

    def test_category_filter(self, entries):
        result = expiring_view(entries, category='branch')
        assert [row['type_key'] for row in result['rows']] == ['ruksa', 'certification']

    def test_pagination_after_sorting(self, entries):
        first = expiring_view(entries, page=1, page_size=2)
        second = expiring_view(entries, page=2, page_size=2)

        assert [row['days_left'] for row in first['page']] == [2, 4]
        assert [row['days_left'] for row in second['page']] == [9, 19]
        assert first['total_pages'] == 3

    def test_report_rows_ignore_page(self, entries):
        rows = report_rows(entries, VIEW_EXPIRING, page=3, page_size=2, sort_dir=DESC)
        assert [row['days_left'] for row in rows] == [24, 19, 9, 4, 2]


class TestOverview:
    def test_document_type_options(self, entries):
        options = dict(document_type_options(entries))
        assert options['qid'] == 'QID'
        assert options['license'] == 'Vehicle License'

    def test_expiry_overview(self, entries):
        overview = expiry_overview(entries)
        assert overview['expired'] == 4
        assert overview['expiring'] == 5
        assert overview['critical'] == 2
        assert overview['warning'] == 3


class TestExport:
    """Tests for dataframe, PDF and Excel export."""

    def test_expired_dataframe(self, entries):
        df = rows_to_dataframe(report_rows(entries, VIEW_EXPIRED), VIEW_EXPIRED)

        assert list(df.columns) == ['Owner', 'Category', 'Location', 'Document', 'Number',
                                    'Expiry Date', 'Days Overdue']
        assert df.iloc[0]['Owner'] == 'Doha Central'
        assert df.iloc[0]['Category'] == 'Branch'
        assert df.iloc[0]['Expiry Date'] == '01 May 2024'

    def test_expiring_dataframe_has_severity(self, entries):
        df = rows_to_dataframe(report_rows(entries, VIEW_EXPIRING), VIEW_EXPIRING)

        assert list(df['Days Left']) == [2, 4, 9, 19, 24]
        assert list(df['Severity']) == ['Critical', 'Critical', 'Warning', 'Expiring', 'Expiring']

    def test_empty_dataframe_keeps_columns(self):
        df = rows_to_dataframe([], VIEW_EXPIRING)
        assert df.empty
        assert 'Severity' in df.columns

    def test_pdf(self, entries):
        rows = report_rows(entries, VIEW_EXPIRED)
        buffer = generate_expiry_pdf(rows, 'Expired Documents', {'Type': 'qid'}, 'tester', VIEW_EXPIRED)
        assert buffer.getvalue().startswith(b'%PDF')

    def test_pdf_without_rows(self):
        buffer = generate_expiry_pdf([], 'Expiring Soon', {}, 'tester', VIEW_EXPIRING)
        assert buffer.getvalue().startswith(b'%PDF')

    def test_excel_round_trip_preserves_order(self, entries):
        rows = report_rows(entries, VIEW_EXPIRING)
        df = pd.read_excel(generate_expiry_excel(rows, VIEW_EXPIRING), sheet_name='Expiring Soon')

        assert list(df['Days Left']) == [2, 4, 9, 19, 24]


class TestBranchMonthReport:
    """Tests for generate_branch_month_pdf."""

    def test_pdf(self):
        records = [
            {'branchId': 'b1', 'branchName': 'Doha & Co', 'date': '2024-06-03', 'income': 1000,
             'deliveryMoney': 40,
             'expenses': [{'category': 'Rent', 'amount': 300, 'type': 'GENERAL EXPENSE'},
                          {'category': 'Food', 'amount': 120, 'type': 'NORMAL EXPENSE'}],
             'onlineDeliveries': [{'platform': 'Talabat', 'amount': 80}]},
            {'branchId': 'b1', 'branchName': 'Doha & Co', 'date': '2024-06-01', 'income': 200,
             'totalExpenses': 500, 'earnings': -300},
        ]
        summary = expenditure_summary(records, 'b1', month=6, year=2024)
        buffer = generate_branch_month_pdf('Doha & Co', 6, 2024, summary, 'tester')
        assert buffer.getvalue().startswith(b'%PDF')

    def test_pdf_for_month_without_records(self):
        summary = expenditure_summary([], 'b1', month=2, year=2024)
        buffer = generate_branch_month_pdf('Doha Central', 2, 2024, summary, 'tester')
        assert buffer.getvalue().startswith(b'%PDF')
