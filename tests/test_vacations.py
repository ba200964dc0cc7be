"""
Vacation duration, inference, status and form payload tests.
"""

from datetime import date, datetime

import pytest

from errors import ValidationError
from vacations import (
    resolve_end_date, infer_duration_code, vacation_status, total_days, days_remaining,
    build_vacation_payload, form_from_vacation, vacation_accessors, DURATION_OFFSETS,
    STATUS_UPCOMING, STATUS_ACTIVE, STATUS_COMPLETED, STATUS_UNKNOWN,
)


class TestResolveEndDate:
    """Tests for resolve_end_date."""

    def test_one_month_is_thirty_inclusive_days(self):
        assert resolve_end_date(date(2024, 1, 1), '1month') == date(2024, 1, 30)

    @pytest.mark.parametrize('code, expected', [
        ('1week', date(2024, 1, 7)),
        ('2weeks', date(2024, 1, 14)),
        ('2months', date(2024, 2, 29)),
        ('3months', date(2024, 3, 30)),
        ('6months', date(2024, 6, 28)),
        ('1year', date(2024, 12, 25)),
    ])
    def test_table(self, code, expected):
        assert resolve_end_date(date(2024, 1, 1), code) == expected

    def test_accepts_iso_strings(self):
        assert resolve_end_date('2024-01-01T00:00:00.000Z', '1week') == date(2024, 1, 7)

    def test_deterministic(self):
        assert resolve_end_date('2024-03-10', '3months') == resolve_end_date('2024-03-10', '3months')

    def test_unknown_code_raises(self):
        with pytest.raises(ValueError):
            resolve_end_date(date(2024, 1, 1), '5days')

    def test_bad_start_raises(self):
        with pytest.raises(ValueError):
            resolve_end_date('nope', '1week')


class TestInferDuration:
    """Tests for infer_duration_code."""

    def test_two_months(self):
        assert infer_duration_code('2024-01-01', '2024-02-29') == '2months'

    @pytest.mark.parametrize('days, code', [
        (1, '1week'), (7, '1week'), (8, '2weeks'), (14, '2weeks'), (15, '1month'), (30, '1month'),
        (31, '2months'), (40, '2months'), (60, '2months'), (61, '3months'), (90, '3months'),
        (91, '6months'), (180, '6months'), (181, '1year'), (500, '1year'),
    ])
    def test_thresholds(self, days, code):
        start = date(2024, 1, 1)
        end = date.fromordinal(start.toordinal() + days - 1)
        assert infer_duration_code(start, end) == code

    def test_round_trip_for_every_code(self):
        start = date(2024, 1, 1)
        for code in DURATION_OFFSETS:
            assert infer_duration_code(start, resolve_end_date(start, code)) == code

    def test_reversed_range_uses_absolute_difference(self):
        assert infer_duration_code('2024-01-07', '2024-01-01') == '1week'

    def test_bad_dates(self):
        assert infer_duration_code('x', '2024-01-01') is None


class TestStatus:
    """Tests for vacation_status, total_days and days_remaining."""

    def test_status(self, today):
        assert vacation_status('2024-06-10', '2024-06-20', today) == STATUS_UPCOMING
        assert vacation_status('2024-05-25', '2024-06-01', today) == STATUS_ACTIVE
        assert vacation_status('2024-05-01', '2024-05-31', today) == STATUS_COMPLETED
        assert vacation_status(None, '2024-05-31', today) == STATUS_UNKNOWN

    def test_total_days_inclusive(self):
        assert total_days('2024-01-01', '2024-01-30') == 30
        assert total_days('', '2024-01-30') == 0

    def test_days_remaining(self, today):
        assert days_remaining('2024-06-10', '2024-06-20', today) == 11
        assert days_remaining('2024-05-25', '2024-06-05', today) == 4
        assert days_remaining('2024-05-01', '2024-05-31', today) == 0

    def test_datetime_today(self):
        now = datetime(2024, 6, 1, 17, 45)
        assert vacation_status('2024-05-25', '2024-06-01', now) == STATUS_ACTIVE
        assert days_remaining('2024-05-25', '2024-06-05', now) == 4


class TestPayload:
    """Tests for build_vacation_payload and form_from_vacation."""

    def test_payload(self, employees):
        form = {'employeeId': 'e1', 'startDate': date(2024, 1, 1), 'duration': '1month', 'reason': '  Hajj '}
        payload = build_vacation_payload(form, employees)

        assert payload == {
            'employeeId': 'e1',
            'employeeName': 'Ahmed',
            'qid': '289',
            'startDate': '2024-01-01',
            'endDate': '2024-01-30',
            'reason': 'Hajj',
        }

    def test_edit_recomputes_end_from_new_start(self, employees):
        vacation = {'employeeId': 'e1', 'startDate': '2024-01-01', 'endDate': '2024-01-30'}
        form = form_from_vacation(vacation)
        form['startDate'] = date(2024, 2, 1)

        assert build_vacation_payload(form, employees)['endDate'] == '2024-03-01'

    def test_missing_fields(self, employees):
        with pytest.raises(ValidationError) as exc:
            build_vacation_payload({'startDate': None}, employees)
        assert 'employee' in str(exc.value)
        assert 'start date' in str(exc.value)
        assert 'duration' in str(exc.value)

    def test_unknown_employee(self, employees):
        with pytest.raises(ValidationError):
            build_vacation_payload({'employeeId': 'zz', 'startDate': '2024-01-01', 'duration': '1week'}, employees)

    def test_unknown_duration(self, employees):
        with pytest.raises(ValidationError):
            build_vacation_payload({'employeeId': 'e1', 'startDate': '2024-01-01', 'duration': '9days'}, employees)

    def test_form_from_vacation(self):
        form = form_from_vacation({
            'employeeId': 'e2', 'employeeName': 'Maria',
            'startDate': '2024-01-01T00:00:00.000Z', 'endDate': '2024-02-29T00:00:00.000Z',
        })
        assert form['startDate'] == date(2024, 1, 1)
        assert form['duration'] == '2months'
        assert form['reason'] == ''


class TestAccessors:
    def test_branch_and_status(self, employees, today):
        accessors = vacation_accessors(employees, today)
        vacation = {'employeeId': 'e2', 'startDate': '2024-06-01', 'endDate': '2024-06-07'}

        assert accessors['branch'](vacation) == 'Dubai Marina'
        assert accessors['status'](vacation) == STATUS_ACTIVE
        assert accessors['totalDays'](vacation) == 7
        assert accessors['branch']({'employeeId': 'missing'}) == ''
