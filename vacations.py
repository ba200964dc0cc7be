"""
vacations.py - Vacation Period Calculations
Duration codes, end-date resolution, duration inference for the edit form,
vacation status and form payload building.

Every month is a fixed 30-day width. Stored vacations were created with
this table, so it must not be replaced with calendar arithmetic.
"""

from datetime import timedelta

from errors import ValidationError
from expiry import parse_date, as_date


# Days added to the start date; the start day itself counts as day one
DURATION_OFFSETS = {
    '1week': 6,
    '2weeks': 13,
    '1month': 29,
    '2months': 59,
    '3months': 89,
    '6months': 179,
    '1year': 359,
}

DURATION_LABELS = {
    '1week': '1 Week',
    '2weeks': '2 Weeks',
    '1month': '1 Month',
    '2months': '2 Months',
    '3months': '3 Months',
    '6months': '6 Months',
    '1year': '1 Year',
}

# Upper bound (in inclusive days) of each duration bucket, smallest first
INFERENCE_THRESHOLDS = [
    (7, '1week'),
    (14, '2weeks'),
    (30, '1month'),
    (60, '2months'),
    (90, '3months'),
    (180, '6months'),
]

STATUS_UPCOMING = 'Upcoming'
STATUS_ACTIVE = 'Active'
STATUS_COMPLETED = 'Completed'
STATUS_UNKNOWN = 'Unknown'


def resolve_end_date(start_date, duration_code):
    """
    End date of a vacation starting on start_date.

    Raises:
        ValueError: unknown duration code or unparseable start date
    """
    if duration_code not in DURATION_OFFSETS:
        raise ValueError(f"Unknown duration code: {duration_code!r}")
    start = parse_date(start_date)
    if start is None:
        raise ValueError(f"Invalid start date: {start_date!r}")
    return start + timedelta(days=DURATION_OFFSETS[duration_code])


def infer_duration_code(start_date, end_date):
    """
    Pick the duration code to preselect when editing a stored vacation.
    Many ranges map to the same code; a 40-day range comes back as '2months'.
    """
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        return None

    diff_days = abs((end - start).days) + 1
    for upper_bound, code in INFERENCE_THRESHOLDS:
        if diff_days <= upper_bound:
            return code
    return '1year'


def vacation_status(start_date, end_date, today):
    today = as_date(today)
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        return STATUS_UNKNOWN
    if today < start:
        return STATUS_UPCOMING
    if today <= end:
        return STATUS_ACTIVE
    return STATUS_COMPLETED


def total_days(start_date, end_date):
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        return 0
    return (end - start).days + 1


def days_remaining(start_date, end_date, today):
    """Whole vacation length before it starts, days left while active, 0 after"""
    status = vacation_status(start_date, end_date, today)
    if status == STATUS_UPCOMING:
        return total_days(start_date, end_date)
    if status == STATUS_ACTIVE:
        return (parse_date(end_date) - as_date(today)).days
    return 0


def _find_person(people, person_id):
    for person in people or []:
        if person.get('_id') == person_id or person.get('id') == person_id:
            return person
    return None


def build_vacation_payload(form, people):
    """
    Validate the vacation form and build the API payload.

    The end date is always recomputed from the submitted start date and
    duration, both when adding and when editing.

    Raises:
        ValidationError: a required field is missing or invalid
    """
    employee_id = form.get('employeeId')
    start = parse_date(form.get('startDate'))
    duration = form.get('duration')

    missing = []
    if not employee_id:
        missing.append('employee')
    if start is None:
        missing.append('start date')
    if not duration:
        missing.append('duration')
    if missing:
        raise ValidationError(f"Please fill in all required fields: {', '.join(missing)}")
    if duration not in DURATION_OFFSETS:
        raise ValidationError(f"Unknown vacation duration: {duration}")

    employee = _find_person(people, employee_id)
    if employee is None:
        raise ValidationError("Selected employee no longer exists")

    return {
        'employeeId': employee_id,
        'employeeName': employee.get('name') or '',
        'qid': employee.get('qid') or '',
        'startDate': start.isoformat(),
        'endDate': resolve_end_date(start, duration).isoformat(),
        'reason': (form.get('reason') or '').strip(),
    }


def form_from_vacation(vacation):
    """Populate the edit form from a stored vacation"""
    start = parse_date(vacation.get('startDate'))
    end = parse_date(vacation.get('endDate'))
    return {
        'employeeId': vacation.get('employeeId'),
        'employeeName': vacation.get('employeeName') or '',
        'qid': vacation.get('qid') or '',
        'startDate': start,
        'endDate': end,
        'duration': infer_duration_code(start, end),
        'reason': vacation.get('reason') or '',
    }


def vacation_accessors(people, today):
    """Derived fields used by the vacation table filters"""
    by_id = {}
    for person in people or []:
        key = person.get('_id') or person.get('id')
        if key is not None:
            by_id[key] = person

    def status(vacation):
        return vacation_status(vacation.get('startDate'), vacation.get('endDate'), today)

    def branch(vacation):
        person = by_id.get(vacation.get('employeeId')) or {}
        return person.get('workLocation') or person.get('branch') or ''

    def duration_days(vacation):
        return total_days(vacation.get('startDate'), vacation.get('endDate'))

    return {'status': status, 'branch': branch, 'totalDays': duration_days}
