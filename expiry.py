"""
expiry.py - Document Expiry Classification
Computes days-until-expiry for every tracked document of an entity and
buckets each one into expired / critical / warning / valid.

One classifier serves employees, temporary employees, branches and vehicles;
each entity kind only supplies its own list of document field specs.
"""

import re
from datetime import datetime, date

from config import Config


BUCKET_EXPIRED = 'expired'
BUCKET_CRITICAL = 'critical'
BUCKET_WARNING = 'warning'
BUCKET_VALID = 'valid'

SEVERITY_CRITICAL = 'critical'
SEVERITY_WARNING = 'warning'
SEVERITY_EXPIRING = 'expiring'


def field_spec(field, label, type_key, number_field=None):
    """Describe one tracked document field of an entity"""
    return {
        'field': field,
        'label': label,
        'type_key': type_key,
        'number_field': number_field,
    }


EMPLOYEE_DOCUMENTS = [
    field_spec('qidExpiry', 'QID', 'qid', 'qid'),
    field_spec('passportExpiry', 'Passport', 'passport', 'passportNumber'),
    field_spec('visaExpiry', 'Visa', 'visa', 'visaNumber'),
    field_spec('medicalCardExpiry', 'Medical Card', 'medicalCard', 'medicalCardNumber'),
]

TEMP_EMPLOYEE_DOCUMENTS = list(EMPLOYEE_DOCUMENTS)

BRANCH_DOCUMENTS = [
    field_spec('crExpiry', 'Company CR', 'cr', 'crNumber'),
    field_spec('ruksaExpiry', 'Ruksa License', 'ruksa', 'ruksaNumber'),
    field_spec('computerCardExpiry', 'Computer Card', 'computerCard', 'computerCardNumber'),
    field_spec('certificationExpiry', 'Certification', 'certification', 'certificationNumber'),
]

VEHICLE_DOCUMENTS = [
    field_spec('licenseExpiry', 'Vehicle License', 'license', 'licenseNumber'),
    field_spec('insuranceExpiry', 'Vehicle Insurance', 'insurance', 'licenseNumber'),
]

LOCATION_FIELDS = ('location', 'workLocation', 'branch', 'visaAddedBranch', 'branchName')

# A bare date, optionally followed by an ISO time and UTC offset
ISO_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$')


def parse_date(value):
    """
    Parse an expiry value into a date.

    Accepts date/datetime objects, 'YYYY-MM-DD' strings and ISO datetime
    strings. Anything else (empty, malformed, wrong type) returns None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not ISO_DATE.match(text):
        return None
    try:
        return datetime.strptime(text[:10], '%Y-%m-%d').date()
    except ValueError:
        return None


def as_date(today):
    """Reference day as a date; datetimes drop their time of day"""
    return today.date() if isinstance(today, datetime) else today


def days_until(expiry, today):
    """Whole days from today until expiry (negative once expired)"""
    return (expiry - as_date(today)).days


def bucket_for(days_left):
    """Map a day offset onto its expiry bucket"""
    if days_left < 0:
        return BUCKET_EXPIRED
    if days_left <= Config.CRITICAL_DAYS:
        return BUCKET_CRITICAL
    if days_left <= Config.WARNING_DAYS:
        return BUCKET_WARNING
    return BUCKET_VALID


def severity_for(days_left):
    """Badge severity used by the expiring-soon report rows"""
    if days_left <= Config.CRITICAL_DAYS:
        return SEVERITY_CRITICAL
    if days_left <= Config.BADGE_WARNING_DAYS:
        return SEVERITY_WARNING
    return SEVERITY_EXPIRING


def default_owner_name(record):
    return record.get('name') or 'N/A'


def vehicle_owner_name(vehicle):
    make = vehicle.get('make') or ''
    model = vehicle.get('model') or ''
    return f"{make} {model} ({vehicle.get('licenseNumber') or 'Unknown'})".strip()


def owner_location(record):
    for key in LOCATION_FIELDS:
        if record.get(key):
            return record[key]
    return ''


def classify(today, records, field_specs, category=None, owner_name=None):
    """
    Classify every tracked document of every record.

    Args:
        today: Reference date (injected so results are reproducible)
        records: Iterable of entity dicts
        field_specs: List of field specs (see field_spec)
        category: Tag copied onto each entry ('employee', 'branch', ...)
        owner_name: Optional callable producing the display name of a record

    Returns:
        List of classified entry dicts, one per present and parseable field.
        Absent or malformed dates produce no entry.
    """
    today = as_date(today)
    owner_name = owner_name or default_owner_name
    entries = []

    for record in records or []:
        if not isinstance(record, dict):
            continue

        for spec in field_specs:
            expiry = parse_date(record.get(spec['field']))
            if expiry is None:
                continue

            days_left = days_until(expiry, today)
            number_field = spec.get('number_field')
            entries.append({
                'owner_id': record.get('_id') or record.get('id'),
                'owner_name': owner_name(record),
                'owner_location': owner_location(record),
                'category': category,
                'document_type': spec['label'],
                'type_key': spec['type_key'],
                'number': (record.get(number_field) if number_field else None) or 'N/A',
                'expiry_date': expiry,
                'days_left': days_left,
                'days_overdue': abs(days_left) if days_left < 0 else 0,
                'bucket': bucket_for(days_left),
            })

    return entries


def summarize(entries, total_possible=None):
    """
    Aggregate classified entries into bucket lists and counts.

    total_possible is the number of document slots (records x specs); when
    given, 'untracked' reports how many slots carried no usable date.
    """
    expired = [e for e in entries if e['bucket'] == BUCKET_EXPIRED]
    expiring = [e for e in entries if e['bucket'] in (BUCKET_CRITICAL, BUCKET_WARNING)]
    critical = sum(1 for e in expiring if e['bucket'] == BUCKET_CRITICAL)

    by_type = {}
    for entry in entries:
        counts = by_type.setdefault(entry['document_type'], {'expired': 0, 'expiring': 0, 'valid': 0})
        if entry['bucket'] == BUCKET_EXPIRED:
            counts['expired'] += 1
        elif entry['bucket'] == BUCKET_VALID:
            counts['valid'] += 1
        else:
            counts['expiring'] += 1

    tracked = len(entries)
    return {
        'expired': expired,
        'expiring': expiring,
        'critical': critical,
        'warning': len(expiring) - critical,
        'valid': tracked - len(expired) - len(expiring),
        'tracked': tracked,
        'untracked': (total_possible - tracked) if total_possible is not None else 0,
        'by_type': by_type,
    }


def document_count(record, field_specs):
    """Number of documents on a record that carry a usable expiry date"""
    return sum(1 for spec in field_specs if parse_date(record.get(spec['field'])) is not None)
