"""
entities.py - Record Normalisation, Branch Index and Write Payloads
Records arrive from the API as JSON dicts; missing fields degrade to
display defaults instead of raising. Branch membership is stored on people
as a branch *name*, so it is resolved once here into an id-keyed index.
"""

from errors import ValidationError
from expiry import parse_date


NA = 'N/A'

PERSON_BRANCH_FIELDS = ('workLocation', 'branch', 'visaAddedBranch')

EMPLOYEE_FIELDS = [
    'name', 'email', 'phone', 'role', 'status', 'nationality', 'salary',
    'workLocation', 'visaAddedBranch', 'doj', 'doe', 'emergencyContact', 'nativeAddress',
    'bankName', 'bankAccountNumber',
    'qid', 'qidExpiry', 'passportNumber', 'passportExpiry',
    'visaNumber', 'visaExpiry', 'medicalCardNumber', 'medicalCardExpiry',
]

TEMP_EMPLOYEE_FIELDS = [
    'name', 'email', 'phone', 'role', 'nationality', 'salary', 'workLocation',
    'qid', 'qidExpiry', 'passportNumber', 'passportExpiry',
    'medicalCardNumber', 'medicalCardExpiry',
]

BRANCH_FIELDS = [
    'name', 'location', 'address', 'manager', 'contactNumber', 'email',
    'bankName', 'bankAccountNumber', 'ibanNumber',
    'crNumber', 'crExpiry', 'ruksaNumber', 'ruksaExpiry',
    'computerCardNumber', 'computerCardExpiry', 'certificationNumber', 'certificationExpiry',
    'baladiyaNumber', 'baladiyaExpiry', 'taxCardNumber', 'taxCardExpiry',
]

VEHICLE_FIELDS = [
    'type', 'licenseNumber', 'make', 'model', 'year', 'color', 'status',
    'licenseExpiry', 'insuranceExpiry',
]

DATE_SUFFIXES = ('Expiry', 'doj', 'doe', 'Date')


def record_id(record):
    return record.get('_id') or record.get('id')


def _display(value):
    return value if value not in (None, '') else NA


def normalize_person(person):
    """Employee / temporary employee with display defaults"""
    person = dict(person or {})
    person['_id'] = record_id(person)
    for key in ('name', 'role', 'status', 'email', 'phone', 'nationality'):
        person[key] = _display(person.get(key))
    for key in PERSON_BRANCH_FIELDS:
        person[key] = person.get(key) or ''
    return person


def normalize_vehicle(vehicle):
    vehicle = dict(vehicle or {})
    for key in ('type', 'make', 'model', 'color', 'year'):
        vehicle[key] = _display(vehicle.get(key))
    vehicle['licenseNumber'] = vehicle.get('licenseNumber') or ''
    vehicle['status'] = vehicle.get('status') or 'active'
    return vehicle


def normalize_branch(branch):
    branch = dict(branch or {})
    branch['_id'] = record_id(branch)
    for key in ('name', 'location', 'manager', 'contactNumber'):
        branch[key] = _display(branch.get(key))
    vehicles = branch.get('vehicles')
    branch['vehicles'] = [v for v in vehicles if isinstance(v, dict)] if isinstance(vehicles, list) else []
    return branch


def normalize_all(records, normalizer):
    """Normalise a list from the API; anything that is not a list of dicts degrades to []"""
    if not isinstance(records, list):
        return []
    return [normalizer(r) for r in records if isinstance(r, dict)]


def person_branch(person):
    """Branch name a person is assigned to ('' when unassigned)"""
    for key in PERSON_BRANCH_FIELDS:
        if person.get(key):
            return person[key]
    return ''


def flatten_vehicles(branches):
    """All vehicles across branches, each tagged with its owning branch"""
    vehicles = []
    for branch in branches or []:
        for vehicle in branch.get('vehicles') or []:
            if not isinstance(vehicle, dict):
                continue
            flat = normalize_vehicle(vehicle)
            flat['branchId'] = record_id(branch)
            flat['branchName'] = branch.get('name') or NA
            vehicles.append(flat)
    return vehicles


class BranchIndex:
    """
    Branch lookups built once per render.

    People reference branches by name; the index resolves each name to the
    branch id a single time so membership queries are dictionary reads.
    """

    def __init__(self, branches, people=()):
        self.by_id = {}
        self.id_by_name = {}
        self.members = {}
        self.unassigned = []

        for branch in branches or []:
            branch_id = record_id(branch)
            self.by_id[branch_id] = branch
            self.members[branch_id] = []
            name = (branch.get('name') or '').strip()
            if name and name not in self.id_by_name:
                self.id_by_name[name] = branch_id

        for person in people or []:
            branch_id = self.id_for_name(person_branch(person))
            if branch_id is None:
                self.unassigned.append(person)
            else:
                self.members[branch_id].append(person)

    def get(self, branch_id):
        return self.by_id.get(branch_id)

    def id_for_name(self, name):
        return self.id_by_name.get((name or '').strip())

    def members_of(self, branch_id):
        return list(self.members.get(branch_id, []))

    def employee_count(self, branch_id):
        return len(self.members.get(branch_id, []))

    def branch_for(self, person):
        return self.get(self.id_for_name(person_branch(person)))

    def names(self):
        return list(self.id_by_name)


def branches_for_user(branches, user_branch=None):
    """
    Branches a user works with. None stands for an administrator and keeps
    every branch; a manager keeps the one branch their branch name resolves
    to, or nothing when it resolves to none.
    """
    if user_branch is None:
        return list(branches or [])
    index = BranchIndex(branches)
    branch = index.get(index.id_for_name(user_branch))
    return [branch] if branch else []


# =============================================================================
# VEHICLE MOVES (local state, mirrors what the server did)
# =============================================================================

def find_vehicle(branches, license_number):
    """(branch, vehicle) holding the licence number, or (None, None)"""
    for branch in branches or []:
        for vehicle in branch.get('vehicles') or []:
            if vehicle.get('licenseNumber') == license_number:
                return branch, vehicle
    return None, None


def add_vehicle(branches, branch_id, vehicle):
    """New branch list with the vehicle appended to one branch"""
    if not any(record_id(b) == branch_id for b in branches or []):
        raise KeyError(f"Unknown branch: {branch_id}")
    result = []
    for branch in branches:
        if record_id(branch) == branch_id:
            branch = dict(branch, vehicles=list(branch.get('vehicles') or []) + [dict(vehicle)])
        result.append(branch)
    return result


def remove_vehicle(branches, license_number):
    """New branch list without the vehicle"""
    result = []
    for branch in branches or []:
        vehicles = branch.get('vehicles') or []
        if any(v.get('licenseNumber') == license_number for v in vehicles):
            branch = dict(branch, vehicles=[v for v in vehicles if v.get('licenseNumber') != license_number])
        result.append(branch)
    return result


def move_vehicle(branches, license_number, to_branch_id, updates=None):
    """
    Move (and optionally update) a vehicle.

    Moving is remove-from-old followed by append-to-new; when the target is
    the current branch the vehicle is updated in place.
    """
    source, vehicle = find_vehicle(branches, license_number)
    if vehicle is None:
        raise KeyError(f"Unknown vehicle: {license_number}")

    moved = dict(vehicle, **(updates or {}))
    moved.pop('branchId', None)
    moved.pop('branchName', None)

    if to_branch_id is None or record_id(source) == to_branch_id:
        result = []
        for branch in branches:
            if branch is source:
                branch = dict(branch, vehicles=[
                    moved if v.get('licenseNumber') == license_number else v
                    for v in branch.get('vehicles') or []
                ])
            result.append(branch)
        return result

    return add_vehicle(remove_vehicle(branches, license_number), to_branch_id, moved)


# =============================================================================
# WRITE PAYLOADS
# =============================================================================

def _clean(value):
    """Form value -> API value (dates as ISO strings, blanks as None)"""
    if hasattr(value, 'isoformat'):
        parsed = parse_date(value)
        return parsed.isoformat() if parsed else None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _payload(form, fields, required):
    missing = [label for key, label in required if not _clean(form.get(key))]
    if missing:
        raise ValidationError(f"Please fill in all required fields: {', '.join(missing)}")

    payload = {}
    for key in fields:
        value = _clean(form.get(key))
        if key.endswith(DATE_SUFFIXES) and value is not None:
            parsed = parse_date(value)
            if parsed is None:
                raise ValidationError(f"Invalid date for {key}: {value}")
            value = parsed.isoformat()
        payload[key] = value
    return payload


def employee_payload(form):
    payload = _payload(form, EMPLOYEE_FIELDS, [('name', 'name'), ('role', 'role')])
    payload['status'] = payload.get('status') or 'Working'
    return payload


def temp_employee_payload(form):
    return _payload(form, TEMP_EMPLOYEE_FIELDS, [('name', 'name')])


def branch_payload(form):
    payload = _payload(form, BRANCH_FIELDS, [('name', 'branch name'), ('location', 'location')])
    payload['vehicles'] = list(form.get('vehicles') or [])
    return payload


def vehicle_payload(form):
    payload = _payload(form, VEHICLE_FIELDS, [('licenseNumber', 'license number'), ('branchId', 'branch')])
    payload['branch'] = form.get('branchId')
    payload['status'] = payload.get('status') or 'active'
    if payload.get('year') is not None:
        try:
            payload['year'] = int(payload['year'])
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid year: {payload['year']}")
    for key in ('licenseDocument', 'insuranceDocument'):
        payload[key] = form.get(key)
    return payload


EXPENSE_TYPES = ('NORMAL EXPENSE', 'GENERAL EXPENSE')
DELIVERY_PLATFORMS = ('Talabat', 'Snoonu', 'Keeta', 'ATM')


def _amount(value):
    try:
        return float(value) if value not in (None, '') else 0.0
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid amount: {value}")


def expenditure_payload(form, branches):
    """
    Daily expenditure of one branch. Blank expense and delivery lines are
    dropped; totals and earnings are derived from the remaining lines.
    """
    branch_id = form.get('branchId')
    day = parse_date(form.get('date'))

    missing = []
    if not branch_id:
        missing.append('branch')
    if day is None:
        missing.append('date')
    if missing:
        raise ValidationError(f"Please fill in all required fields: {', '.join(missing)}")

    branch = next((b for b in branches or [] if record_id(b) == branch_id), None)
    if branch is None:
        raise ValidationError("Selected branch no longer exists")

    expenses = []
    for line in form.get('expenses') or []:
        if not (line.get('category') or '').strip() and not line.get('amount'):
            continue
        expense_type = line.get('type') or EXPENSE_TYPES[0]
        if expense_type not in EXPENSE_TYPES:
            raise ValidationError(f"Unknown expense type: {expense_type}")
        expenses.append({
            'category': (line.get('category') or '').strip(),
            'amount': _amount(line.get('amount')),
            'type': expense_type,
            'description': (line.get('description') or '').strip(),
        })

    deliveries = [
        {
            'platform': (line.get('platform') or '').strip(),
            'amount': _amount(line.get('amount')),
            'description': (line.get('description') or '').strip(),
        }
        for line in form.get('onlineDeliveries') or []
        if (line.get('platform') or '').strip() or line.get('amount')
    ]

    income = _amount(form.get('income'))
    total_expenses = sum(e['amount'] for e in expenses)
    return {
        'branchId': branch_id,
        'branchName': branch.get('name') or NA,
        'date': day.isoformat(),
        'income': income,
        'expenses': expenses,
        'onlineDeliveries': deliveries,
        'deliveryMoney': _amount(form.get('deliveryMoney')),
        'totalExpenses': total_expenses,
        'earnings': income - total_expenses,
    }
