"""
analytics.py - Dashboard Aggregates
Counts, distributions, tenure, vehicle document status and expenditure
totals shown as metric cards and charts. Everything is recomputed from the
current collections; nothing here is cached or stored.
"""

from datetime import timedelta

from entities import BranchIndex, person_branch, record_id, EXPENSE_TYPES, NA
from expiry import (
    classify, summarize, document_count, parse_date, as_date, vehicle_owner_name,
    BRANCH_DOCUMENTS, VEHICLE_DOCUMENTS, BUCKET_EXPIRED, BUCKET_VALID,
)


ACTIVE_STATUSES = ('Working', 'Active')
NORMAL_EXPENSE = 'NORMAL EXPENSE'


def _label(value, default):
    return value if value not in (None, '', NA) else default


def _count(counts, key):
    counts[key] = counts.get(key, 0) + 1


def _number(value):
    try:
        return float(value) if value not in (None, '') else 0.0
    except (TypeError, ValueError):
        return 0.0


def percentage(part, whole, decimals=1):
    if not whole:
        return 0.0
    return round(part / whole * 100, decimals)


def distribution(counts):
    """Counts dict -> rows with percentage share, largest first"""
    total = sum(counts.values())
    rows = [
        {'label': label, 'count': count, 'percentage': percentage(count, total)}
        for label, count in counts.items()
    ]
    return sorted(rows, key=lambda row: row['count'], reverse=True)


# =============================================================================
# PEOPLE
# =============================================================================

def people_analytics(people, today):
    """Headcount, distributions, average tenure and new hires"""
    analytics = {
        'total': len(people or []),
        'active': 0,
        'by_branch': {},
        'by_role': {},
        'by_status': {},
        'avg_tenure_months': 0,
        'new_hires': 0,
    }

    today = as_date(today)
    tenure_total = 0
    new_hire_cutoff = today - timedelta(days=30)

    for person in people or []:
        status = _label(person.get('status'), 'Unknown')
        if status in ACTIVE_STATUSES:
            analytics['active'] += 1

        _count(analytics['by_branch'], _label(person_branch(person), 'Unassigned'))
        _count(analytics['by_role'], _label(person.get('role'), 'Unassigned'))
        _count(analytics['by_status'], status)

        joined = parse_date(person.get('doj'))
        if joined is not None:
            tenure_total += max((today - joined).days, 0) // 30
            if joined >= new_hire_cutoff:
                analytics['new_hires'] += 1

    if analytics['total']:
        analytics['avg_tenure_months'] = tenure_total // analytics['total']
    return analytics


# =============================================================================
# BRANCHES & VEHICLES
# =============================================================================

def branch_analytics(branches, people):
    """Branch totals; a branch counts as active once someone is assigned to it"""
    index = BranchIndex(branches, people)
    total = len(branches or [])
    analytics = {
        'total': total,
        'total_employees': len(people or []),
        'total_vehicles': 0,
        'total_documents': 0,
        'by_location': {},
        'avg_employees_per_branch': 0,
        'active_branches': 0,
    }

    for branch in branches or []:
        analytics['total_vehicles'] += len(branch.get('vehicles') or [])
        analytics['total_documents'] += document_count(branch, BRANCH_DOCUMENTS)
        _count(analytics['by_location'], _label(branch.get('location'), 'Unknown'))
        if index.employee_count(branch.get('_id') or branch.get('id')) > 0:
            analytics['active_branches'] += 1

    if total:
        analytics['avg_employees_per_branch'] = round(analytics['total_employees'] / total)
    return analytics


def branch_document_status(branch, today):
    """Per-branch counts of expired / expiring / valid documents"""
    summary = summarize(classify(today, [branch], BRANCH_DOCUMENTS))
    return {
        'expired': len(summary['expired']),
        'expiring': len(summary['expiring']),
        'valid': summary['valid'],
    }


def vehicle_status(vehicle, today):
    """Overall document status of one vehicle"""
    entries = classify(today, [vehicle], VEHICLE_DOCUMENTS)
    buckets = {entry['bucket'] for entry in entries}
    if BUCKET_EXPIRED in buckets:
        return 'Expired'
    if buckets - {BUCKET_VALID}:
        return 'Expiring Soon'
    return 'Valid'


def vehicle_document_stats(vehicles, today):
    """Counts for the vehicle document overview cards"""
    entries = classify(today, vehicles, VEHICLE_DOCUMENTS, category='vehicle', owner_name=vehicle_owner_name)
    summary = summarize(entries, total_possible=len(vehicles or []) * len(VEHICLE_DOCUMENTS))
    return {
        'total': summary['tracked'],
        'expired': len(summary['expired']),
        'critical': summary['critical'],
        'warning': summary['warning'],
        'valid': summary['valid'],
        'by_type': summary['by_type'],
        'entries': entries,
    }


# =============================================================================
# EXPENDITURES
# =============================================================================

def expenditure_figures(expenditure):
    """Income, expenses and earnings of one daily record, tolerating gaps"""
    expenses = [e for e in expenditure.get('expenses') or [] if isinstance(e, dict)]
    deliveries = [d for d in expenditure.get('onlineDeliveries') or [] if isinstance(d, dict)]

    income = _number(expenditure.get('income'))
    if expenditure.get('totalExpenses') not in (None, ''):
        total_expenses = _number(expenditure.get('totalExpenses'))
    else:
        total_expenses = sum(_number(e.get('amount')) for e in expenses)

    if expenditure.get('earnings') not in (None, ''):
        earnings = _number(expenditure.get('earnings'))
    else:
        earnings = income - total_expenses

    return {
        'income': income,
        'expenses': total_expenses,
        'earnings': earnings,
        'normal_expenses': sum(_number(e.get('amount')) for e in expenses
                               if (e.get('type') or NORMAL_EXPENSE) == NORMAL_EXPENSE),
        'online_delivery': sum(_number(d.get('amount')) for d in deliveries),
    }


def expenditure_branch(expenditure):
    """Display branch of a daily record; older records carry only 'branch'"""
    return expenditure.get('branchName') or expenditure.get('branch') or ''


def branch_expenditures(expenditures, branches):
    """
    Daily records belonging to the given branches. Records carrying a
    branchId match on it; older records only carrying a name match on that.
    """
    ids = {record_id(b) for b in branches or []}
    names = {(b.get('name') or '').strip() for b in branches or []} - {''}
    return [
        e for e in expenditures or []
        if isinstance(e, dict) and (
            e['branchId'] in ids if e.get('branchId') else expenditure_branch(e).strip() in names
        )
    ]


def expenditure_period(expenditure):
    """(year, month) of a daily record, or None when its date is unreadable"""
    day = parse_date(expenditure.get('date'))
    return (day.year, day.month) if day else None


def _in_period(expenditure, month, year):
    if month is None and year is None:
        return True
    period = expenditure_period(expenditure)
    if period is None:
        return False
    return (year is None or period[0] == int(year)) and (month is None or period[1] == int(month))


def _ranked(amounts):
    return dict(sorted(amounts.items(), key=lambda item: item[1], reverse=True))


def expenditure_summary(expenditures, branch='all', month=None, year=None):
    """
    Totals, percentages and breakdowns of daily expenditures.

    branch may be a branch id or a branch name. month (1-12) and year narrow
    the records to one calendar period; None leaves that part open, and
    records without a readable date only count when both are None.

    by_category and by_platform hold expense and online delivery amounts
    summed per category / platform, largest first. by_expense_type splits
    the category amounts into normal and general expenses; lines without a
    type count as normal.
    """
    records = [
        e for e in expenditures or []
        if isinstance(e, dict) and (
            branch in (None, '', 'all') or branch in (e.get('branchId'), expenditure_branch(e))
        ) and _in_period(e, month, year)
    ]

    totals = {'income': 0.0, 'expenses': 0.0, 'earnings': 0.0, 'normal_expenses': 0.0, 'online_delivery': 0.0}
    by_branch = {}
    by_category = {}
    by_platform = {}
    by_expense_type = {expense_type: {} for expense_type in EXPENSE_TYPES}
    delivery_money = 0.0

    for record in records:
        figures = expenditure_figures(record)
        for key in totals:
            totals[key] += figures[key]
        delivery_money += _number(record.get('deliveryMoney'))

        name = _label(expenditure_branch(record), 'Unassigned')
        row = by_branch.setdefault(name, {'income': 0.0, 'expenses': 0.0, 'earnings': 0.0, 'records': 0})
        row['income'] += figures['income']
        row['expenses'] += figures['expenses']
        row['earnings'] += figures['earnings']
        row['records'] += 1

        for line in record.get('expenses') or []:
            if not isinstance(line, dict) or not _number(line.get('amount')):
                continue
            category = _label((line.get('category') or '').strip(), 'Uncategorized')
            amount = _number(line.get('amount'))
            by_category[category] = by_category.get(category, 0.0) + amount
            split = by_expense_type.setdefault(line.get('type') or NORMAL_EXPENSE, {})
            split[category] = split.get(category, 0.0) + amount

        for delivery in record.get('onlineDeliveries') or []:
            if not isinstance(delivery, dict) or not _number(delivery.get('amount')):
                continue
            platform = _label((delivery.get('platform') or '').strip(), 'Other')
            by_platform[platform] = by_platform.get(platform, 0.0) + _number(delivery.get('amount'))

    count = len(records)
    expense_pct = percentage(totals['expenses'], totals['income'])
    return {
        'total_income': totals['income'],
        'total_expenses': totals['expenses'],
        'total_earnings': totals['earnings'],
        'normal_expenses': totals['normal_expenses'],
        'online_delivery': totals['online_delivery'],
        'delivery_money': delivery_money,
        'expense_percentage': expense_pct,
        'profit_percentage': round(100 - expense_pct, 1) if totals['income'] else 0.0,
        'record_count': count,
        'avg_income': totals['income'] / count if count else 0.0,
        'avg_expenses': totals['expenses'] / count if count else 0.0,
        'by_branch': by_branch,
        'by_category': _ranked(by_category),
        'by_platform': _ranked(by_platform),
        'by_expense_type': {k: _ranked(v) for k, v in by_expense_type.items()},
        'records': records,
    }
