"""
list_manager.py - Generic Search / Filter / Sort / Paginate
Shared by the employee, temporary employee, branch, vehicle, vacation,
expenditure and document tables.

Every call recomputes the visible rows from the full source list; the
source list is never modified.
"""

import math
from datetime import date

from expiry import parse_date


ALL = 'all'
ASC = 'asc'
DESC = 'desc'

EPOCH = date(1970, 1, 1)


def field_value(item, key, accessors=None):
    """Read a field from an item, preferring a derived accessor when one exists"""
    if accessors and key in accessors:
        return accessors[key](item)
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def matches_search(item, term, search_fields, accessors=None):
    """Case-insensitive substring match against any of the search fields"""
    if not term:
        return True
    needle = str(term).lower()
    for key in search_fields:
        value = field_value(item, key, accessors)
        if value is not None and needle in str(value).lower():
            return True
    return False


def matches_filters(item, filters, accessors=None):
    """Exact-match filters, ANDed; 'all' or an empty value disables a filter"""
    for key, wanted in (filters or {}).items():
        if wanted is None or wanted == '' or wanted == ALL:
            continue
        if field_value(item, key, accessors) != wanted:
            return False
    return True


def sort_value(item, key, accessors=None, sort_types=None):
    """Coerce a field into a comparable sort value"""
    value = field_value(item, key, accessors)
    kind = (sort_types or {}).get(key)

    if kind == 'number':
        try:
            return float(value) if value not in (None, '') else 0.0
        except (TypeError, ValueError):
            return 0.0
    if kind == 'date':
        return parse_date(value) or EPOCH
    return '' if value is None else str(value)


def sort_items(items, sort_key, sort_dir=ASC, accessors=None, sort_types=None):
    """Stable sort returning a new list"""
    if not sort_key:
        return list(items)
    return sorted(
        items,
        key=lambda item: sort_value(item, sort_key, accessors, sort_types),
        reverse=(sort_dir == DESC)
    )


def toggle_sort(current_key, current_dir, key):
    """
    Column-header click behaviour: clicking the active column flips the
    direction, clicking a new column sorts it ascending.
    """
    if key == current_key:
        return key, (DESC if current_dir == ASC else ASC)
    return key, ASC


def page_count(total, page_size):
    if page_size <= 0:
        return 1 if total else 0
    return math.ceil(total / page_size)


def clamp_page(page, total_pages):
    """Clamp a requested page number into 1..total_pages"""
    if total_pages < 1:
        return 1
    return max(1, min(int(page), total_pages))


def paginate(items, page, page_size):
    """Slice one page out of a list; out-of-range pages are empty"""
    if page_size <= 0:
        return list(items)
    if page < 1:
        return []
    start = (page - 1) * page_size
    return list(items[start:start + page_size])


def apply(items, search='', search_fields=(), filters=None, sort_key=None, sort_dir=ASC,
          page=1, page_size=10, accessors=None, sort_types=None):
    """
    Search, filter, sort and paginate a list of records.

    Returns:
        dict with 'page' (visible rows), 'rows' (all filtered and sorted rows),
        'total' (filtered count), 'total_pages' and 'page_number'
    """
    filtered = [
        item for item in (items or [])
        if matches_filters(item, filters, accessors)
        and matches_search(item, search, search_fields, accessors)
    ]
    ordered = sort_items(filtered, sort_key, sort_dir, accessors, sort_types)
    total = len(ordered)

    return {
        'page': paginate(ordered, page, page_size),
        'rows': ordered,
        'total': total,
        'total_pages': page_count(total, page_size),
        'page_number': page,
    }


def filter_options(items, key, accessors=None):
    """Distinct non-empty values of a field, in first-seen order"""
    seen = []
    for item in items or []:
        value = field_value(item, key, accessors)
        if value and value not in seen:
            seen.append(value)
    return seen


class ListState:
    """
    View state of one table: search term, filters, sort and current page.
    Changing the search term, a filter or the sort goes back to page 1.
    """

    def __init__(self, sort_key=None, sort_dir=ASC, filters=None):
        self.search = ''
        self.filters = dict(filters or {})
        self.sort_key = sort_key
        self.sort_dir = sort_dir
        self.page = 1

    def set_search(self, term):
        term = term or ''
        if term != self.search:
            self.search = term
            self.page = 1

    def set_filter(self, key, value):
        value = value or ALL
        if self.filters.get(key, ALL) != value:
            self.filters[key] = value
            self.page = 1

    def clear_filters(self):
        self.filters = {key: ALL for key in self.filters}
        self.search = ''
        self.page = 1

    def sort_by(self, key):
        self.sort_key, self.sort_dir = toggle_sort(self.sort_key, self.sort_dir, key)
        self.page = 1

    def go_to(self, page, total_pages):
        self.page = clamp_page(page, total_pages)

    def apply(self, items, search_fields=(), page_size=10, accessors=None, sort_types=None):
        result = apply(
            items,
            search=self.search,
            search_fields=search_fields,
            filters=self.filters,
            sort_key=self.sort_key,
            sort_dir=self.sort_dir,
            page=self.page,
            page_size=page_size,
            accessors=accessors,
            sort_types=sort_types,
        )
        # The source list may have shrunk since the page was chosen
        if result['total_pages'] and self.page > result['total_pages']:
            self.page = result['total_pages']
            result['page'] = paginate(result['rows'], self.page, page_size)
            result['page_number'] = self.page
        return result
