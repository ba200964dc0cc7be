"""
List manager tests: search, filters, derived accessors, typed sorting,
pagination and the per-table ListState.
"""

import copy

import pytest

import list_manager
from list_manager import apply, toggle_sort, clamp_page, filter_options, ListState, ASC, DESC


@pytest.fixture
def items():
    return [
        {'name': 'Doha Central', 'location': 'Doha', 'score': '10', 'opened': '2021-03-01'},
        {'name': 'Dubai Marina', 'location': 'Dubai', 'score': 2, 'opened': '2019-01-15'},
        {'name': 'Lusail', 'location': 'Lusail', 'score': None, 'opened': None},
        {'name': 'Al Wakrah', 'location': 'Doha', 'score': 7, 'opened': 'bad date'},
    ]


class TestSearchAndFilter:
    """Tests for search and filters."""

    def test_search_is_case_insensitive_substring(self, items):
        result = apply(items, search='doha', search_fields=('location', 'name'))
        assert [i['name'] for i in result['rows']] == ['Doha Central', 'Al Wakrah']

    def test_doha_does_not_match_dubai(self, items):
        result = apply(items[:2], search='doha', search_fields=('location', 'name'))
        assert result['total'] == 1
        assert result['rows'][0]['location'] == 'Doha'

    def test_empty_search_matches_all(self, items):
        assert apply(items, search='', search_fields=('name',))['total'] == 4

    def test_filters_are_exact_and_anded(self, items):
        result = apply(items, filters={'location': 'Doha', 'name': 'Al Wakrah'})
        assert [i['name'] for i in result['rows']] == ['Al Wakrah']

        assert apply(items, filters={'location': 'Doh'})['total'] == 0

    def test_all_disables_filter(self, items):
        assert apply(items, filters={'location': 'all'})['total'] == 4
        assert apply(items, filters={'location': None})['total'] == 4

    def test_accessor_feeds_search_filter_and_sort(self, items):
        accessors = {'nameLength': lambda item: len(item['name'])}
        result = apply(items, filters={'nameLength': 6}, accessors=accessors)
        assert [i['name'] for i in result['rows']] == ['Lusail']

        result = apply(items, sort_key='nameLength', sort_types={'nameLength': 'number'}, accessors=accessors)
        assert result['rows'][0]['name'] == 'Lusail'

    def test_clearing_filter_restores_results(self, items):
        original = copy.deepcopy(items)
        filtered = apply(items, filters={'location': 'Doha'})
        cleared = apply(items, filters={'location': 'all'})

        assert filtered['total'] == 2
        assert cleared['rows'] == items
        assert items == original


class TestSorting:
    """Tests for typed, stable sorting."""

    def test_number_sort_coerces_and_defaults_to_zero(self, items):
        result = apply(items, sort_key='score', sort_types={'score': 'number'})
        assert [i['name'] for i in result['rows']] == ['Lusail', 'Dubai Marina', 'Al Wakrah', 'Doha Central']

    def test_date_sort_puts_missing_first(self, items):
        result = apply(items, sort_key='opened', sort_dir=DESC, sort_types={'opened': 'date'})
        assert [i['name'] for i in result['rows']][:2] == ['Doha Central', 'Dubai Marina']
        # Missing and malformed dates both sort as the epoch and keep their order
        assert [i['name'] for i in result['rows']][2:] == ['Lusail', 'Al Wakrah']

    def test_string_sort(self, items):
        result = apply(items, sort_key='name', sort_dir=ASC)
        assert [i['name'] for i in result['rows']] == ['Al Wakrah', 'Doha Central', 'Dubai Marina', 'Lusail']

    def test_sort_is_stable(self, items):
        result = apply(items, sort_key='location')
        doha = [i['name'] for i in result['rows'] if i['location'] == 'Doha']
        assert doha == ['Doha Central', 'Al Wakrah']

    def test_identity_filter_returns_sorted_items(self, items):
        result = apply(items, sort_key='name', page_size=100)
        assert result['rows'] == sorted(items, key=lambda i: i['name'])

    def test_toggle_sort(self):
        assert toggle_sort('name', ASC, 'name') == ('name', DESC)
        assert toggle_sort('name', DESC, 'name') == ('name', ASC)
        assert toggle_sort('name', DESC, 'location') == ('location', ASC)


class TestPagination:
    """Tests for pagination."""

    def test_total_and_page_sizes(self):
        items = [{'n': i} for i in range(23)]
        first = apply(items, page=1, page_size=10)
        last = apply(items, page=3, page_size=10)

        assert first['total'] == 23
        assert first['total_pages'] == 3
        assert len(first['page']) == 10
        assert len(last['page']) == 3

    def test_out_of_range_pages_are_empty(self):
        items = [{'n': i} for i in range(5)]
        assert apply(items, page=9, page_size=10)['page'] == []
        assert apply(items, page=0, page_size=10)['page'] == []

    def test_empty_source(self):
        result = apply([], page=1, page_size=10)
        assert result['total'] == 0
        assert result['total_pages'] == 0
        assert result['page'] == []

    def test_clamp_page(self):
        assert clamp_page(5, 3) == 3
        assert clamp_page(0, 3) == 1
        assert clamp_page(2, 0) == 1

    def test_paginate_without_size_returns_all(self):
        assert list_manager.paginate([1, 2, 3], 1, 0) == [1, 2, 3]


class TestFilterOptions:
    def test_distinct_in_first_seen_order(self, items):
        assert filter_options(items, 'location') == ['Doha', 'Dubai', 'Lusail']

    def test_uses_accessor(self, items):
        options = filter_options(items, 'first', {'first': lambda i: i['name'][0]})
        assert options == ['D', 'L', 'A']


class TestListState:
    """Tests for ListState."""

    def test_search_filter_and_sort_reset_page(self):
        state = ListState(sort_key='name', filters={'location': 'all'})

        state.page = 3
        state.set_search('doha')
        assert state.page == 1

        state.page = 3
        state.set_filter('location', 'Doha')
        assert state.page == 1

        state.page = 3
        state.sort_by('name')
        assert state.page == 1
        assert state.sort_dir == DESC

    def test_unchanged_search_keeps_page(self):
        state = ListState()
        state.set_search('x')
        state.page = 2
        state.set_search('x')
        assert state.page == 2

    def test_clear_filters(self):
        state = ListState(filters={'location': 'Doha'})
        state.search = 'x'
        state.clear_filters()
        assert state.filters == {'location': 'all'}
        assert state.search == ''

    def test_apply_clamps_page_when_list_shrinks(self):
        state = ListState()
        state.page = 3
        result = state.apply([{'n': i} for i in range(12)], page_size=10)

        assert state.page == 2
        assert result['page_number'] == 2
        assert len(result['page']) == 2

    def test_go_to(self):
        state = ListState()
        state.go_to(7, 4)
        assert state.page == 4
