"""
Shared fixtures: a fixed reference date and small API-shaped collections.
"""

from datetime import date

import pytest


@pytest.fixture
def today():
    return date(2024, 6, 1)


@pytest.fixture
def branches():
    return [
        {
            '_id': 'b1',
            'name': 'Doha Central',
            'location': 'Doha',
            'manager': 'Sara',
            'crNumber': 'CR-100',
            'crExpiry': '2024-05-01',
            'ruksaExpiry': '2024-06-05',
            'computerCardExpiry': '2025-01-01',
            'vehicles': [
                {'licenseNumber': 'QA-1', 'make': 'Toyota', 'model': 'Hiace', 'type': 'Van',
                 'licenseExpiry': '2024-06-10', 'insuranceExpiry': '2024-12-31'},
            ],
        },
        {
            '_id': 'b2',
            'name': 'Dubai Marina',
            'location': 'Dubai',
            'certificationExpiry': '2024-06-25T00:00:00.000Z',
            'vehicles': [
                {'licenseNumber': 'DX-7', 'make': 'Nissan', 'model': 'Urvan',
                 'licenseExpiry': '2024-05-30', 'insuranceExpiry': 'not a date'},
            ],
        },
    ]


@pytest.fixture
def employees():
    return [
        {
            '_id': 'e1', 'name': 'Ahmed', 'role': 'Cashier', 'status': 'Working',
            'workLocation': 'Doha Central', 'doj': '2024-05-20', 'qid': '289',
            'qidExpiry': '2024-06-03', 'passportExpiry': '2024-05-20', 'salary': 3000,
        },
        {
            '_id': 'e2', 'name': 'Maria', 'role': 'Manager', 'status': 'Working',
            'branch': 'Dubai Marina', 'doj': '2022-06-01',
            'visaExpiry': '2024-06-20', 'medicalCardExpiry': '2026-01-01', 'salary': 8000,
        },
        {
            '_id': 'e3', 'name': 'Li', 'role': 'Cashier', 'status': 'On Leave',
            'passportExpiry': 'garbage',
        },
    ]


@pytest.fixture
def temp_employees():
    return [
        {'_id': 't1', 'name': 'Omar', 'workLocation': 'Doha Central', 'qidExpiry': '2024-05-31'},
    ]
