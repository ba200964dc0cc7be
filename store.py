"""
store.py - In-Memory Dashboard State
Holds the collections loaded from the API for one session and applies
create / update / delete operations to both the backend and local state.

Mutation policy is explicit (Config.MUTATION_POLICY):
    pessimistic - local state changes only after the server confirms
    optimistic  - local state changes first and is restored if the call fails
Either way a failed call never leaves local state out of step with the server.
"""

import logging
from datetime import datetime

from config import Config
from entities import (
    normalize_all, normalize_branch, normalize_person, record_id,
    add_vehicle, move_vehicle, remove_vehicle,
)
from errors import ApiError, AuthenticationError


logger = logging.getLogger(__name__)


PESSIMISTIC = 'pessimistic'
OPTIMISTIC = 'optimistic'

COLLECTIONS = {
    'branches': ('list_branches', normalize_branch),
    'employees': ('list_employees', normalize_person),
    'temp_employees': ('list_temp_employees', normalize_person),
    'vacations': ('list_vacations', dict),
    'expenditures': ('list_expenditures', dict),
}

CRUD_METHODS = {
    'branches': ('create_branch', 'update_branch', 'delete_branch'),
    'employees': ('create_employee', 'update_employee', 'delete_employee'),
    'temp_employees': ('create_temp_employee', 'update_temp_employee', 'delete_temp_employee'),
    'vacations': ('create_vacation', 'update_vacation', 'delete_vacation'),
    'expenditures': ('create_expenditure', 'update_expenditure', 'delete_expenditure'),
}


def _record_from(result, payload):
    """Prefer the server's copy of a record, fall back to what was sent"""
    if isinstance(result, dict):
        if isinstance(result.get('data'), dict):
            return result['data']
        if record_id(result) is not None:
            return result
    return dict(payload)


class DashboardStore:
    """Collections of one session plus the rules for changing them"""

    def __init__(self, client, policy=None):
        self.client = client
        self.policy = policy or Config.MUTATION_POLICY
        if self.policy not in (PESSIMISTIC, OPTIMISTIC):
            raise ValueError(f"Unknown mutation policy: {self.policy}")
        self.data = {name: [] for name in COLLECTIONS}
        self.errors = {}
        self.generation = 0
        self.loaded_at = None

    def __getitem__(self, name):
        return self.data[name]

    # =========================================================================
    # LOADING
    # =========================================================================

    def begin_load(self):
        """Start a load; results of any earlier load become stale"""
        self.generation += 1
        return self.generation

    def is_current(self, token):
        return token == self.generation

    def commit_load(self, token, fetched, errors=None):
        """Apply fetched collections unless a newer load has started since"""
        if not self.is_current(token):
            logger.info("Dropping stale load #%s (current #%s)", token, self.generation)
            return False
        self.data.update(fetched)
        self.errors = dict(errors or {})
        self.loaded_at = datetime.now()
        return True

    def fetch(self, names=None):
        """
        Read collections from the API.

        A failing endpoint degrades to an empty list and is reported in the
        returned errors; an expired session is raised to the caller.
        """
        fetched = {}
        errors = {}
        for name in names or COLLECTIONS:
            method, normalizer = COLLECTIONS[name]
            try:
                fetched[name] = normalize_all(getattr(self.client, method)(), normalizer)
            except AuthenticationError:
                raise
            except ApiError as e:
                logger.warning("Could not load %s: %s", name, e)
                fetched[name] = []
                errors[name] = e.message
        return fetched, errors

    def load_warning(self):
        """User message naming the collections the last load could not read, or None"""
        if not self.errors:
            return None
        details = "; ".join(f"{name}: {message}" for name, message in self.errors.items())
        return f"Some data could not be loaded and is shown as empty. {details}"

    def refresh(self, names=None):
        token = self.begin_load()
        fetched, errors = self.fetch(names)
        return self.commit_load(token, fetched, errors)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def _mutate(self, name, call, local_before, local_after):
        previous = list(self.data[name])
        if self.policy == OPTIMISTIC:
            self.data[name] = local_before(previous)

        try:
            result = call()
        except ApiError:
            self.data[name] = previous
            raise

        self.data[name] = local_after(previous, result)
        return result

    def create(self, name, payload):
        method = getattr(self.client, CRUD_METHODS[name][0])
        return self._mutate(
            name,
            lambda: method(payload),
            lambda items: items + [dict(payload)],
            lambda items, result: items + [_record_from(result, payload)],
        )

    def update(self, name, item_id, payload):
        method = getattr(self.client, CRUD_METHODS[name][1])

        def replace(items, result=None):
            updated = []
            for item in items:
                if record_id(item) == item_id:
                    item = dict(item, **payload)
                    if isinstance(result, dict) and record_id(result) == item_id:
                        item.update(result)
                updated.append(item)
            return updated

        return self._mutate(name, lambda: method(item_id, payload), replace, replace)

    def delete(self, name, item_id):
        method = getattr(self.client, CRUD_METHODS[name][2])

        def without(items, result=None):
            return [item for item in items if record_id(item) != item_id]

        return self._mutate(name, lambda: method(item_id), without, without)

    # Vehicles live inside their branch records

    def create_vehicle(self, payload):
        vehicle = {k: v for k, v in payload.items() if k not in ('branch', 'branchId')}
        branch_id = payload.get('branch') or payload.get('branchId')

        def attach(branches, result=None):
            return add_vehicle(branches, branch_id, vehicle)

        return self._mutate('branches', lambda: self.client.create_vehicle(payload), attach, attach)

    def update_vehicle(self, license_number, payload):
        to_branch_id = payload.get('branch') or payload.get('branchId')
        updates = {k: v for k, v in payload.items() if k not in ('branch', 'branchId')}

        def relocate(branches, result=None):
            return move_vehicle(branches, license_number, to_branch_id, updates)

        return self._mutate(
            'branches', lambda: self.client.update_vehicle(license_number, payload), relocate, relocate
        )

    def delete_vehicle(self, license_number):
        def detach(branches, result=None):
            return remove_vehicle(branches, license_number)

        return self._mutate('branches', lambda: self.client.delete_vehicle(license_number), detach, detach)
