# Overview: App-scoped memo of list views, invalidated by every mutation.

"""
Read cache for denormalized list views.

Entries are keyed by collection name plus a caller-chosen key (usually the
filter arguments). Services call invalidate() after a successful commit for
every collection the mutation touched, so the next read goes back to the
database. Values are plain dicts/lists, never ORM instances.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Hashable

from flask import current_app

CUSTOMERS = "customers"
ORDERS = "orders"
MEASUREMENTS = "measurements"
INVENTORY = "inventory"
EMPLOYEES = "employees"
STORES = "stores"
TASKS = "tasks"
SETTINGS = "settings"
SERVICES = "services"
CATEGORIES = "categories"

EXTENSION_KEY = "tailorshop.read_cache"


def _store() -> dict[str, dict[Hashable, Any]]:
    return current_app.extensions.setdefault(EXTENSION_KEY, {})


def cached(collection: str, key: Hashable, loader: Callable[[], Any]) -> Any:
    bucket = _store().setdefault(collection, {})
    if key not in bucket:
        bucket[key] = loader()
    # Callers get their own copy so mutating a response never poisons the cache
    return copy.deepcopy(bucket[key])


def invalidate(*collections: str) -> None:
    store = _store()
    for collection in collections:
        store.pop(collection, None)


def clear() -> None:
    _store().clear()
