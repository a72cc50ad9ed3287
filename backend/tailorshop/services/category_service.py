# Overview: Product and service categories.

from __future__ import annotations

import re

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Service
from ..validation import ModelValidationPolicy, validate_payload
from . import read_cache
from .concurrency import lock_for_update, run_with_retry


class CategoryError(ValueError):
    """Raised when category operations fail."""
    pass


CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "slug"},
    required_on_create={"name"},
)

_WHITESPACE_RE = re.compile(r"\s+")


def slugify(name: str) -> str:
    """Lowercase with runs of whitespace collapsed to a single hyphen."""
    return _WHITESPACE_RE.sub("-", (name or "").strip().lower())


def _invalidate() -> None:
    read_cache.invalidate(read_cache.CATEGORIES, read_cache.SERVICES)


def _slug_taken(slug: str, *, exclude_id: int | None = None) -> bool:
    q = db.session.query(Category.id).filter(Category.slug == slug)
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    return q.first() is not None


def _commit_or_duplicate(slug: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise CategoryError(f"Category slug '{slug}' already exists")


def create_category(data: dict) -> Category:
    patch = validate_payload(model=Category, payload=data, policy=CATEGORY_POLICY, partial=False)
    slug = slugify(patch.get("slug") or patch["name"])
    if not slug:
        raise CategoryError("slug cannot be blank")

    def _op():
        if _slug_taken(slug):
            raise CategoryError(f"Category slug '{slug}' already exists")
        category = Category(name=patch["name"], slug=slug)
        db.session.add(category)
        _commit_or_duplicate(slug)
        return category

    category = run_with_retry(_op)
    _invalidate()
    return category


def update_category(category_id: int, data: dict) -> Category:
    patch = validate_payload(model=Category, payload=data, policy=CATEGORY_POLICY, partial=True)
    if "slug" in patch:
        patch["slug"] = slugify(patch["slug"] or "")
        if not patch["slug"]:
            raise CategoryError("slug cannot be blank")

    def _op():
        category = lock_for_update(db.session.query(Category).filter_by(id=category_id)).first()
        if not category:
            raise CategoryError("Category not found")
        if "slug" in patch and _slug_taken(patch["slug"], exclude_id=category.id):
            raise CategoryError(f"Category slug '{patch['slug']}' already exists")
        for key, value in patch.items():
            setattr(category, key, value)
        _commit_or_duplicate(category.slug)
        return category

    category = run_with_retry(_op)
    _invalidate()
    return category


def get_category(category_id: int) -> Category | None:
    return db.session.query(Category).filter_by(id=category_id).first()


def find_category(name_or_slug: str) -> Category | None:
    """Case-insensitive match on name, falling back to slug."""
    key = (name_or_slug or "").strip()
    if not key:
        return None
    category = db.session.query(Category).filter(func.lower(Category.name) == key.lower()).first()
    if category is None:
        category = db.session.query(Category).filter_by(slug=slugify(key)).first()
    return category


def list_categories() -> list[dict]:
    def _load():
        rows = db.session.query(Category).order_by(Category.name.asc(), Category.id.asc()).all()
        return [c.to_dict() for c in rows]

    return read_cache.cached(read_cache.CATEGORIES, "list", _load)


def delete_category(category_id: int) -> None:
    """Remove the category. Services in it become uncategorized."""
    def _op():
        category = lock_for_update(db.session.query(Category).filter_by(id=category_id)).first()
        if not category:
            raise CategoryError("Category not found")
        db.session.query(Service).filter(Service.category_id == category_id).update(
            {Service.category_id: None}, synchronize_session=False
        )
        db.session.delete(category)
        db.session.commit()

    run_with_retry(_op)
    _invalidate()
