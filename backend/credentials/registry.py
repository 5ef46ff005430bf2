"""Identifier registry: index numbers, document numbers and verification tokens.

Uniqueness is owned by the database. Every reservation is a single write
inside a savepoint, and the unique-index violation it may raise is the only
collision signal. Nothing here keeps an in-process set of used values, since
such a snapshot is invisible to concurrent requests and other servers.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Union

from django.db import IntegrityError, transaction
from django.db.models.functions import Length
from django.utils import timezone

from .domain_student import Student
from .exceptions import NotFound

__all__ = [
    "Assigned",
    "Collision",
    "ReservationResult",
    "INDEX_NUMBER_MIN",
    "INDEX_NUMBER_MAX",
    "TOKEN_BYTES",
    "draw_index_number",
    "is_index_number_used",
    "reserve_index_number",
    "is_document_number_used",
    "format_document_number",
    "next_document_number",
    "new_verification_token",
    "reserve_credential",
]

logger = logging.getLogger(__name__)

INDEX_NUMBER_MIN = 100000
INDEX_NUMBER_MAX = 999999

# 32 random bytes -> 43 url-safe characters, 256 bits of entropy
TOKEN_BYTES = 32

_system_random = secrets.SystemRandom()


@dataclass(frozen=True)
class Assigned:
    value: str
    already_assigned: bool = False
    instance: Any = None


@dataclass(frozen=True)
class Collision:
    value: str


ReservationResult = Union[Assigned, Collision]


# --- index numbers -------------------------------------------------------

def draw_index_number(rng=None) -> str:
    rng = rng or _system_random
    return str(rng.randint(INDEX_NUMBER_MIN, INDEX_NUMBER_MAX))


def is_index_number_used(candidate: str) -> bool:
    return Student.objects.filter(index_number=candidate).exists()


def reserve_index_number(candidate: str, student_id: int) -> ReservationResult:
    """Bind ``candidate`` to the student if the student has no number yet.

    Returns ``Collision`` when another student already holds ``candidate``.
    A student that already has a number keeps it; the existing value comes
    back as ``Assigned(already_assigned=True)``.
    """
    try:
        with transaction.atomic():
            updated = (
                Student.objects
                .filter(pk=student_id, index_number__isnull=True)
                .update(index_number=candidate, updated_at=timezone.now())
            )
    except IntegrityError:
        logger.warning("Index number collision on %s for student %s", candidate, student_id)
        return Collision(candidate)

    if updated:
        return Assigned(candidate)

    row = Student.objects.filter(pk=student_id).values("index_number").first()
    if row is None:
        raise NotFound(f"Student {student_id} not found.", student_id=student_id)
    return Assigned(row["index_number"], already_assigned=True)


# --- document numbers and tokens -----------------------------------------

def is_document_number_used(model, candidate: str) -> bool:
    return model.objects.filter(document_number=candidate).exists()


def format_document_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year}-{sequence:06d}"


def next_document_number(model, prefix: str, year: int, offset: int = 0) -> str:
    """Next candidate after the highest number already stored for the year.

    This is only a starting point; the insert in ``reserve_credential`` is
    what actually claims it.
    """
    base = f"{prefix}-{year}-"
    last = (
        model.objects
        .filter(document_number__startswith=base)
        # same prefix, so the longer suffix is the larger number past 999999
        .order_by(Length("document_number").desc(), "-document_number")
        .values_list("document_number", flat=True)
        .first()
    )
    sequence = 1
    if last:
        try:
            sequence = int(last.rsplit("-", 1)[-1]) + 1
        except ValueError:
            sequence = 1
    return format_document_number(prefix, year, sequence + offset)


def new_verification_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def reserve_credential(model, **fields) -> ReservationResult:
    """Insert a credential row; a unique violation is reported as a collision.

    The caller decides which constraint was hit (number, token, or an
    already-active credential for the same student) by re-reading state.
    """
    instance = model(**fields)
    try:
        with transaction.atomic():
            instance.save(force_insert=True)
    except IntegrityError:
        logger.warning(
            "%s reservation collided (document_number=%s)",
            model.__name__, fields.get("document_number"),
        )
        return Collision(fields.get("document_number") or "")
    return Assigned(instance.document_number, instance=instance)
