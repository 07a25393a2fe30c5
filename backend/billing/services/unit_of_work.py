# Overview: Unit-of-Work wrapper; every multi-row write in the service layer runs through here.

"""
Unit-of-Work: atomic execution of a group of writes.

CONTRACT:
- run_atomic(work, label) calls work(session) exactly once
- success: one commit covering every write made through the session
- any exception (business rule or infrastructure): rollback, then the
  original exception is re-raised unchanged
- commit() and rollback() both hand the connection back to the pool, so
  no exit path keeps a connection checked out
- no retries; retry policy belongs to the caller

NESTING: a unit started while another one is open joins it. Only the
outermost unit commits or rolls back, so composed operations (e.g. shop
creation inside registration tooling) stay all-or-nothing.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from flask import current_app

from ..errors import BillingError
from ..extensions import db

T = TypeVar("T")

_DEPTH_KEY = "billing.uow_depth"


def in_unit_of_work() -> bool:
    return db.session.info.get(_DEPTH_KEY, 0) > 0


def run_atomic(work: Callable[..., T], label: str = "Transaction failed") -> T:
    session = db.session()
    depth = session.info.get(_DEPTH_KEY, 0)
    session.info[_DEPTH_KEY] = depth + 1

    try:
        if depth:
            return work(session)

        try:
            result = work(session)
            session.commit()
            return result
        except BillingError as exc:
            session.rollback()
            current_app.logger.warning("%s: rolled back (%s: %s)", label, exc.code, exc.message)
            raise
        except Exception:
            session.rollback()
            current_app.logger.exception("%s: rolled back", label)
            raise
    finally:
        session.info[_DEPTH_KEY] = depth
