"""Transactions carried implicitly through the current context."""

from __future__ import annotations

import contextvars
from typing import Any, Callable, TypeVar

T = TypeVar("T")

_current_tx: contextvars.ContextVar[Any] = contextvars.ContextVar(
    "linktracker_current_tx", default=None
)


def get_querier(default_querier: Any) -> Any:
    """Return the transaction active in this context, or ``default_querier``."""
    tx = _current_tx.get()
    return default_querier if tx is None else tx


class TxBeginner:
    """Runs functions inside a database transaction.

    ``db`` either offers ``begin()`` returning a transaction with ``commit()``
    and ``rollback()``, or is itself a DB-API connection.
    """

    def __init__(self, db: Any) -> None:
        self.db = db

    def _begin(self) -> Any:
        begin = getattr(self.db, "begin", None)
        return begin() if callable(begin) else self.db

    def with_transaction(self, tx_func: Callable[[], T]) -> T:
        """Call ``tx_func`` in a transaction; commit on success, roll back on error."""
        tx = self._begin()
        token = _current_tx.set(tx)
        try:
            try:
                result = tx_func()
            except BaseException:
                tx.rollback()
                raise
        finally:
            _current_tx.reset(token)
        tx.commit()
        return result