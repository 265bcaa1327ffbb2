import sqlite3

import pytest

from linktracker.txs import TxBeginner, get_querier


class FakeTx:
    def __init__(self, fail_rollback=False):
        self.events = []
        self.fail_rollback = fail_rollback

    def commit(self):
        self.events.append("commit")

    def rollback(self):
        self.events.append("rollback")
        if self.fail_rollback:
            raise RuntimeError("rollback failed")


class FakeDb:
    def __init__(self, tx):
        self.tx = tx
        self.begun = 0

    def begin(self):
        self.begun += 1
        return self.tx


def test_get_querier_outside_transaction_returns_default():
    default = object()
    assert get_querier(default) is default


def test_querier_inside_transaction_is_the_transaction():
    tx = FakeTx()
    default = object()
    seen = TxBeginner(FakeDb(tx)).with_transaction(lambda: get_querier(default))
    assert seen is tx
    assert get_querier(default) is default


def test_success_commits_and_returns_result():
    tx = FakeTx()
    db = FakeDb(tx)
    result = TxBeginner(db).with_transaction(lambda: 42)
    assert result == 42
    assert tx.events == ["commit"]
    assert db.begun == 1


def test_error_rolls_back_and_propagates():
    tx = FakeTx()

    def boom():
        raise ValueError("bad")

    with pytest.raises(ValueError, match="bad"):
        TxBeginner(FakeDb(tx)).with_transaction(boom)
    assert tx.events == ["rollback"]
    assert get_querier("default") == "default"


def test_rollback_failure_keeps_original_as_context():
    tx = FakeTx(fail_rollback=True)

    def boom():
        raise ValueError("bad")

    with pytest.raises(RuntimeError) as info:
        TxBeginner(FakeDb(tx)).with_transaction(boom)
    assert isinstance(info.value.__context__, ValueError)


def _make_conn():
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE items (name TEXT)")
    conn.commit()
    return conn


def test_sqlite_connection_commit():
    conn = _make_conn()

    def work():
        get_querier(None).execute("INSERT INTO items VALUES ('a')")

    TxBeginner(conn).with_transaction(work)
    conn.rollback()
    assert conn.execute("SELECT COUNT(*) FROM items").fetchone()[0] == 1


def test_sqlite_connection_rollback():
    conn = _make_conn()

    def work():
        get_querier(None).execute("INSERT INTO items VALUES ('a')")
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        TxBeginner(conn).with_transaction(work)
    assert conn.execute("SELECT COUNT(*) FROM items").fetchone()[0] == 0