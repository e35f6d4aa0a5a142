"""Commits and reads from several threads, against every filesystem backend."""

from __future__ import annotations

import threading

import pytest

from vaultfs import BlobRef, MemoryFilesystemService, SqliteFilesystemService
from vaultfs.errors import TransactionCommittedError
from vaultfs.versioning import VersionGenerator

REF = BlobRef("store_a", "store_a_abcd")


def _run_all(targets):
    threads = [threading.Thread(target=t) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    assert not any(t.is_alive() for t in threads)


def test_concurrent_commits_get_distinct_increasing_versions(service):
    bucket = service.bucket("shared")
    n = 8
    barrier = threading.Barrier(n)
    versions = []
    errors = []

    def worker(i):
        try:
            barrier.wait()
            tx = bucket.new_put_transaction()
            tx.dir(f"w{i}").file("f", REF)
            versions.append(tx.commit())
        except Exception as e:
            errors.append(e)

    _run_all([lambda i=i: worker(i) for i in range(n)])

    assert errors == []
    assert len(set(versions)) == n
    # Root history is in commit order; it must also be version order.
    assert bucket.select().versions() == sorted(versions)
    assert bucket.latest_version() == max(versions)


def test_readers_never_see_half_applied_commit(service):
    bucket = service.bucket("shared")
    done = threading.Event()
    problems = []

    def writer():
        try:
            for i in range(20):
                tx = bucket.new_put_transaction()
                scope = tx.dir(f"c{i}")
                scope.file("x", REF)
                scope.file("y", REF)
                tx.commit()
        except Exception as e:
            problems.append(e)
        finally:
            done.set()

    def reader():
        while not done.is_set():
            latest = bucket.latest_version()
            if latest is None:
                continue
            names = bucket.select().version(latest).list()
            if len(names) != 1:
                problems.append(("root", latest, names))
                continue
            files = bucket.select().dir(names[0]).version(latest).list()
            if files != ["x", "y"]:
                problems.append((names[0], latest, files))

    _run_all([writer, reader, reader])

    assert problems == []
    assert len(bucket.select().versions()) == 20


def test_concurrent_commit_of_one_transaction_applies_once(service):
    bucket = service.bucket("shared")
    tx = bucket.new_put_transaction()
    scope = tx.dir("a")
    scope.file("f", REF)
    barrier = threading.Barrier(2)
    outcomes = []

    def commit(target):
        barrier.wait()
        try:
            outcomes.append(target.commit())
        except TransactionCommittedError as e:
            outcomes.append(e)

    _run_all([lambda: commit(tx), lambda: commit(scope)])

    assert sum(isinstance(o, TransactionCommittedError) for o in outcomes) == 1
    assert len(bucket.select().versions()) == 1


class _StalledClock:
    """Clock frozen until the committing thread sleeps; each sleep runs ``on_wait`` first."""

    def __init__(self, now):
        self.now = now
        self.on_wait = None

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        if self.on_wait is not None:
            self.on_wait()
        self.now += 1.0


@pytest.fixture(params=["memory", "sqlite"])
def make_service(request, tmp_path):
    created = []

    def _make(versions):
        if request.param == "memory":
            svc = MemoryFilesystemService(versions=versions)
        else:
            svc = SqliteFilesystemService(str(tmp_path / "index.db"), versions=versions)
        created.append(svc)
        return svc

    yield _make
    for svc in created:
        svc.close()


def test_clock_wait_does_not_block_readers(make_service):
    clock = _StalledClock(100.0)
    versions = VersionGenerator(1000, 100, clock=clock, sleep=clock.sleep)
    service = make_service(versions)
    bucket = service.bucket("busy")
    other = service.bucket("other")
    for b in (bucket, other):
        tx = b.new_put_transaction()
        tx.dir("d")
        tx.commit()

    reads = {}
    stuck = []

    def read_during_wait():
        def read():
            reads["same"] = bucket.select().versions()
            reads["other"] = other.select().latest().list()

        reader = threading.Thread(target=read)
        reader.start()
        reader.join(timeout=5)
        stuck.append(reader.is_alive())

    # The clock still reads 100.0, so this commit has to wait for it to move.
    clock.on_wait = read_during_wait
    tx = bucket.new_put_transaction()
    tx.dir("e")
    version = tx.commit()

    assert stuck == [False]
    assert len(reads["same"]) == 1
    assert reads["other"] == ["d"]
    assert bucket.select().versions() == [reads["same"][0], version]
