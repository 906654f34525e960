"""
Concurrent callers sharing one store, including pooled connections to a
SQLite database file.
"""
import threading

import pytest

from estate_store.core.exceptions import QuotaExceededError

THREADS = 8
VIEWS_PER_THREAD = 25


@pytest.fixture(params=['memory', 'database', 'sqlite-file'])
def storage(request, storage_factory):
    """A fresh store per backend, plus a file-backed database"""
    return storage_factory(request.param)


def run_together(target, calls):
    """Start one thread per argument tuple at the same moment; collect results or errors"""
    barrier = threading.Barrier(len(calls))
    outcomes = []

    def worker(*args):
        barrier.wait()
        try:
            outcomes.append(target(*args))
        except Exception as exc:
            outcomes.append(exc)

    threads = [threading.Thread(target=worker, args=args) for args in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


def test_racing_assignments_for_the_last_wave_slot(storage, agent, wave, add_property):
    add_property(agent_id=agent["id"], wave_id=wave["id"])
    first = add_property(agent_id=agent["id"])
    second = add_property(agent_id=agent["id"])

    outcomes = run_together(storage.update_property, [
        (first["id"], {"wave_id": wave["id"]}),
        (second["id"], {"wave_id": wave["id"]}),
    ])

    accepted = [o for o in outcomes if isinstance(o, dict)]
    rejected = [o for o in outcomes if isinstance(o, QuotaExceededError)]
    assert len(accepted) == 1
    assert len(rejected) == 1
    assert storage.get_user_wave_usage(agent["id"]) == agent["wave_balance"]


def test_many_racing_assignments_respect_the_balance(storage, agent, wave, add_property):
    props = [add_property(agent_id=agent["id"]) for _ in range(THREADS)]

    outcomes = run_together(
        storage.update_property, [(prop["id"], {"wave_id": wave["id"]}) for prop in props]
    )

    assert sum(isinstance(o, dict) for o in outcomes) == agent["wave_balance"]
    assert sum(isinstance(o, QuotaExceededError) for o in outcomes) == THREADS - agent["wave_balance"]
    assert len(storage.get_properties_by_wave(wave["id"])) == agent["wave_balance"]


def test_concurrent_views_are_all_counted(storage, agent, add_property):
    prop = add_property(agent_id=agent["id"])

    def view():
        for _ in range(VIEWS_PER_THREAD):
            storage.increment_property_views(prop["id"])

    outcomes = run_together(view, [()] * THREADS)

    assert outcomes == [None] * THREADS
    assert storage.get_property(prop["id"])["views"] == THREADS * VIEWS_PER_THREAD


def test_concurrent_activities_add_every_point(storage, agent):
    activity = {"user_id": agent["id"], "activity_type": "search", "points": 10}

    outcomes = run_together(storage.add_customer_activity, [(dict(activity),)] * THREADS)

    assert all(isinstance(o, dict) for o in outcomes)
    assert storage.get_customer_points(agent["id"])["total_points"] == 10 * THREADS
    assert len(storage.get_customer_activities(agent["id"])) == THREADS
