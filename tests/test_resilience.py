import asyncio
import threading
import time

from valet.checks.batching import batch
from valet.checks.checker import FuncChecker
from valet.errors import ErrorCode
from valet.resilience import BoundedPool, CancellationToken, Dispatcher, evaluate_concurrently
from valet.validation import Int, Schema
from valet.validation.context import ValidationContext


def groups_for(data, schema):
    schema = Schema.of(schema)
    return batch(schema.evaluate(ValidationContext.for_root(data), data).deferred)


# =============================================================================
# Cancellation
# =============================================================================

def test_token_starts_live():
    token = CancellationToken()
    assert not token.cancelled
    assert token.reason is None
    assert token.remaining is None


def test_first_cancel_reason_wins():
    token = CancellationToken()
    token.cancel("client disconnected")
    token.cancel("shutdown")
    assert token.cancelled
    assert token.reason == "client disconnected"


def test_deadline_cancels_the_token():
    assert CancellationToken.with_timeout(0).reason == "deadline exceeded"

    token = CancellationToken.with_timeout(60)
    assert not token.cancelled
    assert 0 < token.remaining <= 60


def test_cancel_from_another_thread():
    token = CancellationToken()
    worker = threading.Thread(target=token.cancel)
    worker.start()
    worker.join()
    assert token.cancelled


# =============================================================================
# Dispatcher
# =============================================================================

def test_dispatch_reports_facts_per_group():
    groups = groups_for({"a": 1, "b": 2}, {"a": Int().exists("t1", "id"), "b": Int().exists("t2", "id")})
    checker = FuncChecker(lambda table, column, values, filters: {v: table == "t1" for v in values})
    outcome = asyncio.run(Dispatcher(checker).dispatch(groups))

    assert outcome.facts == {groups[0].signature: {1: True}, groups[1].signature: {2: False}}
    assert outcome.infrastructure is None
    assert outcome.resolve(groups) == {"b": ["b does not exist"]}


def test_cancelled_dispatch_marks_every_group():
    groups = groups_for({"a": 1}, {"a": Int().exists("t1", "id")})
    token = CancellationToken()
    token.cancel()
    checker = FuncChecker(lambda table, column, values, filters: {})
    outcome = asyncio.run(Dispatcher(checker).dispatch(groups, cancellation=token))

    assert outcome.facts == {}
    assert outcome.infrastructure.cancelled
    assert outcome.infrastructure.error_codes == {ErrorCode.E1014_CANCELLED}


def test_empty_dispatch():
    checker = FuncChecker(lambda table, column, values, filters: {})
    outcome = asyncio.run(Dispatcher(checker).dispatch([]))
    assert outcome.facts == {}
    assert outcome.infrastructure is None


# =============================================================================
# Bounded pool
# =============================================================================

def test_pool_preserves_input_order():
    def slow_square(i, item):
        time.sleep(0.001 * (10 - i))
        return item * item

    assert BoundedPool(4).map(slow_square, list(range(10))) == [i * i for i in range(10)]


def test_pool_never_exceeds_its_worker_cap():
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    def track(i, item):
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.005)
        with lock:
            state["active"] -= 1
        return i

    assert evaluate_concurrently(list(range(12)), track, 3) == list(range(12))
    assert state["peak"] <= 3


def test_sequential_fallback():
    pool = BoundedPool(0)
    assert pool.is_sequential(100)
    assert BoundedPool(8).is_sequential(1)
    assert not BoundedPool(8).is_sequential(2)

    caller = threading.get_ident()
    assert pool.map(lambda i, item: threading.get_ident() == caller, [1, 2, 3]) == [True, True, True]
