import pytest

from distlab.models import (
    OP_GET,
    OP_PUT,
    KvInput,
    KvOutput,
    KvState,
    Operation,
    kv_describe_operation,
    kv_init,
    kv_partition,
    kv_step,
)


def _op(key, call):
    return Operation(KvInput(OP_GET, key), KvOutput(), call, call + 1, 0)


def test_init_state_is_empty():
    state = kv_init()
    assert state == KvState()


def test_partition_groups_by_sorted_key_preserving_order():
    history = [_op("b", 0), _op("a", 1), _op("b", 2), _op("c", 3), _op("a", 4)]
    parts = kv_partition(history)
    assert [[o.input.key for o in p][0] for p in parts] == ["a", "b", "c"]
    assert [o.call for o in parts[0]] == [1, 4]
    assert [o.call for o in parts[1]] == [0, 2]
    assert sum(len(p) for p in parts) == len(history)


def test_partition_of_empty_history():
    assert kv_partition([]) == []


def test_get_matching_value_is_legal():
    state = KvState("v", 2)
    ok, new = kv_step(state, KvInput(OP_GET, "k"), KvOutput("v", 2, "OK"))
    assert ok
    assert new == state


def test_get_wrong_value_is_illegal():
    state = KvState("v", 2)
    ok, _ = kv_step(state, KvInput(OP_GET, "k"), KvOutput("w", 2, "OK"))
    assert not ok


@pytest.mark.parametrize("err", ["OK", "ErrMaybe"])
def test_put_with_matching_version_installs_value(err):
    start = kv_init()
    ok, new = kv_step(start, KvInput(OP_PUT, "k", "6.5840", start.version), KvOutput(err=err))
    assert ok
    assert new.value == "6.5840"
    assert new.version == start.version + 1


def test_put_with_matching_version_cannot_report_err_version():
    start = kv_init()
    ok, _ = kv_step(start, KvInput(OP_PUT, "k", "x", 0), KvOutput(err="ErrVersion"))
    assert not ok


@pytest.mark.parametrize("err,legal", [("ErrVersion", True), ("ErrMaybe", True), ("OK", False)])
def test_put_with_stale_version(err, legal):
    state = KvState("v", 3)
    ok, new = kv_step(state, KvInput(OP_PUT, "k", "x", 1), KvOutput(err=err))
    assert ok is legal
    assert new == state


def test_invalid_op():
    ok, new = kv_step(kv_init(), KvInput(7, "k"), KvOutput())
    assert not ok
    assert new == "<invalid>"


def test_describe_get():
    text = kv_describe_operation(KvInput(OP_GET, "k"), KvOutput("v", 3, "OK"))
    assert text == "get('k') -> ('v', '3', 'OK')"


def test_describe_put():
    text = kv_describe_operation(KvInput(OP_PUT, "k", "v", 2), KvOutput(err="ErrVersion"))
    assert text == "put('k', 'v', '2') -> ('ErrVersion')"


def test_describe_invalid():
    assert kv_describe_operation(KvInput(9, "k"), KvOutput()) == "<invalid>"