import pytest

from grntest.grntest_context import ExecutionContext
from grntest.grntest_datatypes import AbortExecution, ExecuterError, OnErrorPolicy, ResultLog, ResultTag


def test_defaults():
    context = ExecutionContext()
    assert context.logging is True
    assert context.n_nested == 0
    assert context.output_type == "json"
    assert context.on_error is OnErrorPolicy.DEFAULT
    assert context.omitted is False
    assert isinstance(context.result, ResultLog)
    assert len(context.result) == 0


def test_top_level_tracks_nesting_dynamically():
    context = ExecutionContext()
    assert context.top_level is False
    with context.execute():
        assert context.top_level is True
        with context.execute():
            assert context.n_nested == 2
            assert context.top_level is False
        assert context.top_level is True
    assert context.n_nested == 0


def test_execute_scope_is_released_on_error():
    context = ExecutionContext()
    with pytest.raises(ExecuterError):
        with context.execute():
            with context.execute():
                raise ExecuterError("boom")
    assert context.n_nested == 0


def test_abort_scope_catches_its_own_abort():
    context = ExecutionContext()
    with context.abort_scope() as tag:
        assert context.abort_tag is tag
        with context.execute():
            with context.execute():
                context.abort()
        pytest.fail("abort did not unwind")  # pragma: no cover
    assert context.n_nested == 0
    assert context.abort_tag is None


def test_abort_scope_lets_foreign_aborts_through():
    context = ExecutionContext()
    stranger = object()
    with pytest.raises(AbortExecution) as excinfo:
        with context.abort_scope():
            raise AbortExecution(stranger)
    assert excinfo.value.tag is stranger
    assert context.abort_tag is None


def test_only_one_abort_scope_per_run():
    context = ExecutionContext()
    with context.abort_scope():
        with pytest.raises(RuntimeError):
            with context.abort_scope():
                pass


def test_abort_without_scope_is_an_executer_error():
    with pytest.raises(ExecuterError):
        ExecutionContext().abort()


def test_omit_without_scope_leaves_the_run_unomitted():
    context = ExecutionContext()
    with pytest.raises(ExecuterError):
        context.omit()
    assert context.omitted is False


def test_error_under_default_policy_does_nothing():
    context = ExecutionContext()
    with context.abort_scope():
        context.error()
    assert context.omitted is False


def test_error_under_omit_policy_omits():
    context = ExecutionContext()
    context.set_on_error("omit")
    reached = False
    with context.abort_scope():
        context.error()
        reached = True  # pragma: no cover
    assert reached is False
    assert context.omitted is True


def test_set_on_error_rejects_unknown_policies():
    context = ExecutionContext()
    with pytest.raises(ExecuterError):
        context.set_on_error("retry")
    assert context.on_error is OnErrorPolicy.DEFAULT


def test_result_log_records_entries_in_order():
    log = ResultLog()
    log.append(ResultTag.INPUT, b"status\n")
    entry = log.append(ResultTag.OUTPUT, b"[]", {"command": "status", "format": "json"})
    assert len(log) == 2
    assert log[1] is entry
    assert entry.command == "status"
    assert entry.format == "json"
    assert [e.tag for e in log] == [ResultTag.INPUT, ResultTag.OUTPUT]
    assert log.tagged(ResultTag.ERROR) == []
