import sys

import pytest

from jobdag.model import Callable, Command, Job
from jobdag.pool import Pool, command_args


@pytest.fixture
def pool(tmp_path):
    p = Pool(tmp_path / "out")
    yield p
    p.shutdown()


def test_command_args_splits_plain_commands():
    assert command_args("echo hello world") == (["echo", "hello", "world"], False)
    assert command_args("echo $HOME > x") == ("echo $HOME > x", True)
    assert command_args('sh -c "exit 3"') == ('sh -c "exit 3"', True)


def test_launch_captures_combined_output(pool):
    job = Job("greet", Command('sh -c "echo out; echo err >&2"'))
    pool.launch(job, 2)
    assert pool.active_count() == 1

    record = pool.wait_any()
    assert (record.job, record.slot_index, record.exit_code) == ("greet", 2, 0)
    assert record.passed
    assert record.duration >= 0
    assert pool.active_count() == 0

    text = (pool.output_directory / "2").read_text()
    assert "out" in text and "err" in text
    assert record.output == str(pool.output_directory / "2")


def test_non_zero_exit_is_reported_verbatim(pool):
    pool.launch(Job("j42", Command('sh -c "exit 42"')), 0)
    record = pool.wait_any()
    assert record.exit_code == 42
    assert not record.passed


def test_spawn_failure_writes_error_line(pool):
    pool.launch(Job("command_not_found", Command("command_not_found arg")), 1)
    record = pool.wait_any()

    assert record.exit_code is None
    assert (pool.output_directory / "1").read_text() == (
        "ERROR: failed to spawn command 'command_not_found arg' for job 'command_not_found': "
        "No such file or directory - command_not_found"
    )


def test_slot_output_is_overwritten_on_reuse(pool):
    pool.launch(Job("first", Command("echo first-run")), 0)
    pool.wait_any()
    pool.launch(Job("second", Command("echo second")), 0)
    pool.wait_any()
    assert (pool.output_directory / "0").read_text() == "second\n"


def test_callable_actions(pool):
    def writes(out):
        out.write("from callable\n")

    def boom(out):
        raise RuntimeError("kaboom")

    pool.launch(Job("writes", Callable(writes)), 0)
    pool.launch(Job("code", Callable(lambda out: 3)), 1)
    pool.launch(Job("falsy", Callable(lambda out: False)), 2)
    pool.launch(Job("boom", Callable(boom)), 3)

    records = {}
    while pool.active_count():
        r = pool.wait_any()
        records[r.job] = r

    assert {n: r.exit_code for n, r in records.items()} == {"writes": 0, "code": 3, "falsy": 1, "boom": 1}
    assert (pool.output_directory / "0").read_text() == "from callable\n"
    assert "RuntimeError: kaboom" in (pool.output_directory / "3").read_text()


def test_every_execution_is_returned_once(pool):
    for i in range(5):
        pool.launch(Job(f"j{i}", Command("true")), i)
    names = [pool.wait_any().job for _ in range(5)]
    assert sorted(names) == [f"j{i}" for i in range(5)]
    assert pool.active_count() == 0


def test_slot_environment_is_exported(pool):
    pool.launch(Job("env", Command('sh -c "echo $JOBDAG_JOB:$JOBDAG_SLOT"')), 4)
    pool.wait_any()
    assert (pool.output_directory / "4").read_text() == "env:4\n"


def test_callable_sys_exit_maps_like_the_interpreter(pool):
    def exits(code):
        def func(out):
            sys.exit(code)
        return func

    pool.launch(Job("none", Callable(exits(None))), 0)
    pool.launch(Job("five", Callable(exits(5))), 1)
    pool.launch(Job("text", Callable(exits("bye"))), 2)

    records = {}
    while pool.active_count():
        r = pool.wait_any()
        records[r.job] = r

    assert {n: r.exit_code for n, r in records.items()} == {"none": 0, "five": 5, "text": 1}
    assert (pool.output_directory / "2").read_text() == "bye\n"


def test_unexpected_callable_return_value_is_a_failure(pool):
    pool.launch(Job("odd", Callable(lambda out: "done")), 0)
    record = pool.wait_any()
    assert record.exit_code == 1
    assert "unexpected return value 'done'" in (pool.output_directory / "0").read_text()


def test_unopenable_sink_has_no_exit_code(pool):
    (pool.output_directory / "3").mkdir()
    pool.launch(Job("nowhere", Command("true")), 3)
    record = pool.wait_any()
    assert record.exit_code is None
    assert not record.passed
    assert pool.active_count() == 0
