import pytest

from jobdag.dag import Graph
from jobdag.errors import ArgumentError, ConfigurationError, DefinitionError, InvariantError
from jobdag.model import Command, JobState


def _graph(edges):
    """edges: list of (name, [predecessors])"""
    g = Graph()
    for name, preds in edges:
        g.add_job(name, preds, Command("true"))
    return g


def test_add_job_rejects_undefined_predecessor():
    g = Graph()
    with pytest.raises(DefinitionError) as e:
        g.add_job("job1", ["job0"], Command("true"), location="file:line")
    assert str(e.value) == "job 'job1' references undefined predecessor job(s) 'job0' @ file:line"


def test_add_job_requires_action():
    g = Graph()
    with pytest.raises(DefinitionError) as e:
        g.add_job("job0", [], None, location="file:line")
    assert str(e.value).startswith("job 'job0' definition is incomplete @ file:line")
    assert e.value.kind == "incomplete_job"


def test_add_job_rejects_duplicates_and_blank_names():
    g = _graph([("a", [])])
    with pytest.raises(DefinitionError, match="already defined"):
        g.add_job("a", [], Command("true"))
    with pytest.raises(ArgumentError):
        g.add_job("  ", [], Command("true"))


def test_ready_jobs_in_definition_order():
    g = _graph([("b", []), ("a", []), ("c", ["a"])])
    assert [j.name for j in g.ready_jobs()] == ["b", "a"]
    assert g.job("c").state is JobState.PENDING


def test_job_becomes_ready_when_last_predecessor_succeeds():
    g = _graph([("a", []), ("b", []), ("c", ["a", "b"])])
    assert [j.name for j in g.ready_jobs()] == ["a", "b"]
    g.mark_started("a", 0)
    g.mark_started("b", 1)
    g.mark_finished("a", 0)
    assert g.ready_jobs() == []
    g.mark_finished("b", 0)
    assert [j.name for j in g.ready_jobs()] == ["c"]


def test_failure_skips_transitive_dependents_only():
    g = _graph([("a", []), ("b", ["a"]), ("c", ["b"]), ("d", []), ("e", ["c", "d"])])
    g.ready_jobs()
    g.mark_started("a", 0)
    skipped = g.mark_finished("a", 2)

    assert [j.name for j in skipped] == ["b", "c", "e"]
    assert g.job("a").state is JobState.FAILED
    assert g.job("a").exit_code == 2
    assert g.job("d").state is JobState.READY
    assert not g.is_finished()


def test_absent_exit_code_is_a_failure():
    g = _graph([("a", []), ("b", ["a"])])
    g.ready_jobs()
    g.mark_started("a", 0)
    g.mark_finished("a", None)
    assert g.job("a").state is JobState.FAILED
    assert g.job("a").exit_code is None
    assert g.job("b").state is JobState.SKIPPED
    assert g.is_finished()


def test_transitions_are_checked():
    g = _graph([("a", []), ("b", ["a"])])
    with pytest.raises(InvariantError):
        g.mark_started("b", 0)
    with pytest.raises(InvariantError):
        g.mark_finished("a", 0)
    with pytest.raises(InvariantError):
        g.job("missing")


def test_descendants():
    g = _graph([("a", []), ("b", ["a"]), ("c", []), ("d", ["b", "c"])])
    assert g.descendants("a") == ["b", "d"]
    assert g.descendants("d") == []


def test_validate_levels_and_is_repeatable():
    g = _graph([("a", []), ("b", []), ("c", ["a"]), ("d", ["c", "b"])])
    assert g.validate() == [["a", "b"], ["c"], ["d"]]
    assert g.validate() == [["a", "b"], ["c"], ["d"]]


def test_validate_detects_cycle():
    g = _graph([("a", []), ("b", ["a"]), ("c", ["b"])])
    g.job("a").predecessors.append("c")
    with pytest.raises(ConfigurationError) as e:
        g.validate()
    assert "cycle" in str(e.value)
    assert set(e.value.fields["jobs"]) == {"a", "b", "c"}


def test_merge_prefixes_jobs_and_predecessors():
    lib = _graph([("build", []), ("test", ["build"])])
    g = _graph([("setup", [])])
    merged = g.merge(lib, "lib")

    assert [j.name for j in merged] == ["lib_build", "lib_test"]
    assert g.job("lib_test").predecessors == ["lib_build"]
    assert g.names == ["setup", "lib_build", "lib_test"]


def test_merge_rejects_collisions():
    g = _graph([("lib_build", [])])
    with pytest.raises(DefinitionError, match="lib_build"):
        g.merge(_graph([("build", [])]), "lib")


def test_import_file_validates_arguments(tmp_path):
    g = Graph()
    with pytest.raises(ArgumentError) as e:
        g.import_file(5, tmp_path / "x.py", location="file:line")
    assert str(e.value) == "import prefix argument must be a non-blank string @ file:line"

    with pytest.raises(ArgumentError) as e:
        g.import_file("prefix", "invalid.py", base=tmp_path, location="file:line")
    assert str(e.value) == "file 'invalid.py' not found @ file:line"


def test_to_dot():
    g = _graph([("a", []), ("b", ["a"])])
    assert g.to_dot() == 'digraph jobs {\n  "a";\n  "b";\n  "a" -> "b";\n}'
