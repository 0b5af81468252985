"""Integration tests for the command-line interface."""

import json
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner

from stackrank.cli import main
from stackrank.cli.main import cli
from stackrank.observability.logging import bind_request_context
from stackrank.observability.metrics import EngineMetrics
from stackrank.store.metrics import StoreMetrics


@pytest.fixture
def db_path() -> Generator[Path]:
    """Create a temporary database path."""
    StoreMetrics.reset()
    EngineMetrics.reset()
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "cli.sqlite"


@pytest.fixture
def runner() -> CliRunner:
    """Create a click test runner."""
    return CliRunner()


def _run(runner: CliRunner, db_path: Path, *args: str) -> str:
    result = runner.invoke(cli, ["--db", str(db_path), *args])
    assert result.exit_code == 0, result.output
    return result.output.strip()


class TestCli:
    """Tests for CLI commands."""

    def test_init_db(self, runner: CliRunner, db_path: Path) -> None:
        """Test init-db creates the schema."""
        output = _run(runner, db_path, "init-db")
        assert "Schema Version: 2" in output
        assert db_path.exists()

    def test_ask_answer_vote(self, runner: CliRunner, db_path: Path) -> None:
        """Test a question, answer and vote through the CLI."""
        qid = _run(
            runner, db_path, "ask", "--title", "How?", "--text", "Body", "--tag", "Python"
        )
        aid = _run(runner, db_path, "answer", qid, "--text", "Like this")

        assert _run(runner, db_path, "vote", aid, "--user", "alice") == (
            "inserted votes=1 voted=yes"
        )
        assert _run(runner, db_path, "vote", aid, "--user", "alice") == (
            "removed votes=0 voted=no"
        )

        listing = json.loads(_run(runner, db_path, "answers", qid, "--json"))
        assert [a["answer_id"] for a in listing] == [aid]

    def test_questions_listing(self, runner: CliRunner, db_path: Path) -> None:
        """Test listing questions by ordering and tag."""
        q1 = _run(runner, db_path, "ask", "--title", "One", "--text", "B", "--tag", "a")
        q2 = _run(runner, db_path, "ask", "--title", "Two", "--text", "B", "--tag", "b")
        _run(runner, db_path, "answer", q1, "--text", "A")

        active = json.loads(_run(runner, db_path, "questions", "--order", "active", "--json"))
        assert [q["question_id"] for q in active] == [q1, q2]

        unanswered = json.loads(
            _run(runner, db_path, "questions", "--order", "unanswered", "--json")
        )
        assert [q["question_id"] for q in unanswered] == [q2]

        tagged = json.loads(_run(runner, db_path, "questions", "--tag", "B", "--json"))
        assert [q["question_id"] for q in tagged] == [q2]

    def test_tags(self, runner: CliRunner, db_path: Path) -> None:
        """Test tag counts are listed."""
        _run(runner, db_path, "ask", "--title", "One", "--text", "B", "--tag", "Go")
        _run(runner, db_path, "ask", "--title", "Two", "--text", "B", "--tag", "go")
        assert _run(runner, db_path, "tags") == "Go: 2"

    def test_comment(self, runner: CliRunner, db_path: Path) -> None:
        """Test commenting prints the comment id."""
        qid = _run(runner, db_path, "ask", "--title", "Q", "--text", "B", "--tag", "t")
        aid = _run(runner, db_path, "answer", qid, "--text", "A")
        cid = _run(runner, db_path, "comment", aid, "--text", "Nice", "--author", "bob")

        listing = json.loads(_run(runner, db_path, "answers", qid, "--json"))
        assert listing[0]["comments"][0]["comment_id"] == cid

    def test_engine_error_exit_code(self, runner: CliRunner, db_path: Path) -> None:
        """Test engine errors print a message and exit with code 1."""
        qid = _run(runner, db_path, "ask", "--title", "Q", "--text", "B", "--tag", "t")
        aid = _run(runner, db_path, "answer", qid, "--text", "A")

        result = runner.invoke(cli, ["--db", str(db_path), "vote", aid])

        assert result.exit_code == 1
        assert "You need to log in first." in result.output

    def test_validation_error(self, runner: CliRunner, db_path: Path) -> None:
        """Test a rejected question reports the validation message."""
        result = runner.invoke(
            cli, ["--db", str(db_path), "ask", "--title", " ", "--text", "B", "--tag", "t"]
        )
        assert result.exit_code == 1
        assert "Title cannot be empty." in result.output

    def test_each_command_binds_its_own_request_id(
        self, runner: CliRunner, db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test every engine command logs under a fresh request id, cleared afterwards."""
        bound: list[str] = []

        def record(request_id: str) -> None:
            bound.append(request_id)
            bind_request_context(request_id)

        monkeypatch.setattr(main, "bind_request_context", record)

        qid = _run(runner, db_path, "ask", "--title", "Q", "--text", "B", "--tag", "t")
        runner.invoke(cli, ["--db", str(db_path), "vote", "missing"])
        _run(runner, db_path, "answers", qid)

        assert len(bound) == 3
        assert len(set(bound)) == 3
        assert "request_id" not in structlog.contextvars.get_contextvars()
