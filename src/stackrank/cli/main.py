"""CLI commands driving the ranking engine against a SQLite file."""

import json
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
import structlog

from stackrank.engine import RankingEngine
from stackrank.errors import EngineError, http_status_for
from stackrank.observability.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
)
from stackrank.ranker.models import Ordering
from stackrank.settings import EngineSettings
from stackrank.store import SqliteStore


logger = structlog.get_logger()


def _settings_from(ctx: click.Context) -> EngineSettings:
    settings: EngineSettings = ctx.obj["settings"]
    return settings


@contextmanager
def _open_engine(ctx: click.Context) -> Iterator[RankingEngine]:
    """Open an engine for one command, reporting engine errors on stderr.

    Each command gets its own request id on every log line it emits.

    Args:
        ctx: Click context carrying the settings.

    Yields:
        An opened engine.
    """
    settings = _settings_from(ctx)
    engine = RankingEngine(SqliteStore(settings.store_path), settings=settings)
    bind_request_context(uuid.uuid4().hex[:12])
    try:
        with engine:
            yield engine
    except EngineError as e:
        logger.info(
            "cli_command_failed",
            command=ctx.info_name,
            error_class=e.error_class.value,
            status=http_status_for(e),
        )
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    finally:
        clear_request_context()


def _echo_json(payload: object) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="SQLite database file (overrides STACKRANK_STORE_PATH).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging.",
)
@click.pass_context
def cli(ctx: click.Context, db_path: Path | None, verbose: bool) -> None:
    """Q&A forum ranking engine CLI."""
    settings = EngineSettings()
    if db_path is not None:
        settings = settings.model_copy(update={"store_path": str(db_path)})

    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.json_logs,
    )
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database and apply schema migrations."""
    settings = _settings_from(ctx)
    with SqliteStore(settings.store_path) as store:
        version = store.get_schema_version()
        stats = store.get_stats()

    click.echo(f"Database ready: {settings.store_path}")
    click.echo(f"  Schema Version: {version}")
    for table, count in sorted(stats.items()):
        click.echo(f"  {table}: {count}")


@cli.command()
@click.option("--title", required=True, help="Question title.")
@click.option("--text", required=True, help="Question body.")
@click.option(
    "--tag",
    "tags",
    multiple=True,
    help="Tag name (repeatable, at most five).",
)
@click.option("--author", default=None, help="Author user id.")
@click.pass_context
def ask(
    ctx: click.Context, title: str, text: str, tags: tuple[str, ...], author: str | None
) -> None:
    """Post a question."""
    with _open_engine(ctx) as engine:
        question = engine.create_question(title, text, list(tags), author_id=author)
    click.echo(question.question_id)


@cli.command()
@click.argument("question_id")
@click.option("--text", required=True, help="Answer body.")
@click.option("--author", default=None, help="Author user id.")
@click.pass_context
def answer(ctx: click.Context, question_id: str, text: str, author: str | None) -> None:
    """Answer a question."""
    with _open_engine(ctx) as engine:
        created = engine.create_answer(question_id, text, author_id=author)
    click.echo(created.answer_id)


@cli.command()
@click.argument("answer_id")
@click.option("--text", required=True, help="Comment body.")
@click.option("--author", default=None, help="Commenter user id.")
@click.pass_context
def comment(ctx: click.Context, answer_id: str, text: str, author: str | None) -> None:
    """Comment on an answer."""
    with _open_engine(ctx) as engine:
        created = engine.create_comment(answer_id, text, author_id=author)
    click.echo(created.comment_id)


@cli.command()
@click.argument("answer_id")
@click.option("--user", "user_id", default=None, help="Voting user id.")
@click.pass_context
def vote(ctx: click.Context, answer_id: str, user_id: str | None) -> None:
    """Toggle an upvote on an answer."""
    with _open_engine(ctx) as engine:
        result = engine.cast_vote(answer_id, user_id)
    click.echo(
        f"{result.outcome.value} votes={result.new_count} "
        f"voted={'yes' if result.user_has_voted else 'no'}"
    )


@cli.command()
@click.option(
    "--order",
    "ordering",
    type=click.Choice([o.value for o in Ordering], case_sensitive=False),
    default=Ordering.NEWEST.value,
    show_default=True,
    help="Question ordering.",
)
@click.option("--tag", default=None, help="Only questions carrying this tag.")
@click.option("--search", default=None, help="Search text, e.g. '[python] sort'.")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def questions(
    ctx: click.Context,
    ordering: str,
    tag: str | None,
    search: str | None,
    json_output: bool,
) -> None:
    """List questions under an ordering."""
    with _open_engine(ctx) as engine:
        listing = engine.list_questions(ordering, tag=tag, search=search)

    if json_output:
        _echo_json([q.model_dump(mode="json") for q in listing])
        return
    for q in listing:
        tags = " ".join(f"[{t}]" for t in q.tags)
        click.echo(f"{q.question_id}  {q.title}  {tags}  answers={q.answer_count}")


@cli.command()
@click.argument("question_id")
@click.option("--viewer", default=None, help="Viewing user id.")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def answers(
    ctx: click.Context, question_id: str, viewer: str | None, json_output: bool
) -> None:
    """List the answers of a question in ranked order."""
    with _open_engine(ctx) as engine:
        listing = engine.list_answers(question_id, viewer_id=viewer)

    if json_output:
        _echo_json([a.model_dump(mode="json") for a in listing])
        return
    for a in listing:
        marker = "*" if a.user_has_voted else " "
        click.echo(f"{marker} {a.vote_count:>4}  {a.answer_id}  {a.text}")


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def tags(ctx: click.Context, json_output: bool) -> None:
    """List tags with their question counts."""
    with _open_engine(ctx) as engine:
        counts = engine.list_tags()

    if json_output:
        _echo_json([{"tag": t.name, "count": t.count} for t in counts])
        return
    for t in counts:
        click.echo(f"{t.name}: {t.count}")


if __name__ == "__main__":
    cli()
