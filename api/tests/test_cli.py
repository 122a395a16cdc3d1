from contextlib import contextmanager

import pytest

from award_rag import cli


@pytest.fixture
def patched_ctx(monkeypatch, fake_ctx):
    @contextmanager
    def fake_app_context(s):
        yield fake_ctx

    monkeypatch.setattr(cli, "app_context", fake_app_context)
    return fake_ctx


def test_ingest_command(patched_ctx, fake_store, awards_csv):
    assert cli.main(["ingest", str(awards_csv)]) == 0
    assert len(fake_store.rows) == 3
    assert fake_store.closed == 1


def test_ingest_command_reports_row_failures(patched_ctx, fake_store, awards_csv):
    fake_store.fail_on = "Ryan Gosling"
    assert cli.main(["ingest", str(awards_csv), "--workers", "2"]) == 1
    assert len(fake_store.rows) == 2


def test_ingest_init_db_creates_schema(patched_ctx, fake_store, awards_csv):
    assert cli.main(["ingest", str(awards_csv), "--init-db"]) == 0
    assert fake_store.schema_created


def test_ingest_missing_csv_fails_before_database(patched_ctx, fake_store, tmp_path):
    assert cli.main(["ingest", str(tmp_path / "missing.csv"), "--init-db"]) == 1
    assert not fake_store.schema_created
    assert fake_store.closed == 0


def test_ingest_wrong_columns_fails_before_database(patched_ctx, fake_store, awards_csv):
    assert cli.main(["ingest", str(awards_csv), "--columns", "camel", "--init-db"]) == 1
    assert not fake_store.schema_created
    assert fake_store.rows == []


def test_init_db_command(patched_ctx, fake_store):
    assert cli.main(["init-db"]) == 0
    assert fake_store.schema_created
    assert fake_store.closed == 1


def test_ask_prints_answer(patched_ctx, capsys):
    assert cli.main(["ask", "Who won best supporting actor?"]) == 0
    assert capsys.readouterr().out.strip() == "Robert Downey Jr."


def test_ask_skip_prints_nothing(patched_ctx, fake_store, capsys):
    fake_store.hits = []
    assert cli.main(["ask", "Who won?", "--on-empty", "skip"]) == 0
    assert capsys.readouterr().out == ""
    assert patched_ctx.llm.prompts == []


def test_ask_call_with_empty_context(patched_ctx, fake_store):
    fake_store.hits = []
    assert cli.main(["ask", "Who won?", "--on-empty", "call"]) == 0
    assert len(patched_ctx.llm.prompts) == 1


def test_usage_error():
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 2
