import pytest
from typer.testing import CliRunner

from mangarunners import __version__
from mangarunners.cli.main import RUNNERS, app
from mangarunners.runners.atsumaru import AtsumaruRunner

from conftest import RouteFetcher, make_hit, search_body


runner = CliRunner()


@pytest.fixture
def fake_source(monkeypatch):
    routes = {
        "documents/search": search_body([make_hit("bk", "Berserk")]),
        "chapters?id=bk": {"pages": 1, "chapters": [{"id": "c1", "number": 1, "title": "The Black Swordsman"}]},
    }
    monkeypatch.setitem(
        RUNNERS, "atsumaru",
        lambda config: AtsumaruRunner(config, fetch_text=RouteFetcher(routes)),
    )


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_search_prints_results(tmp_path, fake_source):
    result = runner.invoke(app, ["--config-dir", str(tmp_path), "search", "berserk"])

    assert result.exit_code == 0
    assert "atsu|bk" in result.output
    assert "last page" in result.output


def test_chapters_lists_chapters(tmp_path, fake_source):
    result = runner.invoke(app, ["--config-dir", str(tmp_path), "chapters", "atsu|bk"])

    assert result.exit_code == 0
    assert "c1" in result.output
    assert "1 chapters" in result.output


def test_unknown_runner_exits(tmp_path):
    result = runner.invoke(app, ["--config-dir", str(tmp_path), "--runner", "nope", "search", "x"])

    assert result.exit_code == 2


def test_invalid_content_id_fails(tmp_path, fake_source):
    result = runner.invoke(app, ["--config-dir", str(tmp_path), "info", "berserk"])

    assert result.exit_code == 1
