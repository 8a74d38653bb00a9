"""Unit tests for the sync, inspect and watch commands."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from keygraph.cli.main import main
from keygraph.sync.route_map import parse_route_map, render_route_map


@pytest.fixture
def runner():
    return CliRunner()


class TestSyncCommand:
    def test_sync_writes_artifacts(self, runner, blog_project):
        result = runner.invoke(main, ["sync", str(blog_project.project_root)])

        assert result.exit_code == 0, result.output
        assert "Sync complete" in result.output
        assert "Routes scanned:    4" in result.output
        assert "Files written:     5" in result.output
        assert (blog_project.routes_dir / "blog" / "+page.server.ts").exists()

    def test_second_sync_writes_nothing(self, runner, blog_project):
        runner.invoke(main, ["sync", str(blog_project.project_root)])
        result = runner.invoke(main, ["sync", str(blog_project.project_root)])

        assert result.exit_code == 0
        assert "Files written:     0" in result.output
        assert "Routes in sync:    4" in result.output

    def test_force_rebuilds_route_map(self, runner, blog_project):
        blog_project.route_map_path.parent.mkdir(parents=True)
        blog_project.route_map_path.write_text(render_route_map({"page:/gone": ["x"]}))

        runner.invoke(main, ["sync", str(blog_project.project_root)])
        assert "page:/gone" in parse_route_map(blog_project.route_map_path.read_text())

        result = runner.invoke(main, ["sync", "--force", str(blog_project.project_root)])

        assert result.exit_code == 0
        assert "page:/gone" not in parse_route_map(blog_project.route_map_path.read_text())

    def test_invalid_config(self, runner, tmp_path):
        (tmp_path / "keygraph.toml").write_text("colour = 'blue'\n")

        result = runner.invoke(main, ["sync", str(tmp_path)])

        assert result.exit_code == 1
        assert "Unknown keygraph option" in result.output

    def test_missing_directory(self, runner, tmp_path):
        result = runner.invoke(main, ["sync", str(tmp_path / "nope")])
        assert result.exit_code != 0


class TestInspectCommand:
    def test_json(self, runner, blog_project):
        result = runner.invoke(main, ["inspect", "--json", str(blog_project.project_root)])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        routes = {r["function_id"]: r for r in payload["routes"]}
        assert routes["page:/blog"]["keys"] == ["nav", "title", "user-count"]
        assert routes["layout:/"]["artifact"] == "src/routes/+layout.server.ts"
        assert payload["graph"]["total_documents"] == 6

    def test_inspect_never_writes(self, runner, blog_project):
        runner.invoke(main, ["inspect", str(blog_project.project_root)])
        assert not (blog_project.routes_dir / "+page.server.ts").exists()
        assert not blog_project.route_map_path.exists()

    def test_table(self, runner, blog_project):
        result = runner.invoke(main, ["inspect", str(blog_project.project_root)])

        assert result.exit_code == 0, result.output
        assert "page:/blog" in result.output
        assert "layout:/" in result.output

    def test_no_routes(self, runner, tmp_path):
        result = runner.invoke(main, ["inspect", str(tmp_path)])

        assert result.exit_code == 0
        assert "No routes found" in result.output


class TestWatchCommand:
    def test_starts_watcher(self, runner, blog_project):
        with patch("keygraph.cli.watcher.KeygraphWatcher") as mock_watcher:
            result = runner.invoke(main, ["watch", str(blog_project.project_root)])

        assert result.exit_code == 0, result.output
        mock_watcher.return_value.run_forever.assert_called_once()
        config = mock_watcher.call_args.args[0]
        assert config.project_root == blog_project.project_root
