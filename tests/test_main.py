import json
from unittest.mock import patch

import pytest

from LOGLENS import main as cli
from LOGLENS.ingest import FileSource, FollowedFileSource


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with patch('LOGLENS.main.setup_logging', return_value=str(tmp_path / "loglens.log")), \
            patch('LOGLENS.config.load_dotenv'), \
            patch('LOGLENS.main.detach_stdin', return_value=None):
        yield


def test_parser_options():
    args = cli.build_parser().parse_args(["a.log", "b.log", "--capacity", "10", "--follow", "-b", "20"])
    assert args.files == ["a.log", "b.log"]
    assert args.capacity == 10
    assert args.follow is True
    assert args.buckets == 20


def test_no_input_is_an_error():
    with pytest.raises(SystemExit):
        cli.main([])


def test_invalid_rule_file(tmp_path, capsys):
    rules = tmp_path / "rules.json"
    rules.write_text(json.dumps({"events": [{"name": "bad", "pattern": "(", "regex": True}]}))
    assert cli.main(["--rules", str(rules), "x.log"]) == 2
    assert "Invalid rule" in capsys.readouterr().err


def test_missing_rule_file(tmp_path, capsys):
    assert cli.main(["--rules", str(tmp_path / "absent.json"), "x.log"]) == 2
    assert "Could not load rules" in capsys.readouterr().err


def test_runs_app_with_sources(tmp_path):
    log_file = tmp_path / "a.log"
    log_file.write_text("hello\n")
    with patch('LOGLENS.main.run_app') as run_app:
        assert cli.main([str(log_file), "--capacity", "50", "--buckets", "12"]) == 0

    store, controller = run_app.call_args[0]
    assert store.capacity == 50
    assert run_app.call_args.kwargs['timeline_buckets'] == 12
    assert isinstance(controller.sources[str(log_file)], FileSource)


def test_follow_uses_followed_sources(tmp_path):
    with patch('LOGLENS.main.run_app') as run_app:
        cli.main(["--follow", str(tmp_path / "a.log")])
    controller = run_app.call_args[0][1]
    assert all(isinstance(s, FollowedFileSource) for s in controller.sources.values())


def test_rule_manager_handed_to_app(tmp_path):
    rules_path = tmp_path / "rules.json"
    rules_path.write_text(json.dumps({"filters": [{"pattern": "ERROR"}]}))
    log_file = tmp_path / "a.log"
    log_file.write_text("ERROR x\n")
    with patch('LOGLENS.main.run_app') as run_app:
        assert cli.main(["--rules", str(rules_path), str(log_file)]) == 0

    store = run_app.call_args[0][0]
    rules = run_app.call_args.kwargs['rules']
    assert rules.store is store
    assert rules.path == str(rules_path)
    assert len(rules.config.filters) == 1
