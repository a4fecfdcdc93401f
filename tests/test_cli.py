"""Tests for the CLI module."""

import json
import logging
import sys
import pytest
from unittest.mock import patch, MagicMock

from context_memory.cli import (
    build_parser,
    handle_add,
    handle_clear,
    handle_search,
    main,
    setup_logging,
)


def create_mock_args(**kwargs):
    """Helper to create mock args with default values."""
    defaults = {
        'content': None,
        'query': None,
        'type': None,
        'source': None,
        'tags': None,
        'importance': None,
        'limit': None,
        'threshold': None,
        'json': False,
        'yes': False,
    }
    defaults.update(kwargs)

    args = MagicMock()
    for key, value in defaults.items():
        setattr(args, key, value)
    return args


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Isolated working directory and a SQLite store path for CLI runs."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return ["--backend", "sqlite", "--path", str(tmp_path / "memory.db")]


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_default(self):
        """Test default logging setup."""
        setup_logging()
        assert logging.getLogger("context_memory").level == logging.INFO

    def test_setup_logging_verbose(self):
        """Test verbose logging setup."""
        setup_logging(verbose=True)
        assert logging.getLogger("context_memory").level == logging.DEBUG


class TestBuildParser:
    """Tests for the argument parser."""

    def test_add_arguments(self):
        """Test parsing an add command."""
        args = build_parser().parse_args([
            "add", "Dark mode", "--type", "user_preference",
            "--tags", "ui", "theme", "--importance", "8",
        ])

        assert args.command == "add"
        assert args.content == "Dark mode"
        assert args.type == "user_preference"
        assert args.tags == ["ui", "theme"]
        assert args.importance == 8

    def test_invalid_type_rejected(self, capsys):
        """Test unknown memory types are rejected by the parser."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["add", "x", "--type", "gossip"])


class TestHandlers:
    """Tests for command handlers."""

    def test_handle_add(self, manager, capsys):
        """Test adding through the handler."""
        args = create_mock_args(
            content="Remember the milk",
            type="knowledge",
            source="Kitchen",
            tags=["shopping"],
            importance=7,
        )

        handle_add(manager, args)

        entry = manager.list_entries()[0]
        assert entry.metadata.source == "Kitchen"
        assert entry.metadata.tags == ("shopping",)
        assert entry.metadata.importance == 7
        assert f"Stored memory {entry.id}" in capsys.readouterr().out

    def test_handle_search_no_results(self, manager, capsys):
        """Test searching an empty store."""
        handle_search(manager, create_mock_args(query="anything"))

        assert "No memories found" in capsys.readouterr().out

    def test_handle_search_results(self, manager, capsys):
        """Test search output lists matches."""
        manager.add("User visited page X", {"source": "PageX", "tags": ["nav"]})

        handle_search(manager, create_mock_args(query="page X"))

        output = capsys.readouterr().out
        assert "Found 1 matching memories" in output
        assert "User visited page X" in output
        assert "Source: PageX" in output
        assert "Tags: nav" in output

    def test_handle_search_json(self, manager, capsys):
        """Test search output as JSON."""
        manager.add("User visited page X")

        handle_search(manager, create_mock_args(query="page X", json=True, limit=1))

        data = json.loads(capsys.readouterr().out)
        assert len(data) == 1
        assert data[0]["entry"]["content"] == "User visited page X"
        assert 0.1 <= data[0]["similarity"] <= 1.0

    def test_handle_clear_aborted(self, manager, capsys):
        """Test declining the confirmation keeps the memories."""
        manager.add("keep me")

        with patch("builtins.input", return_value="n"):
            handle_clear(manager, create_mock_args())

        assert "Aborted" in capsys.readouterr().out
        assert len(manager.list_entries()) == 1

    def test_handle_clear_confirmed(self, manager, capsys):
        """Test confirming the prompt clears the memories."""
        manager.add("drop me")

        with patch("builtins.input", return_value="y"):
            handle_clear(manager, create_mock_args())

        assert "cleared" in capsys.readouterr().out
        assert manager.list_entries() == []


class TestMainCLI:
    """Tests for main CLI entry point."""

    def test_main_no_command(self, capsys):
        """Test main with no command shows help."""
        with patch.object(sys, 'argv', ['context-memory']):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1

    def test_add_then_search(self, cli_env, capsys):
        """Test memories persist between CLI invocations."""
        main(cli_env + ["add", "User prefers dark mode", "--type", "user_preference",
                        "--source", "Settings", "--importance", "8"])
        assert "Stored memory mem_" in capsys.readouterr().out

        main(cli_env + ["search", "dark mode", "--json"])
        data = json.loads(capsys.readouterr().out)

        assert len(data) == 1
        assert data[0]["entry"]["metadata"]["type"] == "user_preference"
        assert data[0]["entry"]["metadata"]["importance"] == 8

    def test_search_type_filter(self, cli_env, capsys):
        """Test the search type filter."""
        main(cli_env + ["add", "Alpha", "--type", "knowledge"])
        capsys.readouterr()

        main(cli_env + ["search", "Alpha", "--type", "conversation"])

        assert "No memories found" in capsys.readouterr().out

    def test_context(self, cli_env, capsys):
        """Test printing the context block."""
        main(cli_env + ["add", "User visited page X", "--source", "PageX"])
        capsys.readouterr()

        main(cli_env + ["context", "page X"])
        output = capsys.readouterr().out

        assert output.startswith("Relevant context from memory:")
        assert "[context] User visited page X (similarity:" in output

    def test_context_empty(self, cli_env, capsys):
        """Test the context block of an empty store."""
        main(cli_env + ["context", "anything"])

        assert "No relevant context found in memory." in capsys.readouterr().out

    def test_list(self, cli_env, capsys):
        """Test listing entries in insertion order."""
        main(cli_env + ["list"])
        assert "No memories stored." in capsys.readouterr().out

        main(cli_env + ["add", "first"])
        main(cli_env + ["add", "second"])
        capsys.readouterr()

        main(cli_env + ["list"])
        lines = capsys.readouterr().out.strip().split("\n")

        assert len(lines) == 2
        assert lines[0].endswith("first")
        assert lines[1].endswith("second")

    def test_stats(self, cli_env, capsys):
        """Test statistics output."""
        main(cli_env + ["add", "a", "--type", "knowledge", "--source", "Docs"])
        main(cli_env + ["add", "b", "--type", "knowledge", "--source", "Chat"])
        capsys.readouterr()

        main(cli_env + ["stats", "--json"])
        stats = json.loads(capsys.readouterr().out)

        assert stats["total_entries"] == 2
        assert stats["by_type"] == {"knowledge": 2}
        assert stats["by_source"] == {"Docs": 1, "Chat": 1}

        main(cli_env + ["stats"])
        assert "Memory Statistics" in capsys.readouterr().out

    def test_clear_yes(self, cli_env, capsys):
        """Test clearing without a prompt."""
        main(cli_env + ["add", "temporary"])
        main(cli_env + ["clear", "--yes"])
        capsys.readouterr()

        main(cli_env + ["list"])

        assert "No memories stored." in capsys.readouterr().out

    def test_config_file(self, tmp_path, monkeypatch, capsys):
        """Test the backend can come from a config file."""
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.chdir(tmp_path)
        store = tmp_path / "store"
        config_file = tmp_path / "settings.yml"
        config_file.write_text(
            f"storage:\n  backend: file\n  path: {store}\nlogging:\n  level: WARNING\n"
        )

        main(["--config", str(config_file), "add", "from config"])

        assert (store / "context-memory.json").exists()
        assert "Stored memory" in capsys.readouterr().out

    def test_json_logs(self, cli_env, capsys):
        """Test --json-logs writes JSON lines to stderr."""
        main(cli_env + ["-v", "--json-logs", "add", "logged"])

        err_lines = [line for line in capsys.readouterr().err.splitlines() if line]
        assert err_lines
        assert all(json.loads(line)["logger"].startswith("context_memory") for line in err_lines)
