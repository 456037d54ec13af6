"""Tests for FileServerCompleter."""

import pytest

from prompt_toolkit.document import Document

from cli.completer import FileServerCompleter
from cli.constants import COMMANDS


@pytest.fixture
def completer():
    """Create a FileServerCompleter instance."""
    return FileServerCompleter()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """
    Temporary working directory with a few files.

    Returns:
        Path to the directory, which is also the current directory
    """
    (tmp_path / "report.pdf").write_text("content")
    (tmp_path / "readme.txt").write_text("content")
    (tmp_path / ".hidden").write_text("content")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "notes.md").write_text("content")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def get_completions_list(completer, text):
    """Helper to get list of completion texts from completer."""
    doc = Document(text, len(text))
    return [c.text for c in completer.get_completions(doc, None)]


class TestCommandCompletion:
    """Tests for command name completion."""

    def test_empty_input_shows_all_commands(self, completer):
        completions = get_completions_list(completer, "")
        assert completions == COMMANDS

    def test_partial_command_filters(self, completer):
        assert get_completions_list(completer, "up") == ["upload"]

    def test_no_path_completion_for_other_commands(self, completer, workdir):
        assert get_completions_list(completer, "info ") == []


class TestPathCompletion:
    """Tests for local path completion."""

    def test_lists_visible_entries(self, completer, workdir):
        completions = get_completions_list(completer, "upload ")
        assert completions == ["docs/", "readme.txt", "report.pdf"]

    def test_filters_by_prefix(self, completer, workdir):
        assert get_completions_list(completer, "upload rep") == ["report.pdf"]

    def test_hidden_files_need_leading_dot(self, completer, workdir):
        assert get_completions_list(completer, "upload .h") == [".hidden"]

    def test_descends_into_directories(self, completer, workdir):
        assert get_completions_list(completer, "resume abc docs/") == ["docs/notes.md"]

    def test_no_completion_after_type_option(self, completer, workdir):
        assert get_completions_list(completer, "upload --type ") == []

    def test_missing_directory(self, completer, workdir):
        assert get_completions_list(completer, "download abc nowhere/x") == []
