"""Custom completer for the file server CLI with local path autocompletion."""

import os
from pathlib import Path
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from cli.constants import COMMANDS, PATH_COMMANDS


class FileServerCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Local path completion for arguments of upload, resume and download
    """

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        """
        Generate completions based on cursor position and context.

        For the first token, completes command names.
        For path-taking commands, completes files and directories on disk.
        """
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        command = tokens[0].lower()
        if command not in PATH_COMMANDS:
            return

        previous = tokens[-1] if is_typing_new_token else (tokens[-2] if len(tokens) > 1 else "")
        if previous == "--type":
            return

        current_word = "" if is_typing_new_token else tokens[-1]
        yield from self._complete_paths(current_word)

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_paths(self, partial: str) -> Iterable[Completion]:
        """
        Complete paths relative to the current directory.

        Directories are suggested with a trailing separator so completion
        can continue into them. Hidden entries appear only once the user
        types a leading dot.
        """
        expanded = os.path.expanduser(partial)
        if partial.endswith(os.sep) or not partial:
            directory, prefix = expanded or ".", ""
        else:
            directory, prefix = os.path.split(expanded)
            directory = directory or "."

        base = Path(directory)
        if not base.is_dir():
            return

        try:
            items = sorted(base.iterdir(), key=lambda p: p.name)
        except OSError:
            return

        head = partial[: len(partial) - len(prefix)]
        for item in items:
            if not item.name.startswith(prefix):
                continue
            if item.name.startswith(".") and not prefix.startswith("."):
                continue
            suffix = os.sep if item.is_dir() else ""
            yield Completion(
                f"{head}{item.name}{suffix}",
                start_position=-len(partial),
                display=f"{item.name}{suffix}",
            )
