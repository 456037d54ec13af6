"""REPL with prompt_toolkit for user interaction."""

import os
import sys
from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory

from cli.commands import (
    handle_chunk_size,
    handle_download,
    handle_info,
    handle_list,
    handle_resume,
    handle_upload,
)
from cli.completer import FileServerCompleter
from cli.constants import (
    HELP_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.models import (
    ChunkSizeCommand,
    DownloadCommand,
    InfoCommand,
    ListCommand,
    ResumeCommand,
    UploadCommand,
)
from cli.parser import ParseError, parse_command


def clear_screen() -> None:
    """Clear the terminal screen (cross-platform)."""
    if sys.platform == "win32":
        os.system("cls")
    else:
        os.system("clear")


def show_logo() -> None:
    """Display logo with ANSI colors."""
    print(LOGO)


def dispatch_command(cmd_obj) -> str:
    """Dispatch parsed command to appropriate handler."""
    if isinstance(cmd_obj, UploadCommand):
        return handle_upload(cmd_obj)
    elif isinstance(cmd_obj, ResumeCommand):
        return handle_resume(cmd_obj)
    elif isinstance(cmd_obj, ListCommand):
        return handle_list(cmd_obj)
    elif isinstance(cmd_obj, InfoCommand):
        return handle_info(cmd_obj)
    elif isinstance(cmd_obj, DownloadCommand):
        return handle_download(cmd_obj)
    elif isinstance(cmd_obj, ChunkSizeCommand):
        return handle_chunk_size(cmd_obj)
    else:
        return f"Unknown command type: {type(cmd_obj)}"


def repl_loop() -> None:
    """Start interactive REPL with prompt_toolkit."""
    history = InMemoryHistory()
    session: PromptSession = PromptSession(
        completer=FileServerCompleter(), history=history, style=STYLE
    )

    clear_screen()
    show_logo()
    print(WELCOME_TITLE)
    print(WELCOME_HELP)

    while True:
        try:
            user_input = session.prompt([("class:prompt", PROMPT_TEXT)])

            if not user_input.strip():
                continue

            if user_input.strip() == "exit":
                print("Goodbye!")
                break

            if user_input.strip() == "help":
                print(HELP_TEXT)
                continue

            if user_input.strip() == "clear":
                clear_screen()
                show_logo()
                print(WELCOME_TITLE)
                print(WELCOME_HELP)
                continue

            cmd_obj = parse_command(user_input)
            result = dispatch_command(cmd_obj)
            print(result)

        except ParseError as e:
            print(f"Error: {e}")
        except KeyboardInterrupt:
            continue
        except EOFError:
            print("\nGoodbye!")
            break
