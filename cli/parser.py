"""Command parser for CLI input."""

import re
import shlex
from typing import Optional

from cli.models import (
    ChunkSizeCommand,
    CommandRequest,
    DownloadCommand,
    InfoCommand,
    ListCommand,
    ResumeCommand,
    UploadCommand,
)

_RANGE_PATTERN = re.compile(r'^(\d*)-(\d*)$')


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object (one of Upload/Resume/List/Info/Download/ChunkSize)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "resume":
        return _parse_resume(tokens[1:])
    elif command_name == "list":
        return _parse_list(tokens[1:])
    elif command_name == "info":
        return _parse_info(tokens[1:])
    elif command_name == "download":
        return _parse_download(tokens[1:])
    elif command_name == "chunk-size":
        return _parse_chunk_size(tokens[1:])
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <path> [name] [--type <media-type>]' command."""
    content_type: Optional[str] = None
    positional = []

    i = 0
    while i < len(args):
        if args[i] == "--type":
            if i + 1 >= len(args):
                raise ParseError("--type requires a media type")
            content_type = args[i + 1]
            i += 2
            continue
        positional.append(args[i])
        i += 1

    if not positional:
        raise ParseError("upload requires a file path")
    if len(positional) > 2:
        raise ParseError("upload takes at most 2 arguments: <path> [name]")

    path = positional[0]
    name = positional[1] if len(positional) > 1 else None
    return UploadCommand(path=path, name=name, content_type=content_type)


def _parse_resume(args: list[str]) -> ResumeCommand:
    """Parse 'resume <entry-id> <path>' command."""
    if len(args) != 2:
        raise ParseError("resume requires exactly 2 arguments: <entry-id> <path>")

    entry_id, path = args
    return ResumeCommand(entry_id=entry_id, path=path)


def _parse_list(args: list[str]) -> ListCommand:
    """Parse 'list' command."""
    if args:
        raise ParseError("list takes no arguments")
    return ListCommand()


def _parse_info(args: list[str]) -> InfoCommand:
    """Parse 'info <entry-id>' command."""
    if len(args) != 1:
        raise ParseError("info requires exactly 1 argument: <entry-id>")
    return InfoCommand(entry_id=args[0])


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <entry-id> <output> [start-end]' command."""
    if len(args) not in (2, 3):
        raise ParseError("download requires 2 or 3 arguments: <entry-id> <output> [start-end]")

    entry_id, output_path = args[0], args[1]
    byte_range = parse_byte_range(args[2]) if len(args) == 3 else None

    return DownloadCommand(entry_id=entry_id, output_path=output_path, byte_range=byte_range)


def _parse_chunk_size(args: list[str]) -> ChunkSizeCommand:
    """Parse 'chunk-size [bytes]' command."""
    if not args:
        return ChunkSizeCommand()
    if len(args) > 1 or not args[0].isdigit() or int(args[0]) == 0:
        raise ParseError("chunk-size takes one positive integer")
    return ChunkSizeCommand(chunk_size=int(args[0]))


def parse_byte_range(value: str) -> tuple[Optional[int], Optional[int]]:
    """Parse 'start-end' where either bound may be omitted."""
    match = _RANGE_PATTERN.match(value.strip())
    if not match or value.strip() == "-":
        raise ParseError(f"Invalid byte range '{value}', expected start-end (e.g. 0-1023)")

    start = int(match.group(1)) if match.group(1) else None
    end = int(match.group(2)) if match.group(2) else None
    if start is not None and end is not None and end < start:
        raise ParseError(f"Invalid byte range '{value}': end before start")
    return start, end
