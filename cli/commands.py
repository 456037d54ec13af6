"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Optional

from common.logging_config import get_logger
from cli.models import (
    ChunkSizeCommand,
    DownloadCommand,
    InfoCommand,
    ListCommand,
    ResumeCommand,
    UploadCommand,
)
from cli.config import Config
from cli.appserver_client import AppServerClient
from cli.utils import format_file_size

logger = get_logger(__name__)


_client: Optional[AppServerClient] = None


def get_client() -> AppServerClient:
    """
    Get or create global AppServerClient instance.

    Returns:
        AppServerClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new AppServerClient instance")
        config = Config(Path.home() / '.appserver' / 'config.json')
        _client = AppServerClient(config)
    return _client


def handle_upload(cmd: UploadCommand, client: Optional[AppServerClient] = None) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with path, optional name and content type
        client: Optional AppServerClient for dependency injection (testing)

    Returns:
        Success or error message with upload results
    """
    logger.info(f"Executing upload command: path={cmd.path} name={cmd.name}")
    if client is None:
        client = get_client()
    result = client.upload(cmd.path, cmd.name, cmd.content_type)
    logger.debug("Upload command completed")
    return result


def handle_resume(cmd: ResumeCommand, client: Optional[AppServerClient] = None) -> str:
    """
    Handle 'resume' command.

    Args:
        cmd: ResumeCommand with entry_id and path
        client: Optional AppServerClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    logger.info(f"Executing resume command: entry_id={cmd.entry_id} path={cmd.path}")
    if client is None:
        client = get_client()
    return client.resume(cmd.entry_id, cmd.path)


def handle_list(cmd: ListCommand, client: Optional[AppServerClient] = None) -> str:
    """Handle 'list' command."""
    if client is None:
        client = get_client()
    return client.list_entries()


def handle_info(cmd: InfoCommand, client: Optional[AppServerClient] = None) -> str:
    """Handle 'info' command."""
    if client is None:
        client = get_client()
    return client.info(cmd.entry_id)


def handle_download(cmd: DownloadCommand, client: Optional[AppServerClient] = None) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with entry_id, output_path and optional byte_range
        client: Optional AppServerClient for dependency injection (testing)

    Returns:
        Success or error message with download results
    """
    logger.info(
        f"Executing download command: entry_id={cmd.entry_id} output_path={cmd.output_path} range={cmd.byte_range}"
    )
    if client is None:
        client = get_client()
    result = client.download(cmd.entry_id, cmd.output_path, cmd.byte_range)
    logger.debug("Download command completed")
    return result


def handle_chunk_size(cmd: ChunkSizeCommand, client: Optional[AppServerClient] = None) -> str:
    """
    Handle 'chunk-size' command.

    Without an argument the current size is reported; otherwise the new
    size is stored in the config file.
    """
    if client is None:
        client = get_client()
    config = client.config
    if cmd.chunk_size is None:
        size = config.get_chunk_size()
        return f"Chunk size: {format_file_size(size)} ({size} bytes)"

    try:
        config.set_chunk_size(cmd.chunk_size)
    except ValueError as e:
        return f"Error: {e}"
    return f"Chunk size set to {format_file_size(cmd.chunk_size)} ({cmd.chunk_size} bytes)"
