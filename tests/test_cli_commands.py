"""Tests for CLI command handlers."""

from unittest.mock import Mock

from cli.appserver_client import AppServerClient
from cli.commands import (
    handle_chunk_size,
    handle_download,
    handle_info,
    handle_list,
    handle_resume,
    handle_upload,
)
from cli.models import (
    ChunkSizeCommand,
    DownloadCommand,
    InfoCommand,
    ListCommand,
    ResumeCommand,
    UploadCommand,
)
from cli.repl import dispatch_command

ENTRY_ID = "3f2b6c1e-9a7d-4c1e-8b55-0d1f2e3a4b5c"


def test_handle_upload():
    """Test upload command handler with mocked client."""
    mock_client = Mock(spec=AppServerClient)
    mock_client.upload.return_value = "Uploaded: report.pdf"

    cmd = UploadCommand(path='./report.pdf', name='report', content_type='application/pdf')
    result = handle_upload(cmd, client=mock_client)

    assert 'Uploaded' in result
    mock_client.upload.assert_called_once_with('./report.pdf', 'report', 'application/pdf')


def test_handle_resume():
    mock_client = Mock(spec=AppServerClient)
    mock_client.resume.return_value = "Uploaded: report.pdf"

    result = handle_resume(ResumeCommand(entry_id=ENTRY_ID, path='./report.pdf'), client=mock_client)

    assert 'Uploaded' in result
    mock_client.resume.assert_called_once_with(ENTRY_ID, './report.pdf')


def test_handle_list():
    mock_client = Mock(spec=AppServerClient)
    mock_client.list_entries.return_value = "No entries found."

    assert handle_list(ListCommand(), client=mock_client) == "No entries found."
    mock_client.list_entries.assert_called_once_with()


def test_handle_info():
    mock_client = Mock(spec=AppServerClient)
    mock_client.info.return_value = "report.pdf"

    handle_info(InfoCommand(entry_id=ENTRY_ID), client=mock_client)

    mock_client.info.assert_called_once_with(ENTRY_ID)


def test_handle_download_with_range():
    mock_client = Mock(spec=AppServerClient)
    mock_client.download.return_value = "Downloaded bytes 0-9/100"

    cmd = DownloadCommand(entry_id=ENTRY_ID, output_path='out.bin', byte_range=(0, 9))
    result = handle_download(cmd, client=mock_client)

    assert 'Downloaded' in result
    mock_client.download.assert_called_once_with(ENTRY_ID, 'out.bin', (0, 9))


def test_handle_chunk_size_show_and_set(temp_config):
    mock_client = Mock(spec=AppServerClient)
    mock_client.config = temp_config

    shown = handle_chunk_size(ChunkSizeCommand(), client=mock_client)
    assert str(temp_config.get_chunk_size()) in shown

    updated = handle_chunk_size(ChunkSizeCommand(chunk_size=2048), client=mock_client)
    assert '2048 bytes' in updated
    assert temp_config.get_chunk_size() == 2048


def test_dispatch_unknown_command_type():
    assert 'Unknown command type' in dispatch_command(object())
