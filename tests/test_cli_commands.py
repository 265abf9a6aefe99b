"""Tests for CLI command handlers."""

import io

from unittest.mock import Mock
from cli.commands import handle_resume, handle_status, handle_upload
from cli.models import ResumeCommand, StatusCommand, UploadCommand
from cli.upload_client import UploadApiClient
from common.exceptions import ChunkMismatchError, UnknownSessionError
from common.types import FinalArtifact, SessionDescriptor, UploadStatus


def make_mock_client(temp_config, uploaded=()):
    """UploadApiClient mock that accepts every chunk."""
    mock_client = Mock(spec=UploadApiClient)
    mock_client.config = temp_config
    mock_client.init_upload.return_value = SessionDescriptor(
        upload_id='up-1', chunk_size=524288, total_chunks=1, max_bytes=41943040
    )
    mock_client.get_status.return_value = UploadStatus(
        upload_id='up-1', uploaded_chunks=list(uploaded), total_chunks=1, chunk_size=524288
    )
    mock_client.complete_upload.return_value = FinalArtifact(
        original_filename='test.txt',
        path='temp_attachments/cli/test_abc.txt',
        size=26,
        mime_type='text/plain',
    )
    return mock_client


def test_handle_upload(temp_config, sample_file):
    """Test upload command handler with mocked client."""
    mock_client = make_mock_client(temp_config)
    stream = io.StringIO()

    result = handle_upload(UploadCommand(file_path=str(sample_file)), client=mock_client, stream=stream)

    assert 'Upload complete!' in result
    assert 'temp_attachments/cli/test_abc.txt' in result
    mock_client.init_upload.assert_called_once_with('test.txt', 26, 'cli', 'text/plain')
    assert mock_client.upload_chunk.call_count == 1
    mock_client.complete_upload.assert_called_once_with('up-1')
    assert '100%' in stream.getvalue()


def test_handle_upload_with_temp_identifier(temp_config, sample_file):
    """Test that a temp identifier is passed through to init."""
    mock_client = make_mock_client(temp_config)

    handle_upload(
        UploadCommand(file_path=str(sample_file), temp_identifier='project-7'),
        client=mock_client,
        stream=io.StringIO(),
    )

    assert mock_client.init_upload.call_args[0][2] == 'project-7'


def test_handle_upload_missing_file(temp_config, tmp_path):
    """Test upload of a non-existent file."""
    mock_client = make_mock_client(temp_config)

    result = handle_upload(UploadCommand(file_path=str(tmp_path / 'nope.txt')), client=mock_client)

    assert result.startswith('Error: File not found')
    mock_client.init_upload.assert_not_called()


def test_handle_upload_failure_suggests_resume(temp_config, sample_file):
    """Test that a failed upload reports how to resume."""
    mock_client = make_mock_client(temp_config)
    mock_client.upload_chunk.side_effect = ChunkMismatchError('Checksum mismatch for chunk 0')

    result = handle_upload(UploadCommand(file_path=str(sample_file)), client=mock_client, stream=io.StringIO())

    assert 'Upload failed (CHUNK_MISMATCH)' in result
    assert f'resume up-1 {sample_file}' in result
    mock_client.complete_upload.assert_not_called()


def test_handle_resume(temp_config, sample_file):
    """Test resume skips chunks the server already has."""
    mock_client = make_mock_client(temp_config, uploaded=[0])

    result = handle_resume(
        ResumeCommand(upload_id='up-1', file_path=str(sample_file)),
        client=mock_client,
        stream=io.StringIO(),
    )

    assert 'Upload complete!' in result
    mock_client.init_upload.assert_not_called()
    mock_client.upload_chunk.assert_not_called()
    mock_client.complete_upload.assert_called_once_with('up-1')


def test_handle_status(temp_config):
    """Test status command handler output."""
    mock_client = make_mock_client(temp_config)
    mock_client.get_status.return_value = UploadStatus(
        upload_id='up-1', uploaded_chunks=[0, 2], total_chunks=4, chunk_size=524288
    )

    result = handle_status(StatusCommand(upload_id='up-1'), client=mock_client)

    assert 'Upload up-1: 2/4 chunks uploaded' in result
    assert 'Missing chunks: 1, 3' in result


def test_handle_status_unknown(temp_config):
    """Test status of an unknown upload."""
    mock_client = make_mock_client(temp_config)
    mock_client.get_status.side_effect = UnknownSessionError('Upload nope not found')

    result = handle_status(StatusCommand(upload_id='nope'), client=mock_client)

    assert result == 'Error: Upload nope not found'
