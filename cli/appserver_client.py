"""HTTP client for the file server API."""

import os
import time
import uuid
from pathlib import Path
from typing import Optional

import httpx

from common.constants import API_PREFIX
from common.logging_config import get_logger
from cli.config import Config
from cli.utils import (
    display_progress,
    finish_progress,
    format_entry,
    format_file_size,
    sha256_of_file,
)

logger = get_logger(__name__)

MAX_OFFSET_RESYNCS = 5


class ServerError(Exception):
    """Raised when the file server answers with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class AppServerClient:
    """HTTP client for the file server API with retry logic and resumable uploads."""

    def __init__(self, config: Config, show_progress: bool = True):
        """
        Initialize file server client.

        Args:
            config: Configuration instance
            show_progress: Draw progress lines on stdout during transfers
        """
        self.config = config
        self.show_progress = show_progress
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        self.request_id = None
        logger.info(f"Initialized AppServerClient [base_url={config.get_base_url()}]")

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Retrying an append is safe: if an earlier attempt was committed the
        retry is answered with an offset conflict, or with a finalized-entry
        conflict when that attempt was the final chunk. The upload loop
        resolves both by re-reading the entry.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If max retries exceeded or connection fails
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        last_exception = None

        self.request_id = str(uuid.uuid4())
        headers = dict(kwargs.pop('headers', None) or {})
        headers['X-Request-ID'] = self.request_id

        logger.debug(
            f"Making request: {method} {endpoint} [request_id={self.request_id}]"
        )

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, headers=headers, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if 400 <= response.status_code < 500:
                    logger.warning(
                        f"Client error: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                    )
                    return response

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException, httpx.RemoteProtocolError) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue
                else:
                    logger.error(
                        f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                    )

        if isinstance(last_exception, httpx.ConnectError):
            raise ConnectionError("Cannot connect to file server. Is it running?")
        elif isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Server may be overloaded.")
        raise ConnectionError("Max retries exceeded")

    def _format_error(self, response: httpx.Response) -> tuple[str, str]:
        """
        Map HTTP errors to user-friendly messages.

        Args:
            response: HTTP response object

        Returns:
            Tuple of (message, error code)
        """
        try:
            error_data = response.json()
            detail = error_data.get('detail', 'Unknown error')
            code = error_data.get('code', 'UNKNOWN')
        except ValueError:
            detail = response.text if response.text else 'Unknown error'
            code = 'UNKNOWN'

        error_messages = {
            'ENTRY_NOT_FOUND': 'Entry not found on server.',
            'ENTRY_FINALIZED': 'Entry is already finalized; it no longer accepts data.',
            'OFFSET_MISMATCH': f'Upload offset out of sync with server: {detail}',
            'MISSING_BODY': 'Request body was missing.',
            'INCOMPLETE_BODY': 'Request body was truncated in transit.',
            'INVALID_RANGE': 'Invalid byte range.',
            'RANGE_NOT_SATISFIABLE': 'Requested byte range cannot be served.',
            'BAD_REQUEST': f'Bad request: {detail}',
        }

        if code in error_messages:
            return error_messages[code], code

        status_messages = {
            400: 'Bad request',
            404: 'Not found',
            409: 'Conflict',
            416: 'Range not satisfiable',
            500: 'Server error',
            503: 'Service unavailable',
        }

        message = status_messages.get(response.status_code, detail)
        return (f"{message} (Code: {code})" if code != 'UNKNOWN' else message), code

    def _check(self, response: httpx.Response) -> httpx.Response:
        if response.status_code >= 400:
            message, code = self._format_error(response)
            raise ServerError(message, status_code=response.status_code, code=code)
        return response

    def create_entry(self, name: str, content_type: Optional[str] = None) -> dict:
        """
        Create an empty entry.

        Returns:
            Entry projection

        Raises:
            ServerError: If the server rejects the request
            ConnectionError: If the server cannot be reached
        """
        payload = {'name': name}
        if content_type:
            payload['contentType'] = content_type
        response = self._check(self._request_with_retry('POST', API_PREFIX, json=payload))
        entry = response.json()
        logger.info(f"Created entry [entry_id={entry['id']}] [name={name}]")
        return entry

    def get_entry(self, entry_id: str) -> dict:
        """Fetch an entry projection."""
        response = self._check(self._request_with_retry('GET', f"{API_PREFIX}/{entry_id}/json"))
        return response.json()

    def get_entries(self) -> list[dict]:
        """Fetch all entry projections."""
        response = self._check(self._request_with_retry('GET', API_PREFIX))
        return response.json()

    def append_chunk(self, entry_id: str, offset: int, data: bytes, finalize: bool = False) -> dict:
        """
        Send one chunk starting at offset.

        Returns:
            Updated entry projection

        Raises:
            ServerError: On offset conflict, finalized entry or other rejection
        """
        params = {'offset': str(offset)}
        if finalize:
            params['finalize'] = '1'
        response = self._request_with_retry(
            'POST',
            f"{API_PREFIX}/{entry_id}/upload",
            params=params,
            content=data,
            headers={'Content-Type': 'application/octet-stream'},
        )
        return self._check(response).json()

    def upload_from(self, entry_id: str, file_path: str, offset: int) -> dict:
        """
        Upload file_path into an entry starting at offset, finalizing at the end.

        The last request carries the finalize flag; an empty file is finalized
        with a zero-length chunk. When the server reports an offset conflict
        the committed size is re-read and the upload continues from there.

        Returns:
            Final entry projection

        Raises:
            ServerError: If the server rejects the upload
            ValueError: If the remote entry is larger than the local file
        """
        file_size = os.path.getsize(file_path)
        chunk_size = self.config.get_chunk_size()
        label = f"Uploading {os.path.basename(file_path)}"
        resyncs = 0
        entry = None

        with open(file_path, 'rb') as f:
            while True:
                if offset > file_size:
                    raise ValueError(
                        f"Entry {entry_id} already holds {offset} bytes but {file_path} has {file_size}"
                    )
                f.seek(offset)
                data = f.read(chunk_size)
                finalize = offset + len(data) >= file_size

                try:
                    entry = self.append_chunk(entry_id, offset, data, finalize=finalize)
                except ServerError as e:
                    if e.code == 'ENTRY_FINALIZED' and finalize:
                        entry = self.get_entry(entry_id)
                        if entry['finalized'] and entry['size'] == file_size:
                            logger.info(f"Final chunk was already committed [entry_id={entry_id}]")
                            break
                        raise
                    if e.code != 'OFFSET_MISMATCH' or resyncs >= MAX_OFFSET_RESYNCS:
                        raise
                    resyncs += 1
                    entry = self.get_entry(entry_id)
                    logger.warning(
                        f"Offset {offset} rejected, resuming at committed size {entry['size']} [entry_id={entry_id}]"
                    )
                    if entry['finalized']:
                        break
                    offset = entry['size']
                    continue

                offset = entry['size']
                if self.show_progress:
                    display_progress(label, offset, file_size)
                if entry['finalized']:
                    break

        if self.show_progress:
            finish_progress()
        return entry

    def upload(self, file_path: str, name: Optional[str] = None, content_type: Optional[str] = None) -> str:
        """
        Upload a local file as a new entry.

        Args:
            file_path: Local file path
            name: Display name (defaults to the file's base name)
            content_type: Declared media type

        Returns:
            Formatted result message
        """
        path = Path(file_path).expanduser()
        if not path.is_file():
            return f"Error: File not found: {file_path}"

        try:
            entry = self.create_entry(name or path.name, content_type)
            entry = self.upload_from(entry['id'], str(path), 0)
        except ServerError as e:
            return f"Upload failed: {e}"
        except ConnectionError as e:
            logger.error(f"Connection error during upload: {e}")
            return f"Error: {e}\nResume later with: resume <entry-id> {file_path}"
        except Exception as e:
            logger.error(f"Unexpected error during upload: {e}", exc_info=True)
            return f"Unexpected error during upload: {e}"

        return self._describe_upload(entry, str(path))

    def resume(self, entry_id: str, file_path: str) -> str:
        """
        Continue uploading file_path into an existing entry.

        Returns:
            Formatted result message
        """
        path = Path(file_path).expanduser()
        if not path.is_file():
            return f"Error: File not found: {file_path}"

        try:
            entry = self.get_entry(entry_id)
            if entry['finalized']:
                return f"Entry {entry_id} is already finalized.\n{format_entry(entry)}"
            logger.info(f"Resuming upload at offset {entry['size']} [entry_id={entry_id}]")
            entry = self.upload_from(entry_id, str(path), entry['size'])
        except (ServerError, ValueError) as e:
            return f"Resume failed: {e}"
        except ConnectionError as e:
            logger.error(f"Connection error during resume: {e}")
            return f"Error: {e}"
        except Exception as e:
            logger.error(f"Unexpected error during resume: {e}", exc_info=True)
            return f"Unexpected error during resume: {e}"

        return self._describe_upload(entry, str(path))

    def _describe_upload(self, entry: dict, file_path: str) -> str:
        local_digest = sha256_of_file(file_path)
        if local_digest != entry['sha256']:
            logger.error(
                f"Digest mismatch [entry_id={entry['id']}] local={local_digest} remote={entry['sha256']}"
            )
            return (
                f"Warning: uploaded content does not match the local file "
                f"(local {local_digest}, server {entry['sha256']})\n{format_entry(entry)}"
            )
        return f"Uploaded: {entry['name']} (ID: {entry['id']}, Size: {format_file_size(entry['size'])})\n" \
               f"  SHA-256 verified: {entry['sha256']}"

    def list_entries(self) -> str:
        """
        List all entries.

        Returns:
            Formatted table of entries
        """
        try:
            entries = self.get_entries()
        except ServerError as e:
            return f"List failed: {e}"
        except ConnectionError as e:
            return f"Error: {e}"

        if not entries:
            return "No entries found."

        lines = [f"Found {len(entries)} entr{'y' if len(entries) == 1 else 'ies'}:"]
        for entry in entries:
            state = "final" if entry.get('finalized') else "open"
            lines.append(
                f"  {entry['id']}  {state:5}  {format_file_size(entry['size']):>12}  {entry['name']}"
            )
        return "\n".join(lines)

    def info(self, entry_id: str) -> str:
        """
        Describe a single entry.

        Returns:
            Formatted entry metadata
        """
        try:
            return format_entry(self.get_entry(entry_id))
        except ServerError as e:
            return f"Info failed: {e}"
        except ConnectionError as e:
            return f"Error: {e}"

    def download(
        self,
        entry_id: str,
        output_path: str,
        byte_range: Optional[tuple[Optional[int], Optional[int]]] = None,
    ) -> str:
        """
        Download an entry, or a single byte range of it, to a local file.

        The server may serve less than a requested range; the response
        Content-Range tells which span was written.

        Returns:
            Formatted result message
        """
        headers = {'X-Request-ID': str(uuid.uuid4())}
        if byte_range is not None:
            start, end = byte_range
            headers['Range'] = f"bytes={'' if start is None else start}-{'' if end is None else end}"

        output_file = Path(output_path).expanduser()
        if output_file.is_dir():
            output_file = output_file / entry_id

        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with self.session.stream('GET', f"{API_PREFIX}/{entry_id}", headers=headers) as response:
                if response.status_code >= 400:
                    response.read()
                    message, _ = self._format_error(response)
                    return f"Download failed: {message}"

                total = int(response.headers.get('content-length', 0))
                written = 0
                with open(output_file, 'wb') as f:
                    for piece in response.iter_bytes():
                        f.write(piece)
                        written += len(piece)
                        if self.show_progress:
                            display_progress(f"Downloading {entry_id}", written, total)
                if self.show_progress:
                    finish_progress()

                content_range = response.headers.get('content-range')
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.error(f"Network error during download [entry_id={entry_id}]: {e}")
            return "Error: Cannot reach file server."
        except OSError as e:
            return f"Error: Cannot write {output_file}: {e}"

        logger.info(f"Downloaded {written} bytes [entry_id={entry_id}] to {output_file}")
        if content_range:
            return f"Downloaded {content_range} ({format_file_size(written)}) to {output_file}"
        return f"Downloaded {format_file_size(written)} to {output_file}"
