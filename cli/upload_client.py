"""HTTP client for communicating with the upload server."""

import time
import uuid
from typing import Callable, Optional
import httpx

from common.exceptions import (
    ERRORS_BY_CODE,
    IncompleteUploadError,
    TransientError,
    UploadError,
    ValidationError,
)
from common.logging_config import get_logger
from common.types import FinalArtifact, SessionDescriptor, UploadStatus
from cli.config import Config

logger = get_logger(__name__)


class UploadApiClient:
    """
    HTTP transport for the upload protocol with retry logic and error mapping.

    Server error codes are raised as the matching UploadError subclass;
    network failures and uncoded 5xx responses are raised as TransientError.
    """

    def __init__(self, config: Config, sleep: Callable[[float], None] = time.sleep):
        """
        Initialize upload client.

        Args:
            config: Configuration instance
            sleep: Sleep function used between transport retries
        """
        self.config = config
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        self.sleep = sleep
        self.request_id = None
        logger.info(f"Initialized UploadApiClient [base_url={config.get_base_url()}]")

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on uncoded 5xx errors and transport failures.

        Args:
            method: HTTP method (GET, POST, DELETE, etc.)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            TransientError: If max retries exceeded or the transport fails
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        self.request_id = str(uuid.uuid4())
        headers = dict(kwargs.pop('headers', None) or {})
        headers['X-Request-ID'] = self.request_id
        headers.update(self._get_auth_header())
        kwargs['headers'] = headers

        logger.debug(
            f"Making request: {method} {endpoint} [request_id={self.request_id}]"
        )

        last_exception = None

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if 400 <= response.status_code < 500:
                    logger.warning(
                        f"Client error: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                    )
                    return response

                if self._is_retryable_response(response) and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    self.sleep(delay)
                    continue

                return response

            except httpx.TransportError as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    self.sleep(delay)
                    continue
                logger.error(
                    f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                )

        if isinstance(last_exception, httpx.TimeoutException):
            raise TransientError("Request timed out. Server may be overloaded.") from last_exception
        if isinstance(last_exception, httpx.ConnectError):
            raise TransientError("Cannot connect to upload server. Is it running?") from last_exception
        raise TransientError(
            f"Connection to upload server failed: {type(last_exception).__name__}: {last_exception}"
        ) from last_exception

    @staticmethod
    def _error_payload(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _read_json(response: httpx.Response, *required: str) -> dict:
        """
        Decode a successful JSON response body.

        Args:
            response: 2xx HTTP response
            *required: Keys the body must contain

        Returns:
            Decoded JSON object

        Raises:
            TransientError: If the body is not a JSON object or lacks a required key
        """
        try:
            data = response.json()
        except ValueError as e:
            raise TransientError(
                f"Malformed response from upload server (status {response.status_code})"
            ) from e
        if not isinstance(data, dict):
            raise TransientError("Malformed response from upload server: expected a JSON object")
        missing = [key for key in required if key not in data]
        if missing:
            raise TransientError(f"Malformed response from upload server: missing {', '.join(missing)}")
        return data

    def _is_retryable_response(self, response: httpx.Response) -> bool:
        if response.status_code < 500:
            return False
        return self._error_payload(response).get('code') not in ERRORS_BY_CODE

    def _raise_for_error(self, response: httpx.Response) -> None:
        """
        Map an error response to the matching UploadError.

        Args:
            response: HTTP response object

        Raises:
            UploadError subclass matching the server error code
        """
        if response.status_code < 400:
            return

        payload = self._error_payload(response)
        code = payload.get('code')
        detail = payload.get('detail') or response.text or 'Unknown error'
        if not isinstance(detail, str):
            detail = str(detail)

        error_class = ERRORS_BY_CODE.get(code)
        if error_class is IncompleteUploadError:
            raise IncompleteUploadError(detail, missing_chunks=payload.get('missing_chunks'))
        if error_class is not None:
            raise error_class(detail)

        if response.status_code >= 500:
            raise TransientError(f"Server error {response.status_code}: {detail}")
        if response.status_code == 401:
            raise UploadError(f"Not authenticated: {detail}")
        if response.status_code == 422:
            raise ValidationError(detail)
        raise UploadError(f"Request failed with status {response.status_code}: {detail}")

    def _get_auth_header(self) -> dict:
        """
        Get Authorization header with API key, if one is configured.

        Returns:
            Dictionary with Authorization header (empty without a key)
        """
        api_key = self.config.get_api_key()
        if not api_key:
            return {}
        return {'Authorization': f'Bearer {api_key}'}

    def init_upload(
        self,
        filename: str,
        size: int,
        temp_identifier: str,
        mime_type: Optional[str] = None,
    ) -> SessionDescriptor:
        """
        Start an upload session.

        Returns:
            SessionDescriptor (total_chunks is 0 if the server omitted it)
        """
        body = {'filename': filename, 'size': size, 'temp_identifier': temp_identifier}
        if mime_type:
            body['mime_type'] = mime_type

        response = self._request_with_retry('POST', '/attachments/upload-init', json=body)
        self._raise_for_error(response)

        data = self._read_json(response, 'upload_id', 'chunk_size')
        logger.info(f"Upload session created [upload_id={data['upload_id']}] for {filename}")
        return SessionDescriptor(
            upload_id=data['upload_id'],
            chunk_size=data['chunk_size'],
            total_chunks=data.get('total_chunks') or 0,
            max_bytes=data.get('max_bytes') or 0,
        )

    def get_status(self, upload_id: str) -> UploadStatus:
        """
        Query the chunk indices the server holds.
        """
        response = self._request_with_retry(
            'GET',
            '/attachments/upload-status',
            params={'upload_id': upload_id}
        )
        self._raise_for_error(response)

        data = self._read_json(response)
        return UploadStatus(
            upload_id=data.get('upload_id', upload_id),
            uploaded_chunks=sorted(data.get('uploaded_chunks') or []),
            total_chunks=data.get('total_chunks') or 0,
            chunk_size=data.get('chunk_size') or 0,
        )

    def upload_chunk(
        self,
        upload_id: str,
        index: int,
        data: bytes,
        checksum: Optional[str] = None,
    ) -> None:
        """
        Send one chunk. Not retried here; the upload driver owns chunk retries.
        """
        headers = {'X-Chunk-Checksum': checksum} if checksum else {}
        response = self._request_with_retry(
            'POST',
            '/attachments/upload-chunk',
            max_retries=0,
            data={'upload_id': upload_id, 'chunk_index': str(index)},
            files={'chunk': ('blob', data, 'application/octet-stream')},
            headers=headers,
        )
        self._raise_for_error(response)

    def complete_upload(self, upload_id: str) -> FinalArtifact:
        """
        Ask the server to assemble the uploaded chunks.
        """
        response = self._request_with_retry(
            'POST',
            '/attachments/upload-complete',
            json={'upload_id': upload_id}
        )
        self._raise_for_error(response)

        data = self._read_json(response, 'original_filename', 'path')
        logger.info(f"Upload completed [upload_id={upload_id}] path={data.get('path')}")
        return FinalArtifact(
            original_filename=data['original_filename'],
            path=data['path'],
            url=data.get('url'),
            size=data.get('size'),
            mime_type=data.get('mime_type'),
            checksum=data.get('checksum'),
        )

    def close(self) -> None:
        """Close HTTP session."""
        self.session.close()
