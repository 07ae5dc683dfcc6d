"""Streaming transfer of state blobs between pre-signed URLs.

State files are never written to disk: the download response body is
passed straight into the upload request.  Pre-signed URLs carry their own
credentials, so these requests are sent without the Spacelift token.
"""

from __future__ import annotations

import logging
from typing import Iterator

import requests

from spacebridge.constants import (
    HTTP_OK_MAX,
    HTTP_OK_MIN,
    STREAM_CHUNK_SIZE,
    STREAM_CONNECT_TIMEOUT_SECONDS,
)
from spacebridge.exceptions import APIError
from spacebridge.utils.logging import log_with_context

# Only the connection attempt is bounded; large states may take a while
STREAM_TIMEOUT = (STREAM_CONNECT_TIMEOUT_SECONDS, None)


class StateStream:
    """File-like view over a streaming download.

    Exposes ``read`` and iteration for requests to consume.  Without a
    length, requests sends the upload with chunked encoding.
    """

    def __init__(self, response: requests.Response, length: int | None) -> None:
        self._response = response
        self._chunks = response.iter_content(chunk_size=STREAM_CHUNK_SIZE)
        self._buffer = b""
        self.length = length
        self.bytes_read = 0

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(STREAM_CHUNK_SIZE)
            if not chunk:
                return
            yield chunk

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            data = self._buffer + b"".join(self._chunks)
            self._buffer = b""
        else:
            while len(self._buffer) < size:
                chunk = next(self._chunks, None)
                if chunk is None:
                    break
                self._buffer += chunk
            data, self._buffer = self._buffer[:size], self._buffer[size:]
        self.bytes_read += len(data)
        return data

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> StateStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class SizedStateStream(StateStream):
    """A :class:`StateStream` whose total size is known.

    ``__len__`` lets requests send a ``Content-Length`` header, which
    pre-signed object storage URLs generally require.
    """

    length: int

    def __len__(self) -> int:
        # requests asks for the remaining length
        return self.length - self.bytes_read


def _is_success(status_code: int) -> bool:
    return HTTP_OK_MIN <= status_code <= HTTP_OK_MAX


def stream_download(
    url: str, session: requests.Session | None = None
) -> tuple[StateStream, int | None]:
    """Open a streaming download of a state blob.

    Args:
        url: Pre-signed download URL.
        session: Optional session to send the request with.

    Returns:
        ``(stream, length)``; ``length`` is None when the server sends no
        ``Content-Length``.  The caller must close the stream.

    Raises:
        APIError: On connection failure or a non-2xx status.
    """
    http = session or requests
    try:
        response = http.get(
            url,
            stream=True,
            headers={"Accept-Encoding": "identity"},
            timeout=STREAM_TIMEOUT,
        )
    except requests.exceptions.RequestException as e:
        raise APIError(f"failed to download state: {e}") from e

    if not _is_success(response.status_code):
        response.close()
        raise APIError(
            f"download returned status {response.status_code}",
            status_code=response.status_code,
        )

    header = response.headers.get("Content-Length")
    length = int(header) if header and header.isdigit() else None
    if length is None:
        return StateStream(response, None), None
    return SizedStateStream(response, length), length


def stream_upload(
    url: str,
    body: StateStream,
    length: int | None,
    session: requests.Session | None = None,
) -> None:
    """Upload a state blob to a pre-signed URL.

    Args:
        url: Pre-signed upload URL.
        body: Stream returned by :func:`stream_download`.
        length: Content length from the download, if known.
        session: Optional session to send the request with.

    Raises:
        APIError: On connection failure or a non-2xx status; the message
            includes the response body.
    """
    headers = {"Content-Type": "application/json"}
    if length is not None:
        headers["Content-Length"] = str(length)

    http = session or requests
    try:
        response = http.put(url, data=body, headers=headers, timeout=STREAM_TIMEOUT)
    except requests.exceptions.RequestException as e:
        raise APIError(f"failed to upload state: {e}") from e

    if not _is_success(response.status_code):
        raise APIError(
            f"upload returned status {response.status_code}: {response.text}",
            status_code=response.status_code,
        )


def stream_state(
    download_url: str, upload_url: str, session: requests.Session | None = None
) -> int:
    """Copy a state blob from one pre-signed URL to another.

    Returns:
        Number of bytes transferred.

    Raises:
        APIError: If either side fails.
    """
    stream, length = stream_download(download_url, session)
    with stream:
        log_with_context(
            logging.DEBUG,
            f"Streaming state ({length if length is not None else 'unknown'} bytes)",
        )
        stream_upload(upload_url, stream, length, session)
        return stream.bytes_read
