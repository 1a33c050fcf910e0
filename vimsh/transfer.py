"""HTTP transfers against the one-time URLs issued for guest file access."""

from __future__ import annotations

import re
from pathlib import Path

import requests
from loguru import logger

from .errors import TransferError

log = logger

_WILDCARD_HOST = re.compile(r'^(https?://)\*(?=[:/])')

DEFAULT_TIMEOUT = 300


def rewrite_url(url: str, host: str) -> str:
    """
    Replace the ``*`` host placeholder the server uses in transfer URLs.

    Example:
        >>> rewrite_url('https://*:443/guestFile?id=1', 'vc.example.com')
        'https://vc.example.com:443/guestFile?id=1'
        >>> rewrite_url('https://esx1:443/guestFile?id=1', 'vc.example.com')
        'https://esx1:443/guestFile?id=1'
    """
    return _WILDCARD_HOST.sub(lambda m: m.group(1) + host, url, count=1)


def upload(connection, url: str, local_path: str | Path, *, timeout: float = DEFAULT_TIMEOUT) -> None:
    url = rewrite_url(url, connection.host)
    local_path = Path(local_path)
    log.debug('PUT {} -> {}', local_path, url)
    with local_path.open('rb') as file:
        try:
            resp = requests.put(url, data=file, verify=connection.verify_ssl, timeout=timeout)
        except requests.RequestException as ex:
            raise TransferError(f'Upload of {local_path} failed: {ex}') from ex
    if resp.status_code != 200:
        raise TransferError(
            f'Upload of {local_path} failed: {resp.status_code} {resp.reason}'
        )


def download(connection, url: str, local_path: str | Path, *, timeout: float = DEFAULT_TIMEOUT) -> int:
    """Stream ``url`` to ``local_path``; returns the number of bytes written."""
    url = rewrite_url(url, connection.host)
    local_path = Path(local_path)
    log.debug('GET {} -> {}', url, local_path)
    try:
        resp = requests.get(url, verify=connection.verify_ssl, stream=True, timeout=timeout)
    except requests.RequestException as ex:
        raise TransferError(f'Download to {local_path} failed: {ex}') from ex
    with resp:
        if resp.status_code != 200:
            raise TransferError(
                f'Download to {local_path} failed: {resp.status_code} {resp.reason}'
            )
        total = 0
        with local_path.open('wb') as file:
            for chunk in resp.iter_content(chunk_size=1 << 16):
                file.write(chunk)
                total += len(chunk)
    return total
