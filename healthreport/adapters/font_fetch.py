from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

import httpx


logger = logging.getLogger(__name__)


@dataclass
class FontFetchConfig:
    urls: dict[str, str] = field(default_factory=dict)
    timeout_seconds: float = 20.0


class HttpFontFetcher:
    """Fetches raw font files over HTTPS, one URL per logical family.

    Payloads are kept per URL, so families sharing a source (a variable font
    serving both regular and bold) download it once.
    """

    def __init__(self, cfg: FontFetchConfig, *, transport: httpx.BaseTransport | None = None):
        self.cfg = cfg
        self._transport = transport
        self._payloads: dict[str, bytes] = {}
        self._url_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def __call__(self, family: str) -> bytes:
        token = str(family)
        url = self.cfg.urls.get(token)
        if not url:
            raise LookupError(f'no remote font source configured for {token}')

        with self._lock:
            url_lock = self._url_locks.setdefault(url, threading.Lock())
        with url_lock:
            cached = self._payloads.get(url)
            if cached is not None:
                logger.info('Reusing fetched PDF font source for %s (%s)', token, url)
                return cached
            content = self._download(token, url)
            self._payloads[url] = content
            return content

    def _download(self, token: str, url: str) -> bytes:
        timeout = max(1.0, float(self.cfg.timeout_seconds))
        logger.info('Fetching PDF font %s from %s', token, url)
        with httpx.Client(timeout=timeout, follow_redirects=True, transport=self._transport) as client:
            response = client.get(url)
        response.raise_for_status()

        content = response.content
        if not content:
            raise ValueError(f'empty font payload from {url}')
        return content
