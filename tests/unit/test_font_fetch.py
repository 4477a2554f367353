"""
Remote font fetcher tests against an in-process httpx transport.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from healthreport.adapters.font_fetch import FontFetchConfig, HttpFontFetcher


def _fetcher(handler, urls=None):
    cfg = FontFetchConfig(urls=urls or {'body': 'https://fonts.example.test/body.ttf'}, timeout_seconds=5)
    return HttpFontFetcher(cfg, transport=httpx.MockTransport(handler))


class TestHttpFontFetcher:
    def test_returns_body(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, content=b'font-bytes')

        assert _fetcher(handler)('body') == b'font-bytes'
        assert seen == ['https://fonts.example.test/body.ttf']

    def test_http_error_raises(self):
        fetcher = _fetcher(lambda request: httpx.Response(404))
        with pytest.raises(httpx.HTTPStatusError):
            fetcher('body')

    def test_empty_payload_raises(self):
        fetcher = _fetcher(lambda request: httpx.Response(200, content=b''))
        with pytest.raises(ValueError):
            fetcher('body')

    def test_unconfigured_family(self):
        fetcher = _fetcher(lambda request: httpx.Response(200, content=b'x'))
        with pytest.raises(LookupError):
            fetcher('cjk')

    def test_failed_download_is_retried(self):
        responses = [httpx.Response(503), httpx.Response(200, content=b'font-bytes')]
        fetcher = _fetcher(lambda request: responses.pop(0))
        with pytest.raises(httpx.HTTPStatusError):
            fetcher('body')
        assert fetcher('body') == b'font-bytes'


class TestSharedSources:
    """Families pointing at one URL share a single download."""

    URLS = {
        'cjk': 'https://fonts.example.test/sc-variable.ttf',
        'cjk-bold': 'https://fonts.example.test/sc-variable.ttf',
        'body': 'https://fonts.example.test/body.ttf',
    }

    def _counting_fetcher(self):
        seen = []
        lock = threading.Lock()

        def handler(request):
            with lock:
                seen.append(str(request.url))
            return httpx.Response(200, content=b'payload:' + request.url.path.encode())

        return _fetcher(handler, urls=self.URLS), seen

    def test_same_url_downloaded_once(self):
        fetcher, seen = self._counting_fetcher()
        assert fetcher('cjk') == fetcher('cjk-bold') == b'payload:/sc-variable.ttf'
        assert seen == ['https://fonts.example.test/sc-variable.ttf']

    def test_distinct_urls_downloaded_separately(self):
        fetcher, seen = self._counting_fetcher()
        fetcher('cjk')
        fetcher('body')
        assert sorted(seen) == ['https://fonts.example.test/body.ttf', 'https://fonts.example.test/sc-variable.ttf']

    def test_concurrent_families_share_download(self):
        fetcher, seen = self._counting_fetcher()
        with ThreadPoolExecutor(max_workers=8) as pool:
            payloads = list(pool.map(fetcher, ['cjk', 'cjk-bold'] * 8))
        assert set(payloads) == {b'payload:/sc-variable.ttf'}
        assert seen == ['https://fonts.example.test/sc-variable.ttf']
