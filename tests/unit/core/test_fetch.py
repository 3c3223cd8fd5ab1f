"""
Tests for fetch_with_log: status normalization and abort/fail logging.
"""

import asyncio
import json
import logging

import httpx
import pytest

from src.fetch_core.core.config import DEFAULT_USER_AGENT, FetchClientConfig, ResolverConfig
from src.fetch_core.core.exceptions import ErrorKind, FetchError, TooManyRedirectsError, TransportError
from src.fetch_core.core.fetch import DEFAULT_REQUEST_OPTIONS, RequestOptions, fetch_with_log
from src.fetch_core.core.http_client import HttpClient
from src.fetch_core.core.logging.filters import get_request_id, reset_request_id, set_request_id

FETCH_LOGGER = 'src.fetch_core.core.fetch'


class TestRequestOptions:
    """RequestOptions defaults."""

    def test_default_user_agent(self):
        assert DEFAULT_REQUEST_OPTIONS.headers == {'User-Agent': DEFAULT_USER_AGENT}
        assert DEFAULT_REQUEST_OPTIONS.method == 'GET'
        assert DEFAULT_REQUEST_OPTIONS.retry_options is None

    def test_options_are_frozen(self):
        with pytest.raises(AttributeError):
            DEFAULT_REQUEST_OPTIONS.method = 'POST'

    def test_headers_are_frozen(self):
        with pytest.raises(TypeError):
            DEFAULT_REQUEST_OPTIONS.headers["User-Agent"] = "other"
        assert DEFAULT_REQUEST_OPTIONS.headers["User-Agent"] == DEFAULT_USER_AGENT

    def test_custom_headers_frozen(self):
        options = RequestOptions(headers={"Accept": "text/plain"})
        with pytest.raises(TypeError):
            options.headers["Accept"] = "application/json"


class TestFetchWithLog:
    """Façade behaviour."""

    @pytest.mark.asyncio
    async def test_success(self, make_client):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="DOMAIN-SUFFIX,example.com")

        client = make_client(handler)
        response = await fetch_with_log(client, 'https://ruleset.example.com/cdn.conf')

        assert response.text == "DOMAIN-SUFFIX,example.com"
        assert seen[0].headers['User-Agent'] == DEFAULT_USER_AGENT

    @pytest.mark.asyncio
    async def test_304_is_success(self, make_client):
        client = make_client(lambda request: httpx.Response(304))

        response = await fetch_with_log(client, 'https://ruleset.example.com/cdn.conf')

        assert response.status_code == 304

    @pytest.mark.asyncio
    async def test_404_raises_fetch_error(self, make_client, caplog):
        client = make_client(lambda request: httpx.Response(404))

        with caplog.at_level(logging.WARNING, logger=FETCH_LOGGER):
            with pytest.raises(FetchError) as exc_info:
                await fetch_with_log(client, 'https://ruleset.example.com/missing.conf')

        error = exc_info.value
        assert error.code == 404
        assert error.status_code == 404
        assert error.url == 'https://ruleset.example.com/missing.conf'
        assert error.message == 'Not Found'
        assert '[fetch fail]' in caplog.text
        assert '[fetch abort]' not in caplog.text

    @pytest.mark.asyncio
    async def test_fetch_error_url_is_effective_url(self, make_client):
        def handler(request):
            if request.url.path == '/old.conf':
                return httpx.Response(301, headers={'Location': '/new.conf'})
            return httpx.Response(410)

        client = make_client(handler)

        with pytest.raises(FetchError) as exc_info:
            await fetch_with_log(client, 'https://ruleset.example.com/old.conf')

        assert exc_info.value.url == 'https://ruleset.example.com/new.conf'

    @pytest.mark.asyncio
    async def test_unfollowed_redirect_raises_fetch_error(self, make_client):
        """3xx без Location - не ok и не 304."""
        client = make_client(lambda request: httpx.Response(302))

        with pytest.raises(FetchError) as exc_info:
            await fetch_with_log(client, 'https://ruleset.example.com/')

        assert exc_info.value.status_code == 302

    @pytest.mark.asyncio
    async def test_transport_error_reraised_unchanged(self, make_client, caplog):
        def handler(request):
            raise httpx.ReadTimeout("timed out")

        client = make_client(handler)

        with caplog.at_level(logging.WARNING, logger=FETCH_LOGGER):
            with pytest.raises(TransportError) as exc_info:
                await fetch_with_log(client, 'https://ruleset.example.com/slow.conf')

        assert exc_info.value.kind is ErrorKind.TIMEOUT
        record = next(r for r in caplog.records if r.getMessage().startswith('[fetch fail]'))
        assert record.error_type == 'TransportError'

    @pytest.mark.asyncio
    async def test_retry_then_success_logs_nothing(self, make_client, caplog, sleep_recorder):
        statuses = iter([500, 200])
        client = make_client(lambda request: httpx.Response(next(statuses)))

        with caplog.at_level(logging.WARNING, logger=FETCH_LOGGER):
            response = await fetch_with_log(client, 'https://ruleset.example.com/cdn.conf')

        assert response.status_code == 200
        assert not [r for r in caplog.records if r.name == FETCH_LOGGER]

    @pytest.mark.asyncio
    async def test_too_many_redirects(self, make_client):
        client = make_client(lambda request: httpx.Response(302, headers={'Location': '/loop'}))

        with pytest.raises(TooManyRedirectsError):
            await fetch_with_log(client, 'https://ruleset.example.com/loop')

    @pytest.mark.asyncio
    async def test_invalid_url_is_escaping(self, make_client):
        client = make_client(lambda request: httpx.Response(200))

        with pytest.raises(TransportError) as exc_info:
            await fetch_with_log(client, 'https://ruleset.example.com/list\x00.conf')

        assert exc_info.value.kind is ErrorKind.ESCAPING

    @pytest.mark.asyncio
    async def test_cancellation_logged_as_abort(self, make_client, caplog, sleep_recorder):
        """Отмена не ретраится и логируется как abort."""
        started = asyncio.Event()
        calls = []

        async def handler(request):
            calls.append(request)
            started.set()
            await asyncio.Event().wait()

        client = make_client(handler)

        with caplog.at_level(logging.WARNING, logger=FETCH_LOGGER):
            task = asyncio.ensure_future(
                fetch_with_log(client, 'https://ruleset.example.com/big.conf')
            )
            await started.wait()
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task

        assert len(calls) == 1
        assert sleep_recorder.delays == []
        assert '[fetch abort]' in caplog.text
        assert '[fetch fail]' not in caplog.text

    @pytest.mark.asyncio
    async def test_per_request_retry_override(self, make_client, sleep_recorder):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        client = make_client(handler)
        options = RequestOptions(retry_options={'max_retries': 1, 'min_timeout': 0.1})

        with pytest.raises(TransportError):
            await fetch_with_log(client, 'https://ruleset.example.com/cdn.conf', options)

        assert len(calls) == 2
        assert sleep_recorder.delays == [0.1]

    @pytest.mark.asyncio
    async def test_sensitive_query_masked_in_log(self, make_client, caplog):
        client = make_client(lambda request: httpx.Response(403))

        with caplog.at_level(logging.WARNING, logger=FETCH_LOGGER):
            with pytest.raises(FetchError):
                await fetch_with_log(client, 'https://ruleset.example.com/private.conf?token=abc123')

        assert 'abc123' not in caplog.text

    @pytest.mark.asyncio
    async def test_client_method_shortcut(self, make_client):
        client = make_client(lambda request: httpx.Response(200, text="ok"))

        response = await client.fetch_with_log('https://ruleset.example.com/cdn.conf')

        assert response.text == "ok"
    @pytest.mark.asyncio
    async def test_structured_logger_used_when_configured(self, logging_config_with_file, sleep_recorder):
        config = FetchClientConfig(
            resolver=ResolverConfig(enabled=False),
            trust_env=False,
            logging=logging_config_with_file,
        )
        client = HttpClient(
            config,
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
            sleep=sleep_recorder,
        )

        with pytest.raises(TransportError):
            await fetch_with_log(
                client,
                'https://ruleset.example.com/cdn.conf',
                RequestOptions(retry_options={'max_retries': 0}),
            )
        await client.aclose()

        with open(logging_config_with_file.file_path, encoding='utf-8') as f:
            record = json.loads(f.readline())
        assert record['message'] == '[fetch fail]'
        assert record['error_type'] == 'TransportError'
        assert len(record['request_id']) == 8


class TestRequestId:
    """Каждый логический запрос получает свой request_id."""

    @pytest.mark.asyncio
    async def test_fail_record_has_request_id(self, make_client, caplog):
        client = make_client(lambda request: httpx.Response(404))

        with caplog.at_level(logging.WARNING, logger=FETCH_LOGGER):
            for _ in range(2):
                with pytest.raises(FetchError):
                    await fetch_with_log(client, 'https://ruleset.example.com/missing.conf')

        ids = [r.request_id for r in caplog.records if r.name == FETCH_LOGGER]
        assert len(ids) == 2
        assert all(ids)
        assert ids[0] != ids[1]
        assert get_request_id() is None

    @pytest.mark.asyncio
    async def test_caller_request_id_kept(self, make_client, caplog):
        client = make_client(lambda request: httpx.Response(500))
        token = set_request_id('build-42')
        try:
            with caplog.at_level(logging.WARNING, logger=FETCH_LOGGER):
                with pytest.raises(TransportError):
                    await fetch_with_log(
                        client,
                        'https://ruleset.example.com/cdn.conf',
                        RequestOptions(retry_options={'max_retries': 0}),
                    )
            assert get_request_id() == 'build-42'
        finally:
            reset_request_id(token)

        record = next(r for r in caplog.records if r.name == FETCH_LOGGER)
        assert record.request_id == 'build-42'
