"""Unit tests for the ACH operator client retry behaviour"""

import httpx
import pytest
from unittest.mock import AsyncMock, patch
from ach_engine.domain.exceptions import TransmissionError
from ach_engine.domain.models import NachaFile
from ach_engine.infrastructure.clients.transmission import ACHOperatorClient

URL = "http://operator.test/ach/files"


@pytest.fixture
def nacha_file() -> NachaFile:
    return NachaFile(
        file_name="ACH_1_20260303.txt",
        lines=("1" * 94,),
        entry_count=1,
        entry_hash=2100002,
        total_debit_cents=0,
        total_credit_cents=250000,
        block_count=1,
    )


def _response(status_code: int, json=None) -> httpx.Response:
    return httpx.Response(status_code, json=json, request=httpx.Request("POST", URL))


def _client() -> ACHOperatorClient:
    return ACHOperatorClient(base_url="http://operator.test", max_retries=3, backoff_base=0)


async def test_transmit_success(nacha_file):
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.return_value = _response(200, {"status": "accepted"})

        ack = await _client().transmit("co-1", "b-1", nacha_file)

    assert ack == {"status": "accepted"}
    args, kwargs = mock_post.call_args
    assert args[0] == URL
    assert kwargs["json"]["file_name"] == "ACH_1_20260303.txt"
    assert kwargs["json"]["content"] == nacha_file.content


async def test_transmit_retries_server_errors(nacha_file):
    """5xx responses are retried until one succeeds"""
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.side_effect = [_response(503), _response(502), _response(200, {"id": "f-1"})]

        ack = await _client().transmit("co-1", "b-1", nacha_file)

    assert ack == {"id": "f-1"}
    assert mock_post.await_count == 3


async def test_transmit_gives_up_after_max_retries(nacha_file):
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.side_effect = httpx.ConnectError("refused")

        with pytest.raises(TransmissionError, match="after 3 attempts"):
            await _client().transmit("co-1", "b-1", nacha_file)

    assert mock_post.await_count == 3


async def test_transmit_does_not_retry_rejections(nacha_file):
    """4xx means the operator rejected the file"""
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.return_value = _response(422, {"error": "bad file"})

        with pytest.raises(TransmissionError, match="rejected"):
            await _client().transmit("co-1", "b-1", nacha_file)

    assert mock_post.await_count == 1


async def test_retries_reuse_idempotency_key(nacha_file):
    """A timed-out upload may already be accepted; the retry must be recognisable as the same file"""
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.side_effect = [httpx.ReadTimeout("timed out"), _response(200, {"id": "f-1"})]

        await _client().transmit("co-1", "b-1", nacha_file)

    keys = [c.kwargs["headers"]["Idempotency-Key"] for c in mock_post.call_args_list]
    assert keys == ["b-1", "b-1"]


def test_explicit_zero_settings_are_kept():
    client = ACHOperatorClient(base_url="http://operator.test", timeout=0, max_retries=0, backoff_base=0)

    assert (client.timeout, client.max_retries, client.backoff_base) == (0, 0, 0)


async def test_zero_retries_still_makes_one_attempt(nacha_file):
    client = ACHOperatorClient(base_url="http://operator.test", max_retries=0, backoff_base=0)
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.side_effect = httpx.ConnectError("refused")

        with pytest.raises(TransmissionError, match="after 1 attempts"):
            await client.transmit("co-1", "b-1", nacha_file)

    assert mock_post.await_count == 1
