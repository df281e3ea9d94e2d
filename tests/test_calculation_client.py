"""
Tests for the calculation service client.
"""

import time

import httpx
import pytest

from jyotish_agent.deadline import Deadline
from jyotish_agent.errors import CalculationError

from tests.fakes import DASHA, FakeCalculationService, make_calculation_client


@pytest.mark.asyncio
async def test_warming_up_is_retried_once(user):
    service = FakeCalculationService(statuses={"/calculate/dasha": [503]})
    client = make_calculation_client(service)

    data = await client.dasha(user)

    assert data == DASHA
    assert service.paths() == ["/calculate/dasha", "/calculate/dasha"]


@pytest.mark.asyncio
async def test_second_warming_up_is_an_error(user):
    service = FakeCalculationService(statuses={"/calculate/dasha": [503, 503, 503]})
    client = make_calculation_client(service)

    with pytest.raises(CalculationError) as exc_info:
        await client.dasha(user)

    assert exc_info.value.status_code == 503
    assert "starting up" in exc_info.value.message
    assert len(service.requests) == 2


@pytest.mark.asyncio
async def test_warming_up_retry_is_skipped_when_the_deadline_is_near(user):
    service = FakeCalculationService(statuses={"/calculate/dasha": [503]})
    client = make_calculation_client(service)
    client.warmup_retry_delay_seconds = 5.0

    started = time.monotonic()
    with pytest.raises(CalculationError) as exc_info:
        await client.dasha(user, deadline=Deadline.after(1.0))

    assert time.monotonic() - started < 1.0
    assert exc_info.value.status_code == 503
    assert service.paths() == ["/calculate/dasha"]


@pytest.mark.asyncio
@pytest.mark.parametrize("status,expected", [
    (404, "Endpoint /calculate/varga not found on calculation service."),
    (500, "Calculation service error (status 500)."),
    (422, "Calculation service rejected the request (status 422)."),
])
async def test_error_statuses_are_described(user, status, expected):
    service = FakeCalculationService(statuses={"/calculate/varga": [status]})
    client = make_calculation_client(service)

    with pytest.raises(CalculationError) as exc_info:
        await client.varga(user, 9)

    assert str(exc_info.value) == expected
    assert exc_info.value.status_code == status
    assert len(service.requests) == 1


@pytest.mark.asyncio
async def test_timeout_is_reported(user):
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    client = make_calculation_client(handler)

    with pytest.raises(CalculationError, match="timed out after 1.5s"):
        await client.birth_chart(user, timeout=1.5)


@pytest.mark.asyncio
async def test_connection_failure_is_reported(user):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_calculation_client(handler)

    with pytest.raises(CalculationError, match="Cannot connect"):
        await client.birth_chart(user)


@pytest.mark.asyncio
async def test_invalid_json_is_reported(user):
    client = make_calculation_client(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(CalculationError, match="invalid response"):
        await client.birth_chart(user)


@pytest.mark.asyncio
async def test_undecodable_error_body_is_still_reported(user):
    body = b"\xff\xfe" * 50_000
    client = make_calculation_client(lambda request: httpx.Response(502, content=body))

    with pytest.raises(CalculationError, match="status 502"):
        await client.birth_chart(user)


@pytest.mark.asyncio
async def test_payloads_carry_birth_data_and_parameters(user, service, calculation_client):
    await calculation_client.dasha(user)
    await calculation_client.transits(user, current_date="2025-01-31")
    await calculation_client.varshaphala(user, 35)

    (_, dasha), (_, transits), (_, varshaphala) = service.requests
    birth = {"date": "1990-08-15", "time": "10:30", "lat": 28.6139, "lon": 77.209}

    assert dasha == {**birth, "timezone": "Asia/Kolkata"}
    assert transits == {**birth, "current_date": "2025-01-31", "years": 1.0, "include_moon": True}
    assert varshaphala == {**birth, "age": 35}
