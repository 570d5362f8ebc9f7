import asyncio

import httpx
import pytest

from plantcare.crop_client import CropClient, extract_history
from plantcare.errors import ExhaustedStrategies, MissingCredential

CROP_URL = "https://crop.example"
HISTORY_URL = "https://disease.example/history"


def run_client(handler, fake_sleep, coro_factory, max_retries=0):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = CropClient(
                http,
                crop_base_url=CROP_URL,
                disease_history_endpoint=HISTORY_URL,
                max_retries=max_retries,
                initial_delay_ms=10,
                sleep=fake_sleep,
            )
            return await coro_factory(client)
    return asyncio.run(go())


def test_recommend_tries_paths_in_order(fake_sleep):
    paths = []

    def handler(request):
        paths.append(request.url.path)
        if request.url.path == "/api/recommend":
            return httpx.Response(200, json={"crop": "rice"})
        return httpx.Response(404)

    payload = {"nitrogen": 90, "rainfall": 120}
    result = run_client(handler, fake_sleep, lambda c: c.recommend(payload, "tok"))

    assert result == {"crop": "rice"}
    assert paths == ["/recommend", "/predict", "/api/recommend"]


def test_recommend_sends_json_and_bearer(fake_sleep):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["authorization"]
        seen["body"] = request.content
        return httpx.Response(200, json={"crop": "maize"})

    run_client(handler, fake_sleep, lambda c: c.recommend({"ph": 6.5}, "tok"))
    assert seen["auth"] == "Bearer tok"
    assert b'"ph"' in seen["body"]


def test_recommend_exhausted(fake_sleep, delays):
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(500, text="down")

    with pytest.raises(ExhaustedStrategies, match="Status 500: down"):
        run_client(handler, fake_sleep, lambda c: c.recommend({}, "tok"), max_retries=1)
    assert len(calls) == 12
    assert len(delays) == 6


def test_recommend_requires_token(fake_sleep):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    with pytest.raises(MissingCredential):
        run_client(handler, fake_sleep, lambda c: c.recommend({}, None))
    assert calls == []


def test_histories_use_their_endpoints(fake_sleep):
    urls = []

    def handler(request):
        urls.append(str(request.url))
        return httpx.Response(200, json={"history": [{"status": "Healthy"}]})

    crop = run_client(handler, fake_sleep, lambda c: c.crop_history("tok"))
    disease = run_client(handler, fake_sleep, lambda c: c.disease_history("tok"))

    assert crop == disease == [{"status": "Healthy"}]
    assert urls == [f"{CROP_URL}/history", HISTORY_URL]


def test_history_failure_raises(fake_sleep):
    with pytest.raises(ExhaustedStrategies):
        run_client(lambda request: httpx.Response(503), fake_sleep, lambda c: c.disease_history("tok"))


def test_history_non_json_is_empty(fake_sleep):
    result = run_client(lambda request: httpx.Response(200, text="oops"), fake_sleep, lambda c: c.crop_history("tok"))
    assert result == []


@pytest.mark.parametrize(
    "body,expected",
    [
        ([{"a": 1}], [{"a": 1}]),
        ({"history": [1, 2]}, [1, 2]),
        ({"data": [3]}, [3]),
        ({"predictions": [4]}, [4]),
        ({"x": {"status": "ok"}, "count": 2}, [{"status": "ok"}]),
        ("nothing", []),
        (None, []),
    ],
)
def test_extract_history(body, expected):
    assert extract_history(body) == expected
