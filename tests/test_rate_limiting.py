"""
Tests del rate limiting: límite por defecto por IP y límite estricto en login
"""
import pytest
from limits import parse

import config
from utils.rate_limiter import limiter


@pytest.fixture
def rate_limited(client):
    limiter.reset()
    limiter.enabled = True
    yield client
    limiter.enabled = False
    limiter.reset()


def test_default_limit_applies_to_every_route(rate_limited):
    allowed = parse(config.RATE_LIMIT_DEFAULT).amount
    for _ in range(allowed):
        assert rate_limited.get("/").status_code == 200

    assert rate_limited.get("/").status_code == 429


def test_login_has_stricter_limit(rate_limited, users):
    allowed = parse(config.RATE_LIMIT_LOGIN).amount
    for _ in range(allowed):
        response = rate_limited.post("/api/auth/login", data={"username": "nobody", "password": "Wrong1234"})
        assert response.status_code == 401

    response = rate_limited.post("/api/auth/login", data={"username": "nobody", "password": "Wrong1234"})
    assert response.status_code == 429


def test_disabled_limiter_lets_requests_through(client):
    for _ in range(parse(config.RATE_LIMIT_LOGIN).amount + 1):
        assert client.post("/api/auth/login", data={"username": "nobody", "password": "x"}).status_code == 401
