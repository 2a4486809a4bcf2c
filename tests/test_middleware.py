"""
Request id, response headers, rate limiting and input hygiene.
"""

from urllib.parse import parse_qsl

import pytest

from bizdesk.middleware.input_guard import (
    SUSPICIOUS_MESSAGE,
    clean,
    collapse_repeated_params,
    is_suspicious,
    sanitize_form,
    sanitize_payload,
)
from bizdesk.middleware.rate_limit import Bucket, FixedWindowRateLimiter, buckets_for


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestFixedWindowRateLimiter:

    def test_limit_and_window_reset(self):
        clock = FakeClock()
        bucket = Bucket("api", limit=2, window_seconds=60)
        limiter = FixedWindowRateLimiter({"api": bucket}, clock=clock)

        assert limiter.retry_after(bucket, "10.0.0.1") == 0
        limiter.hit(bucket, "10.0.0.1")
        limiter.hit(bucket, "10.0.0.1")
        clock.now += 15
        assert limiter.retry_after(bucket, "10.0.0.1") == 45
        assert limiter.retry_after(bucket, "10.0.0.2") == 0

        clock.now += 45
        assert limiter.retry_after(bucket, "10.0.0.1") == 0

    def test_reset(self):
        bucket = Bucket("api", limit=1, window_seconds=60)
        limiter = FixedWindowRateLimiter({"api": bucket}, clock=FakeClock())
        limiter.hit(bucket, "k")
        assert limiter.retry_after(bucket, "k") > 0
        limiter.reset()
        assert limiter.retry_after(bucket, "k") == 0

    def test_lapsed_windows_are_dropped(self):
        clock = FakeClock()
        bucket = Bucket("api", limit=5, window_seconds=60)
        limiter = FixedWindowRateLimiter({"api": bucket}, clock=clock, max_windows=100)
        for n in range(100):
            limiter.hit(bucket, f"10.0.{n // 256}.{n % 256}")
        assert len(limiter._windows) == 100

        clock.now += 61
        limiter.hit(bucket, "192.168.1.1")
        assert list(limiter._windows) == [("api", "192.168.1.1")]

    def test_live_windows_survive_a_prune(self):
        clock = FakeClock()
        bucket = Bucket("api", limit=1, window_seconds=60)
        limiter = FixedWindowRateLimiter({"api": bucket}, clock=clock, max_windows=3)
        limiter.hit(bucket, "old")
        clock.now += 59
        limiter.hit(bucket, "a")
        limiter.hit(bucket, "b")
        clock.now += 1
        limiter.hit(bucket, "c")

        assert ("api", "old") not in limiter._windows
        assert limiter.retry_after(bucket, "a") == 59
        assert len(limiter._windows) == 3

    def test_prune_reports_removed_count(self):
        clock = FakeClock()
        bucket = Bucket("login", limit=3, window_seconds=900, failures_only=True)
        limiter = FixedWindowRateLimiter({"login": bucket}, clock=clock)
        limiter.hit(bucket, "x")
        limiter.hit(bucket, "y")
        assert limiter.prune() == 0
        clock.now += 900
        assert limiter.prune() == 2
        assert limiter._windows == {}


@pytest.mark.parametrize(
    "path, method, expected",
    [
        ("/api/products", "GET", ["api"]),
        ("/api/health", "GET", []),
        ("/api/ping", "POST", []),
        ("/api/products", "OPTIONS", []),
        ("/docs", "GET", []),
        ("/api/auth/login", "POST", ["api", "login"]),
        ("/api/superadmin/login", "POST", ["api", "login"]),
        ("/api/company/register", "POST", ["api", "register"]),
        ("/api/auth/login", "GET", ["api"]),
    ],
)
def test_buckets_for(path, method, expected):
    assert buckets_for(path, method) == expected


class TestRateLimitMiddleware:

    async def test_api_limit_returns_429(self, app, client):
        app.state.limiter = FixedWindowRateLimiter(
            {"api": Bucket("api", limit=2, window_seconds=600)}, enabled=True
        )
        for _ in range(2):
            assert (await client.get("/api/company/industry-features")).status_code == 200
        limited = await client.get("/api/company/industry-features")
        assert limited.status_code == 429
        assert limited.json()["detail"] == "Too many requests. Please try again later."
        assert int(limited.headers["retry-after"]) > 0

        assert (await client.get("/api/health")).status_code == 200

    async def test_only_failed_logins_count(self, app, client, tenant):
        app.state.limiter = FixedWindowRateLimiter(
            {"login": Bucket("login", limit=2, window_seconds=900, failures_only=True)},
            enabled=True,
        )
        good = {"username": tenant["admin"].email, "password": "Secret123"}
        bad = {"username": tenant["admin"].email, "password": "Wrong1234"}

        for _ in range(3):
            assert (await client.post("/api/auth/login", json=good)).status_code == 200
        for _ in range(2):
            assert (await client.post("/api/auth/login", json=bad)).status_code == 401
        assert (await client.post("/api/auth/login", json=good)).status_code == 429

    async def test_disabled_limiter_lets_everything_through(self, app, client):
        app.state.limiter = FixedWindowRateLimiter(
            {"api": Bucket("api", limit=1, window_seconds=600)}, enabled=False
        )
        for _ in range(3):
            assert (await client.get("/api/company/industry-features")).status_code == 200


class TestRequestHeaders:

    async def test_request_id_is_generated(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert len(response.headers["x-request-id"]) == 12

    async def test_request_id_is_echoed(self, client):
        response = await client.get("/api/health", headers={"X-Request-ID": "trace-42"})
        assert response.headers["x-request-id"] == "trace-42"

    async def test_api_responses_are_not_cached(self, client):
        response = await client.post("/api/ping")
        assert response.json()["status"] == "pong"
        assert response.headers["cache-control"] == "no-cache, no-store, must-revalidate"
        assert response.headers["pragma"] == "no-cache"
        assert "x-original-size" in response.headers

    async def test_wake(self, client):
        response = await client.get("/api/wake")
        assert response.json()["status"] == "awake"


class TestInputGuardHelpers:

    def test_repeated_params_keep_last_value(self):
        pairs = [("category", "a"), ("page", "1"), ("category", "b"), ("page", "2")]
        assert collapse_repeated_params(pairs) == [("category", "b"), ("page", "1"), ("page", "2")]

    def test_clean_trims_and_escapes(self):
        assert clean("  <b>bold</b> ") == "&lt;b&gt;bold&lt;/b&gt;"

    def test_passwords_are_not_escaped(self):
        payload = {"name": "<i>x</i>", "password": "<Secret1>", "quantity": 3}
        assert sanitize_payload(payload) == {
            "name": "&lt;i&gt;x&lt;/i&gt;",
            "password": "<Secret1>",
            "quantity": 3,
        }

    def test_non_dict_payloads_pass_through(self):
        assert sanitize_payload(["<x>"]) == ["<x>"]

    def test_form_fields_are_escaped_except_passwords(self):
        body = b"username=a%40example.com&companyName=Joe%27s+Shop&password=%3CSecret1%3E"
        assert parse_qsl(sanitize_form(body).decode()) == [
            ("username", "a@example.com"),
            ("companyName", "Joe&#x27;s Shop"),
            ("password", "<Secret1>"),
        ]

    @pytest.mark.parametrize(
        "text",
        [
            "1 UNION SELECT password FROM users",
            "x; DROP TABLE users",
            "<script>alert(1)</script>",
            '<img src=x onerror=alert(1)>',
            "../../../etc/passwd",
            '{"$where": "1"}',
        ],
    )
    def test_suspicious_inputs(self, text):
        assert is_suspicious(text)

    @pytest.mark.parametrize("text", ["Union Street Hardware", "../logo.png", "Select Supplies Ltd"])
    def test_ordinary_inputs(self, text):
        assert not is_suspicious(text)


class TestInputGuardMiddleware:

    async def test_suspicious_body_is_refused(self, client):
        response = await client.post(
            "/api/auth/login",
            json={"username": "a@example.com", "password": "x' UNION SELECT * FROM users --"},
        )
        assert response.status_code == 403
        assert response.json()["detail"] == SUSPICIOUS_MESSAGE

    async def test_suspicious_form_body_is_refused(self, client):
        response = await client.post(
            "/api/auth/login",
            data={"username": "a@example.com", "password": "x' UNION SELECT * FROM users --"},
        )
        assert response.status_code == 403

    async def test_suspicious_query_is_refused(self, client):
        response = await client.get(
            "/api/company/industry-features", params={"business_type": "<script>alert(1)</script>"}
        )
        assert response.status_code == 403

    async def test_resource_paths_skip_pattern_checks_but_are_escaped(self, client, tenant, headers):
        response = await client.post(
            "/api/products",
            json={"name": "Drop Table Legs <b>", "sku": "TBL-1", "price": 100, "quantity": 1},
            headers=headers(tenant["admin"]),
        )
        assert response.status_code == 201
        assert response.json()["name"] == "Drop Table Legs &lt;b&gt;"

    async def test_malformed_json_reaches_validation(self, client):
        response = await client.post(
            "/api/company/register",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
