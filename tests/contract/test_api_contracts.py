"""API contract tests focusing on gateway behaviour and response formats."""

import pytest


ERROR_FIELDS = {"error", "message", "code", "correlation_id"}


@pytest.mark.contract
class TestOperationalEndpoints:
    """Health and monitoring endpoints work without a tenant."""

    @pytest.mark.asyncio
    async def test_health_endpoint_contract(self, client):
        """Liveness check returns status, service and timestamp."""
        response = await client.get("/healthz")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "easybill"
        assert "timestamp" in data

    @pytest.mark.asyncio
    async def test_readiness_endpoint_contract(self, client):
        response = await client.get("/readyz")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    @pytest.mark.asyncio
    async def test_info_endpoint_contract(self, client):
        """Info reports version and dependency connectivity."""
        response = await client.get("/info")
        assert response.status_code == 200

        data = response.json()
        assert {"service", "version", "environment"} <= set(data)
        assert data["database_status"] == "connected"
        assert data["redis_status"] == "connected"
        assert data["rate_limit"] == "enabled"

    @pytest.mark.asyncio
    async def test_metrics_endpoint_contract(self, client):
        """Metrics are exposed in Prometheus text format."""
        response = await client.get("/metrics")
        assert response.status_code == 200
        assert "text/plain" in response.headers.get("content-type", "")
        assert "easybill_http_request_latency_seconds" in response.text

    @pytest.mark.asyncio
    async def test_correlation_id_is_echoed(self, client, correlation_id):
        response = await client.get("/healthz", headers={"X-Correlation-Id": correlation_id})

        assert response.headers["X-Correlation-Id"] == correlation_id

    @pytest.mark.asyncio
    async def test_correlation_id_is_generated(self, client):
        response = await client.get("/healthz")

        assert len(response.headers["X-Correlation-Id"]) == 36


@pytest.mark.contract
class TestGatewayContracts:
    """Tenant resolution, rate limiting and the uniform error body."""

    @pytest.mark.asyncio
    async def test_tenant_bound_endpoint_requires_tenant(self, client, correlation_id):
        """Requests to tenant APIs without any tenant are rejected up front."""
        response = await client.get("/api/v1/products", headers={"X-Correlation-Id": correlation_id})

        assert response.status_code == 400
        assert response.json() == {
            "error": "BusinessError",
            "message": "Tenant ID is required",
            "code": "ERR_INVALID_REQUEST",
            "correlation_id": correlation_id,
        }
        assert response.headers["X-Correlation-Id"] == correlation_id

    @pytest.mark.asyncio
    async def test_missing_tenant_rejection_carries_cors_headers(self, client):
        response = await client.get("/api/v1/products", headers={"Origin": "http://shop.example.com"})

        assert response.status_code == 400
        assert "access-control-allow-origin" in response.headers
        assert len(response.json()["correlation_id"]) == 36

    @pytest.mark.asyncio
    async def test_missing_token(self, client, tenant_headers):
        response = await client.get("/api/v1/products", headers=tenant_headers)

        assert response.status_code == 401
        data = response.json()
        assert set(data) == ERROR_FIELDS
        assert data["code"] == "ERR_UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, client):
        response = await client.get("/api/v1/products", headers={"X-Tenant-Id": "no-such-tenant"})

        assert response.status_code == 404
        assert response.json()["code"] == "ERR_TENANT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_rate_limit_exceeded(self, client, fake_redis, tenant_headers):
        """Requests over the per-minute budget get 429 and Retry-After."""
        fake_redis.incr.return_value = 101
        fake_redis.ttl.return_value = 42

        response = await client.get("/api/v1/products", headers=tenant_headers)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        assert response.json()["code"] == "ERR_RATE_LIMITED"
        assert set(response.json()) == ERROR_FIELDS
        assert response.json()["correlation_id"] == response.headers["X-Correlation-Id"]

    @pytest.mark.asyncio
    async def test_health_checks_are_not_rate_limited(self, client, fake_redis):
        fake_redis.incr.return_value = 101

        response = await client.get("/healthz")

        assert response.status_code == 200
        fake_redis.incr.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limiter_outage_lets_requests_through(self, client, fake_redis, tenant_headers):
        fake_redis.incr.side_effect = OSError("connection refused")

        response = await client.get("/api/v1/products", headers=tenant_headers)

        # Reaches authentication instead of failing on Redis
        assert response.status_code == 401
        fake_redis.incr.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_first_request_starts_window(self, client, fake_redis, tenant_headers):
        await client.get("/api/v1/products", headers=tenant_headers)

        fake_redis.expire.assert_awaited_once()
        key, ttl = fake_redis.expire.await_args.args
        assert key.startswith("rate_limit:")
        assert ttl == 60

    @pytest.mark.asyncio
    async def test_error_body_carries_correlation_id(self, client, admin_headers, correlation_id):
        """Business errors render the uniform body with the request's correlation id."""
        response = await client.get(
            "/api/v1/invoices/does-not-exist",
            headers={**admin_headers, "X-Correlation-Id": correlation_id},
        )

        assert response.status_code == 404
        data = response.json()
        assert set(data) == ERROR_FIELDS
        assert data["error"] == "ResourceNotFoundError"
        assert data["code"] == "ERR_NOT_FOUND"
        assert data["correlation_id"] == correlation_id
        assert response.headers["X-Correlation-Id"] == correlation_id

    @pytest.mark.asyncio
    async def test_request_validation_error(self, client, admin_headers):
        """Malformed bodies yield 400 with per-field messages."""
        response = await client.post("/api/v1/invoices", json={"items": []}, headers=admin_headers)

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "ERR_VALIDATION"
        assert "items" in data["field_errors"]

    @pytest.mark.asyncio
    async def test_unknown_route(self, client, tenant_headers):
        response = await client.get("/api/v1/does-not-exist", headers=tenant_headers)

        assert response.status_code == 404
        data = response.json()
        assert data["code"] == "ERR_NOT_FOUND"
        assert data["message"] == "The requested resource was not found"

    @pytest.mark.asyncio
    async def test_cors_preflight(self, client):
        response = await client.options(
            "/api/v1/products",
            headers={"Origin": "http://shop.example.com", "Access-Control-Request-Method": "GET"},
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] in ("*", "http://shop.example.com")
