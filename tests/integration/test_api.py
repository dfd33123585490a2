"""
Tests de integración para la API REST.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.finances import get_finance_service
from src.services.finance_service import FinanceReportService
from tests.factories import CustomerPayloadFactory, OrderPayloadFactory
from tests.shopify_mock import TEST_TOKEN, shopify_service_for, shopify_transport

pytestmark = pytest.mark.integration

AUTH = {"X-Shopify-Token": TEST_TOKEN}


def client_for(now, raise_server_exceptions: bool = True, **transport_kwargs) -> TestClient:
    """App con Shopify simulado y reloj fijo."""
    service = FinanceReportService(
        shopify=shopify_service_for(shopify_transport(**transport_kwargs)),
        clock=lambda: now,
    )
    app = create_app()
    app.dependency_overrides[get_finance_service] = lambda: service
    return TestClient(app, raise_server_exceptions=raise_server_exceptions)


@pytest.fixture
def store_orders():
    return [
        OrderPayloadFactory(
            id=1, order_number=1001, total_price="100.00",
            created_at="2024-01-15T10:00:00Z", fulfillment_status="fulfilled",
        ),
        OrderPayloadFactory(
            id=2, order_number=1002, total_price="50.00",
            created_at="2024-02-10T10:00:00Z", fulfillment_status=None,
        ),
    ]


@pytest.fixture
def store_customers():
    return [
        CustomerPayloadFactory(created_at="2024-02-12T08:00:00Z"),
        CustomerPayloadFactory(created_at="2024-01-02T08:00:00Z"),
    ]


class TestFinancesEndpoint:
    """Tests para GET /api/shopify/finances."""

    def test_report(self, now, store_orders, store_customers):
        client = client_for(now, orders=store_orders, customers=store_customers)

        response = client.get("/api/shopify/finances", headers=AUTH)

        assert response.status_code == 200
        data = response.json()
        assert data["totalRevenue"] == "150.00"
        assert data["totalOrders"] == 2
        assert data["averageOrderValue"] == "75.00"
        assert data["monthlyRevenue"] == [
            {"month": "2024-01", "revenue": "100.00"},
            {"month": "2024-02", "revenue": "50.00"},
        ]
        assert data["salesMonthToDate"] == "50.00"
        assert data["newCustomersThisWeek"] == 1
        assert data["openOrdersCount"] == 1
        assert data["websiteVisitsThisWeek"] is None

    def test_recent_orders_shape(self, now, store_orders):
        client = client_for(now, orders=store_orders)

        recent = client.get("/api/shopify/finances", headers=AUTH).json()["recentOrders"]

        assert [o["id"] for o in recent] == [2, 1]
        assert recent[0] == {
            "id": 2,
            "orderNumber": 1002,
            "totalPrice": "50.00",
            "createdAt": "2024-02-10T10:00:00+00:00",
            "financialStatus": "paid",
            "fulfillmentStatus": None,
        }

    def test_historical_data(self, now, store_orders, store_customers):
        client = client_for(now, orders=store_orders, customers=store_customers)

        historical = client.get("/api/shopify/finances", headers=AUTH).json()["historicalData"]

        assert historical["dates"] == ["2024-01-02", "2024-01-15", "2024-02-10", "2024-02-12"]
        assert historical["revenue"] == ["0", "100.00", "50.00", "0"]
        assert historical["orders"] == [0, 1, 1, 0]
        assert historical["customers"] == [1, 0, 0, 1]

    def test_empty_store(self, now):
        data = client_for(now).get("/api/shopify/finances", headers=AUTH).json()

        assert data["totalRevenue"] == "0"
        assert data["averageOrderValue"] == "0"
        assert data["monthlyRevenue"] == []
        assert data["recentOrders"] == []
        assert data["openOrdersCount"] == 0

    def test_date_range(self, now, store_orders):
        client = client_for(now, orders=store_orders)

        response = client.get(
            "/api/shopify/finances",
            params={"start_date": "2024-02-01", "end_date": "2024-02-10"},
            headers=AUTH,
        )

        data = response.json()
        assert response.status_code == 200
        assert data["totalOrders"] == 1
        assert data["totalRevenue"] == "50.00"

    def test_start_after_end(self, now):
        response = client_for(now).get(
            "/api/shopify/finances",
            params={"start_date": "2024-03-01", "end_date": "2024-02-01"},
            headers=AUTH,
        )
        assert response.status_code == 422
        assert response.json()["category"] == "VALIDATION"

    def test_invalid_date(self, now):
        response = client_for(now).get(
            "/api/shopify/finances", params={"start_date": "ayer"}, headers=AUTH
        )
        assert response.status_code == 422

    def test_missing_token(self, now):
        response = client_for(now).get("/api/shopify/finances")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "AuthenticationError"
        assert body["category"] == "AUTHENTICATION"
        assert body["correlation_id"]
        assert body["timestamp"]

    def test_rejected_token(self, now):
        client = client_for(now, valid_token="otro-token")
        response = client.get("/api/shopify/finances", headers=AUTH)
        assert response.status_code == 401

    def test_malformed_price_is_bad_gateway(self, now):
        client = client_for(now, orders=[OrderPayloadFactory(id=4501, total_price="N/A")])

        response = client.get("/api/shopify/finances", headers=AUTH)

        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "DataFormatError"
        assert body["category"] == "DATA_FORMAT"
        assert "4501" in body["message"]

    def test_upstream_failure_is_bad_gateway(self, now):
        response = client_for(now, status_code=500).get("/api/shopify/finances", headers=AUTH)

        assert response.status_code == 502
        assert response.json()["category"] == "EXTERNAL_API"

    def test_unexpected_error_is_500(self, now):
        class BrokenService:
            async def get_report(self, config, date_range=None):
                raise RuntimeError("boom")

        app = create_app()
        app.dependency_overrides[get_finance_service] = lambda: BrokenService()
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/api/shopify/finances", headers=AUTH)

        assert response.status_code == 500
        assert response.json()["category"] == "INTERNAL"

    def test_correlation_id_round_trip(self, now):
        client = client_for(now)

        response = client.get("/api/shopify/finances", headers={"X-Correlation-ID": "cid-abc"})

        assert response.headers["X-Correlation-ID"] == "cid-abc"
        assert response.headers["X-Response-Time"].endswith("ms")
        assert response.json()["correlation_id"] == "cid-abc"


class TestShopEndpoints:
    """Tests para /api/shopify/validate y /api/shopify/shop."""

    def test_validate_success(self, now):
        response = client_for(now).post("/api/shopify/validate", json={"accessToken": TEST_TOKEN})

        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_validate_missing_token(self, now):
        response = client_for(now).post("/api/shopify/validate", json={})
        assert response.status_code == 400

    def test_validate_invalid_token(self, now):
        response = client_for(now).post("/api/shopify/validate", json={"accessToken": "malo"})
        assert response.status_code == 401

    def test_shop(self, now):
        client = client_for(now, shop={"id": 5, "name": "Joyas del Sur"})

        response = client.get("/api/shopify/shop", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["shop"]["name"] == "Joyas del Sur"


class TestHealthEndpoints:
    """Tests para endpoints de health."""

    @pytest.fixture
    def client(self):
        return TestClient(create_app())

    def test_root_endpoint(self, client):
        data = client.get("/").json()
        assert data["status"] == "running"
        assert "version" in data

    def test_api_info(self, client):
        data = client.get("/api/v1").json()
        assert data["endpoints"]["finances"] == "/api/shopify/finances"

    def test_health_without_configured_token(self, client):
        """Sin token configurado Shopify queda 'unknown' y el sistema sano."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["configuration"]["status"] == "up"
        assert data["components"]["shopify"]["status"] == "unknown"

    def test_liveness(self, client):
        response = client.get("/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_readiness(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_without_shop(self, client, monkeypatch):
        from config.settings import settings

        monkeypatch.setattr(settings, "SHOPIFY_SHOP_NAME", "")
        response = client.get("/health/ready")
        assert response.status_code == 503


class TestMetricsEndpoints:
    """Tests para endpoints de métricas."""

    def test_metrics_json(self, now):
        client = client_for(now)
        client.get("/api/shopify/finances", headers=AUTH)

        data = client.get("/metrics").json()

        assert data["metrics"]["finance_reports_total"] == {'status="success"': 1.0}
        assert "errors" in data

    def test_metrics_prometheus(self, now):
        client = client_for(now)
        client.get("/api/shopify/finances", headers=AUTH)

        response = client.get("/metrics/prometheus")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert 'shopify_requests_total{endpoint="orders",status="success"} 1.0' in response.text

    def test_errors_recorded(self, now):
        client = client_for(now, orders=[OrderPayloadFactory(total_price="x")])
        client.get("/api/shopify/finances", headers=AUTH)

        errors = client.get("/metrics").json()["errors"]
        assert errors == {"DATA_FORMAT:HIGH": 1}
