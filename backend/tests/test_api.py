"""
Tests de la API del simulador.
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from tributario.main import app

client = TestClient(app)

BASE = "/api/v1/regimen"

PROFESIONAL = {"gross_income": 200_000_000, "activity_class": "PROFESIONAL_LIBERAL"}


class TestApp:

    def test_root(self):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["fiscal_years"] == [2024, 2025, 2026]

    def test_security_headers(self):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "X-Process-Time" in response.headers


class TestCompareEndpoint:

    def test_compare(self):
        response = client.post(f"{BASE}/comparar", json={**PROFESIONAL, "year": 2025})

        assert response.status_code == 200
        data = response.json()
        assert data["difference"] == 10872360
        assert data["recommendation"]["regime"] == "SIMPLE"
        assert data["simple"]["is_eligible"] is True
        assert data["ordinary"]["net_tax"] == 22672360
        assert data["projection"] is None

    def test_compare_with_projection(self):
        response = client.post(
            f"{BASE}/comparar",
            json={**PROFESIONAL, "year": 2025, "include_projection": True},
        )
        projection = response.json()["projection"]
        assert [p["year"] for p in projection] == [2026, 2027, 2028]
        assert projection[1]["extrapolated"] is True

    def test_negative_amount_rejected(self):
        response = client.post(f"{BASE}/comparar", json={**PROFESIONAL, "costs": -1})
        assert response.status_code == 422

    def test_engine_validation_errors(self):
        response = client.post(f"{BASE}/comparar", json={**PROFESIONAL, "dependents": 5})

        assert response.status_code == 422
        assert response.json()["detail"][0]["field"] == "dependents"

    def test_unsupported_year(self):
        response = client.post(f"{BASE}/comparar", json={**PROFESIONAL, "year": 2023})
        assert response.status_code == 404

    @pytest.mark.parametrize("endpoint", ["comparar", "ordinario", "simple"])
    def test_year_out_of_range_rejected(self, endpoint):
        response = client.post(f"{BASE}/{endpoint}", json={**PROFESIONAL, "year": 1990})

        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"][-1] == "year"

    def test_unknown_activity(self):
        response = client.post(
            f"{BASE}/comparar",
            json={"gross_income": 1000, "activity_class": "MINERIA"},
        )
        assert response.status_code == 422


class TestSingleRegimeEndpoints:

    def test_ordinary(self):
        response = client.post(f"{BASE}/ordinario", json=PROFESIONAL)

        assert response.status_code == 200
        data = response.json()
        assert data["net_tax"] == 22672360
        assert data["steps"][0]["order"] == 1

    def test_simple_ineligible(self):
        response = client.post(
            f"{BASE}/simple",
            json={"gross_income": 5_000_000_000, "activity_class": "COMERCIAL"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["is_eligible"] is False
        assert data["reasons"]


class TestToolEndpoints:

    def test_filing_obligation(self):
        response = client.post(
            f"{BASE}/obligacion-declarar",
            json={"gross_income": 80_000_000, "year": 2025},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["obliged"] is True
        assert data["income_threshold"] == 69718600

    @pytest.mark.parametrize("payload,expected", [
        ({"amount": 1340, "direction": "uvt_a_pesos"}, Decimal("66730660")),
        ({"amount": 99598, "direction": "pesos_a_uvt"}, Decimal("2")),
    ])
    def test_uvt_conversion(self, payload, expected):
        response = client.post(f"{BASE}/uvt/convertir", json={**payload, "year": 2025})

        assert response.status_code == 200
        assert Decimal(str(response.json()["result"])) == expected

    def test_fiscal_tables(self):
        response = client.get(f"{BASE}/tablas/2025")

        assert response.status_code == 200
        data = response.json()
        assert data["uvt"] == 49799
        assert len(data["ordinary"]) == 7
        assert "RESTAURANTE" in data["simple"]

    def test_fiscal_tables_unknown_year(self):
        assert client.get(f"{BASE}/tablas/2010").status_code == 404

    def test_advance_calendar(self):
        response = client.get(f"{BASE}/anticipos/calendario/2025")

        assert response.status_code == 200
        entries = response.json()["entries"]
        assert len(entries) == 6
        assert entries[0]["due_date"] == "2025-03-07"
        assert entries[0]["months"] == "Enero - Febrero"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
