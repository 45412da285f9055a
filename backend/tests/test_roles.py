"""
Role hierarchy and route authorization tests.

Verifies:
- The five roles are strictly ordered
- Unauthenticated requests return 401
- Roles below an endpoint's minimum get 403 with required/current
"""

import pytest

from rotierp.roles import Role, parse_role, role_at_least, role_rank


class TestRoleHierarchy:

    def test_roles_are_ordered(self):
        assert Role.COUNTER_OPERATOR < Role.FRANCHISE_MANAGER < Role.MANAGER < Role.ADMIN < Role.SUPER_ADMIN

    def test_parse_role_is_case_insensitive(self):
        assert parse_role("manager") is Role.MANAGER
        assert parse_role(" ADMIN ") is Role.ADMIN
        assert parse_role("cashier") is None
        assert parse_role(None) is None

    def test_role_at_least(self):
        assert role_at_least("SUPER_ADMIN", "ADMIN")
        assert role_at_least("MANAGER", "MANAGER")
        assert not role_at_least("FRANCHISE_MANAGER", "MANAGER")
        assert not role_at_least("UNKNOWN", "COUNTER_OPERATOR")

    def test_unknown_role_ranks_lowest(self):
        assert role_rank("nobody") == 0
        assert role_rank("COUNTER_OPERATOR") == 1


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/orders"),
            ("POST", "/api/orders"),
            ("GET", "/api/counters"),
            ("GET", "/api/sales/pos"),
            ("GET", "/api/sales/reports"),
            ("GET", "/api/reports/dashboard"),
            ("GET", "/api/finance/accounts"),
            ("GET", "/api/manufacturing/products"),
            ("GET", "/api/franchises"),
            ("GET", "/api/hotels"),
            ("GET", "/api/hostels"),
            ("GET", "/api/hr/employees"),
            ("GET", "/api/users"),
            ("GET", "/api/settings/general"),
            ("GET", "/api/auth/profile"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["error"] == "Access denied"

    def test_garbage_token_rejected(self, client):
        resp = client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Invalid token"


# =============================================================================
# INSUFFICIENT ROLE: 403
# =============================================================================


class TestOperatorDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/counters"),
            ("GET", "/api/reports/dashboard"),
            ("GET", "/api/finance/accounts"),
            ("GET", "/api/hr/employees"),
            ("GET", "/api/hotels"),
            ("GET", "/api/users"),
            ("GET", "/api/settings/general"),
            ("POST", "/api/manufacturing/products"),
        ],
    )
    def test_operator_forbidden(self, client, operator_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=operator_headers, json={})
        assert resp.status_code == 403
        body = resp.get_json()
        assert body["message"] == "Insufficient permissions"
        assert body["current"] == "COUNTER_OPERATOR"
        assert body["required"].startswith("Minimum role:")

    def test_manager_cannot_manage_users(self, client, manager_headers):
        resp = client.get("/api/users", headers=manager_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required"] == "Minimum role: ADMIN"

    def test_franchise_manager_cannot_read_finance(self, client, franchise_manager_headers):
        resp = client.get("/api/finance/expenses", headers=franchise_manager_headers)
        assert resp.status_code == 403

    def test_super_admin_passes_every_gate(self, client, super_admin_headers):
        for path in ("/api/users", "/api/finance/accounts", "/api/hr/employees", "/api/reports/dashboard"):
            assert client.get(path, headers=super_admin_headers).status_code == 200, path


class TestErrorShapes:

    def test_unknown_route_is_json_404(self, client):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Route not found"

    def test_wrong_method_is_json_405(self, client):
        resp = client.delete("/api/auth/login")
        assert resp.status_code == 405
        assert resp.get_json()["error"] == "Method not allowed"

    def test_health(self, client):
        for path in ("/health", "/api/health"):
            resp = client.get(path)
            assert resp.status_code == 200
            body = resp.get_json()
            assert body["status"] == "OK"
            assert body["checks"]["database"]["status"] == "healthy"

    def test_cors_header_for_allowed_origin(self, client):
        resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
        resp = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers
