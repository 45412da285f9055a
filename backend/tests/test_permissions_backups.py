"""
Role permission grants and database backup tests.
"""

import json
import os

import pytest

from rotierp.extensions import db
from rotierp.models import Backup, Permission, RolePermission
from rotierp.permissions import DEFAULT_ROLE_PERMISSIONS, PERMISSION_DEFINITIONS
from rotierp.services.permission_service import assign_default_role_permissions, initialize_permissions


@pytest.fixture
def seeded(app):
    initialize_permissions()
    assign_default_role_permissions()


def _ids(*codes):
    return [db.session.query(Permission).filter_by(code=code).one().id for code in codes]


class TestPermissionSeeding:

    def test_seeding_is_idempotent(self, app):
        assert initialize_permissions() == len(PERMISSION_DEFINITIONS)
        assert initialize_permissions() == 0
        created = assign_default_role_permissions()
        assert created == sum(len(codes) for codes in DEFAULT_ROLE_PERMISSIONS.values())
        assert assign_default_role_permissions() == 0

    def test_reseeding_keeps_edited_grants(self, app, seeded):
        db.session.query(RolePermission).filter_by(role="MANAGER").delete()
        db.session.add(RolePermission(role="MANAGER", permission_id=_ids("VIEW_HR")[0]))
        db.session.commit()

        assert assign_default_role_permissions() == 0
        assert db.session.query(RolePermission).filter_by(role="MANAGER").count() == 1


class TestPermissionRoutes:

    def test_list_groups_by_role(self, client, admin_headers, seeded):
        resp = client.get("/api/settings/permissions", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert len(body["permissions"]) == len(PERMISSION_DEFINITIONS)
        modules = [p["module"] for p in body["permissions"]]
        assert modules == sorted(modules)
        assert {p["code"] for p in body["rolePermissions"]["COUNTER_OPERATOR"]} == {"VIEW_SALES", "VIEW_INVENTORY"}
        assert set(body["rolePermissions"]) == set(DEFAULT_ROLE_PERMISSIONS)

    def test_replace_role_grants(self, client, admin_headers, seeded):
        ids = _ids("VIEW_SALES", "EDIT_SALES", "VIEW_REPORTS")
        resp = client.put(
            "/api/settings/permissions/counter_operator",
            json={"permissionIds": ids + [ids[0]]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["role"] == "COUNTER_OPERATOR"
        assert {p["code"] for p in body["permissions"]} == {"VIEW_SALES", "EDIT_SALES", "VIEW_REPORTS"}

        granted = db.session.query(RolePermission).filter_by(role="COUNTER_OPERATOR").all()
        assert sorted(g.permission_id for g in granted) == sorted(ids)
        # Other roles untouched
        assert db.session.query(RolePermission).filter_by(role="MANAGER").count() == len(DEFAULT_ROLE_PERMISSIONS["MANAGER"])

    def test_empty_list_revokes_everything(self, client, admin_headers, seeded):
        resp = client.put("/api/settings/permissions/MANAGER", json={"permissionIds": []}, headers=admin_headers)
        assert resp.status_code == 200
        assert db.session.query(RolePermission).filter_by(role="MANAGER").count() == 0

    def test_unknown_permission_changes_nothing(self, client, admin_headers, seeded):
        resp = client.put(
            "/api/settings/permissions/MANAGER",
            json={"permissionIds": _ids("VIEW_HR") + [9999]},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["details"][0]["field"] == "permissionIds"
        assert db.session.query(RolePermission).filter_by(role="MANAGER").count() == len(DEFAULT_ROLE_PERMISSIONS["MANAGER"])

    @pytest.mark.parametrize("body", [{}, {"permissionIds": "1,2"}, {"permissionIds": ["x"]}, {"permissionIds": [True]}])
    def test_malformed_ids(self, client, admin_headers, seeded, body):
        resp = client.put("/api/settings/permissions/MANAGER", json=body, headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_role(self, client, admin_headers, seeded):
        resp = client.put("/api/settings/permissions/BAKER", json={"permissionIds": []}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["details"][0]["field"] == "role"

    def test_admin_cannot_edit_super_admin(self, client, admin_headers, super_admin_headers, seeded):
        resp = client.put("/api/settings/permissions/SUPER_ADMIN", json={"permissionIds": []}, headers=admin_headers)
        assert resp.status_code == 403
        assert db.session.query(RolePermission).filter_by(role="SUPER_ADMIN").count() == len(PERMISSION_DEFINITIONS)

        resp = client.put(
            "/api/settings/permissions/SUPER_ADMIN",
            json={"permissionIds": _ids("VIEW_ALL")},
            headers=super_admin_headers,
        )
        assert resp.status_code == 200

    def test_manager_forbidden(self, client, manager_headers, seeded):
        assert client.get("/api/settings/permissions", headers=manager_headers).status_code == 403


class TestBackups:

    def test_create_writes_snapshot(self, app, client, admin_headers, product):
        resp = client.post("/api/settings/backup", json={}, headers=admin_headers)
        assert resp.status_code == 201
        backup = resp.get_json()["backup"]
        assert backup["type"] == "MANUAL"
        assert backup["status"] == "SUCCESS"
        assert backup["fileName"].endswith("_manual.json")

        path = os.path.join(app.config["BACKUP_DIR"], backup["fileName"])
        assert os.path.getsize(path) == backup["size"] > 0
        with open(path, encoding="utf-8") as fh:
            snapshot = json.load(fh)
        assert [p["sku"] for p in snapshot["tables"]["products"]] == ["ROTI-BUTTER"]
        assert "backups" not in snapshot["tables"]

    def test_list_with_stats(self, client, admin_headers):
        client.post("/api/settings/backup", json={"type": "automatic"}, headers=admin_headers)
        client.post("/api/settings/backup", headers=admin_headers)
        db.session.add(Backup(file_name="backup_old_manual.json", status="FAILED", error="disk full"))
        db.session.commit()

        body = client.get("/api/settings/backup", headers=admin_headers).get_json()
        assert body["stats"]["total"] == 3
        assert body["stats"]["successful"] == 2
        assert body["stats"]["failed"] == 1
        assert body["stats"]["totalSize"] == sum(b["size"] for b in body["backups"])
        assert {b["type"] for b in body["backups"]} == {"MANUAL", "AUTOMATIC"}

    def test_invalid_type(self, client, admin_headers):
        resp = client.post("/api/settings/backup", json={"type": "HOURLY"}, headers=admin_headers)
        assert resp.status_code == 400
        assert db.session.query(Backup).count() == 0

    def test_unwritable_directory_is_recorded_as_failed(self, app, client, admin_headers, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        app.config["BACKUP_DIR"] = str(blocker)

        resp = client.post("/api/settings/backup", json={}, headers=admin_headers)
        assert resp.status_code == 500
        body = resp.get_json()
        assert body["error"] == "Backup failed"
        assert body["backup"]["status"] == "FAILED"
        assert db.session.query(Backup).one().error

    def test_delete_removes_file(self, app, client, admin_headers):
        backup = client.post("/api/settings/backup", json={}, headers=admin_headers).get_json()["backup"]
        path = os.path.join(app.config["BACKUP_DIR"], backup["fileName"])

        resp = client.delete(f"/api/settings/backup/{backup['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert not os.path.exists(path)
        assert db.session.query(Backup).count() == 0

        resp = client.delete(f"/api/settings/backup/{backup['id']}", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Backup not found"

    def test_manager_forbidden(self, client, manager_headers):
        assert client.post("/api/settings/backup", json={}, headers=manager_headers).status_code == 403
