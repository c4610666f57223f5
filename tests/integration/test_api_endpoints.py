"""
Integration Tests for API Endpoints
Tests authentication, role checks, reports, email groups and public stats over HTTP
"""
import pytest
from httpx import AsyncClient
from faker import Faker

fake = Faker()


def _report_form(**overrides):
    form = {
        "type": "vandalism",
        "location": "Manor House Gardens, Lewisham",
        "date": "2024-04-12",
        "time": "22:15",
        "description": fake.sentence(),
    }
    form.update(overrides)
    return form


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client: AsyncClient):
        response = await client.get('/health')

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["appName"] == "Community Watch"
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestAuthEndpoints:
    """Login and the difference between 401 and 403"""

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, admin_user):
        response = await client.post('/api/login', json={
            "username": admin_user.username,
            "password": "adminpassword123",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "admin"
        assert data["token"]

    @pytest.mark.asyncio
    async def test_login_failures_are_opaque(self, client: AsyncClient, admin_user):
        unknown = await client.post('/api/login', json={"username": "nobody", "password": "adminpassword123"})
        wrong = await client.post('/api/login', json={"username": admin_user.username, "password": "nope"})

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json() == {"error": "Invalid credentials", "code": "INVALID_CREDENTIALS"}

    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, client: AsyncClient):
        response = await client.get('/api/reports')

        assert response.status_code == 401
        assert response.json()["error"] == "Authentication required"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_garbage_token_is_401(self, client: AsyncClient):
        response = await client.get('/api/reports', headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_on_superadmin_route_is_403(self, client: AsyncClient, admin_headers):
        response = await client.post('/api/users', headers=admin_headers, json={
            "username": "newcomer",
            "password": "pw",
        })

        assert response.status_code == 403
        assert response.json()["error"] == "Requires Super Admin privileges"


class TestUserEndpoints:

    @pytest.mark.asyncio
    async def test_create_user(self, client: AsyncClient, superadmin_headers):
        response = await client.post('/api/users', headers=superadmin_headers, json={
            "username": "newcomer",
            "password": "pw123",
            "role": "admin",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "User created"
        assert isinstance(data["userId"], int)

        login = await client.post('/api/login', json={"username": "newcomer", "password": "pw123"})
        assert login.status_code == 200
        assert login.json()["role"] == "admin"

    @pytest.mark.asyncio
    async def test_role_defaults_to_admin(self, client: AsyncClient, superadmin_headers):
        await client.post('/api/users', headers=superadmin_headers, json={"username": "plain", "password": "pw"})

        login = await client.post('/api/login', json={"username": "plain", "password": "pw"})
        assert login.json()["role"] == "admin"

    @pytest.mark.asyncio
    async def test_duplicate_username(self, client: AsyncClient, superadmin_headers, superadmin_user):
        response = await client.post('/api/users', headers=superadmin_headers, json={
            "username": superadmin_user.username,
            "password": "pw",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "Failed to create user (username might be taken)"

    @pytest.mark.asyncio
    async def test_unknown_role_rejected(self, client: AsyncClient, superadmin_headers):
        response = await client.post('/api/users', headers=superadmin_headers, json={
            "username": "someone",
            "password": "pw",
            "role": "overlord",
        })

        assert response.status_code == 422


class TestReportEndpoints:

    @pytest.mark.asyncio
    async def test_submit_report(self, client: AsyncClient, blob_store):
        response = await client.post(
            '/api/report',
            data=_report_form(latitude="51.449", longitude="not-a-number"),
            files=[
                ("evidence", ("photo.jpg", b"jpeg-bytes", "image/jpeg")),
                ("evidence", ("clip.mp4", b"mp4-bytes", "video/mp4")),
            ],
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Report submitted successfully"
        assert data["referenceNumber"].startswith("CW-")
        assert len(list(blob_store.root.iterdir())) == 2

    @pytest.mark.asyncio
    async def test_submit_missing_field_writes_nothing(self, client: AsyncClient, blob_store, admin_headers):
        form = _report_form()
        del form["location"]

        response = await client.post(
            '/api/report',
            data=form,
            files=[("evidence", ("photo.jpg", b"jpeg-bytes", "image/jpeg"))],
        )

        assert response.status_code == 400
        assert "location" in response.json()["error"]
        assert list(blob_store.root.iterdir()) == []

        listing = await client.get('/api/reports', headers=admin_headers)
        assert listing.json() == []

    @pytest.mark.asyncio
    async def test_get_report(self, client: AsyncClient, admin_headers, report):
        response = await client.get(f'/api/report/{report.id}', headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["referenceNumber"] == "CW-4321"
        assert data["forwardHistory"] == []
        assert data["evidence"] == []

    @pytest.mark.asyncio
    async def test_get_missing_report(self, client: AsyncClient, admin_headers, db_session):
        response = await client.get('/api/report/12345', headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Report not found", "code": "REPORT_NOT_FOUND"}

    @pytest.mark.asyncio
    async def test_get_report_id_beyond_64_bits(self, client: AsyncClient, admin_headers, report):
        response = await client.get(f'/api/report/{2**63}', headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "REPORT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_search_reports(self, client: AsyncClient, admin_headers):
        await client.post('/api/report', data=_report_form(type="theft", description="Stolen bike"))
        await client.post('/api/report', data=_report_form(type="vandalism", description="Smashed BIKE shelter"))
        await client.post('/api/report', data=_report_form(type="vandalism", description="Graffiti"))

        everything = await client.get('/api/reports', headers=admin_headers, params={"q": ""})
        bikes = await client.get('/api/reports', headers=admin_headers, params={"q": "bike"})
        vandal_bikes = await client.get('/api/reports', headers=admin_headers, params={"q": "bike", "type": "vandalism"})

        assert len(everything.json()) == 3
        assert [r["description"] for r in everything.json()][0] == "Graffiti"
        assert len(bikes.json()) == 2
        assert [r["description"] for r in vandal_bikes.json()] == ["Smashed BIKE shelter"]

    @pytest.mark.asyncio
    async def test_forward_requires_groups(self, client: AsyncClient, admin_headers, report):
        response = await client.post(f'/api/report/{report.id}/forward', headers=admin_headers, json={"groupIds": []})

        assert response.status_code == 400
        assert response.json()["error"] == "No groups selected"

    @pytest.mark.asyncio
    async def test_forward_missing_report(self, client: AsyncClient, admin_headers, email_groups):
        response = await client.post(
            '/api/report/777/forward', headers=admin_headers, json={"groupIds": [email_groups[0].id]}
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_forward_report_id_beyond_64_bits(self, client: AsyncClient, admin_headers, email_groups, mailer):
        response = await client.post(
            f'/api/report/{2**63}/forward', headers=admin_headers, json={"groupIds": [email_groups[0].id]}
        )

        assert response.status_code == 404
        assert mailer.sent == []

    @pytest.mark.asyncio
    async def test_forward_group_ids_beyond_64_bits(self, client: AsyncClient, admin_headers, report, email_groups, mailer):
        response = await client.post(
            f'/api/report/{report.id}/forward', headers=admin_headers, json={"groupIds": [2**63, 2**64]}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "No groups selected"
        assert mailer.sent == []

    @pytest.mark.asyncio
    async def test_forward_reports_partial_failure(self, client: AsyncClient, admin_headers, report, email_groups, mailer):
        mailer.fail_for = {"snt@police.test"}
        first, second = email_groups

        response = await client.post(
            f'/api/report/{report.id}/forward',
            headers=admin_headers,
            json={"groupIds": [first.id, second.id]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Report forwarded to 1 of 2 groups"
        assert [entry["to"] for entry in data["history"]] == [first.name]
        assert [(r["groupId"], r["delivered"]) for r in data["results"]] == [(first.id, True), (second.id, False)]


class TestEmailGroupEndpoints:

    @pytest.mark.asyncio
    async def test_list_groups(self, client: AsyncClient, admin_headers, email_groups):
        response = await client.get('/api/email-groups', headers=admin_headers)

        assert response.status_code == 200
        assert [g["name"] for g in response.json()] == [g.name for g in email_groups]

    @pytest.mark.asyncio
    async def test_update_group_superadmin(self, client: AsyncClient, superadmin_headers, email_groups):
        group = email_groups[0]

        response = await client.put(
            f'/api/email-groups/{group.id}',
            headers=superadmin_headers,
            json={"emails": "new@stmungos.test"},
        )

        assert response.status_code == 200
        assert response.json() == {"id": group.id, "name": group.name, "emails": "new@stmungos.test"}

    @pytest.mark.asyncio
    async def test_update_group_admin_forbidden(self, client: AsyncClient, admin_headers, email_groups):
        response = await client.put(
            f'/api/email-groups/{email_groups[0].id}',
            headers=admin_headers,
            json={"emails": "new@stmungos.test"},
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_update_missing_group(self, client: AsyncClient, superadmin_headers):
        response = await client.put('/api/email-groups/999', headers=superadmin_headers, json={"emails": "x@y.test"})

        assert response.status_code == 404
        assert response.json()["error"] == "Group not found"

    @pytest.mark.asyncio
    async def test_update_group_id_beyond_64_bits(self, client: AsyncClient, superadmin_headers, email_groups):
        response = await client.put(
            f'/api/email-groups/{2**63}', headers=superadmin_headers, json={"emails": "x@y.test"}
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Group not found"

    @pytest.mark.asyncio
    async def test_update_group_without_token_is_401(self, client: AsyncClient, email_groups):
        response = await client.put(f'/api/email-groups/{email_groups[0].id}', json={"emails": "x@y.test"})

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHENTICATED"
        assert response.headers["WWW-Authenticate"] == "Bearer"


class TestStatsEndpoint:

    @pytest.mark.asyncio
    async def test_stats_are_public_and_minimal(self, client: AsyncClient):
        await client.post('/api/report', data=_report_form(type="theft", location="Lee High Road, Lewisham"))

        response = await client.get('/api/stats')

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"total", "byMonth", "trend", "recent"}
        assert len(data["byMonth"]) == 12
        assert data["recent"][0]["title"] == "Theft near Lee High Road"
        assert "description" not in data["recent"][0]
