"""
Crew, vehicle, instrument, expense and enquiry endpoint tests
"""
from datetime import date


class TestCrews:

    def test_password_never_serialized(self, client, factory, auth):
        crew = factory.crew(name="Sunil", username="sunil")

        assert "password" not in crew
        assert "passwordHash" not in crew
        fetched = client.get(f"/v1/crews/{crew['id']}", headers=auth).json()["data"]
        assert set(fetched) >= {"id", "name", "username", "isActive", "adminId", "createdAt", "updatedAt"}
        assert "passwordHash" not in fetched

    def test_username_unique_per_admin(self, client, factory, auth, make_admin):
        factory.crew(username="sunil")

        dup = client.post("/v1/crews", json={"name": "Other", "username": "sunil", "password": "secret1"}, headers=auth)
        assert dup.status_code == 409
        assert dup.json()["error"]["message"] == "Username already exists"

        other = make_admin()
        elsewhere = client.post("/v1/crews", json={"name": "Other", "username": "sunil", "password": "secret1"}, headers=other)
        assert elsewhere.status_code == 201

    def test_username_conflict_on_update(self, client, factory, auth):
        factory.crew(username="taken")
        crew = factory.crew(username="free")

        response = client.put(f"/v1/crews/{crew['id']}", json={"username": "taken"}, headers=auth)

        assert response.status_code == 409

    def test_password_change_is_hashed(self, client, factory, auth, db_session):
        from surveyhub.auth.security import verify_password
        from surveyhub.models.models import Crew

        crew = factory.crew()
        client.put(f"/v1/crews/{crew['id']}", json={"password": "n3w-password"}, headers=auth)

        row = db_session.query(Crew).filter(Crew.username == crew["username"]).one()
        assert row.password_hash != "n3w-password"
        assert verify_password("n3w-password", row.password_hash)

    def test_is_active_filter(self, client, factory, auth):
        factory.crew(isActive=True)
        factory.crew(isActive=False)

        body = client.get("/v1/crews?isActive=false", headers=auth).json()

        assert body["pagination"]["total"] == 1
        assert body["data"][0]["isActive"] is False

    def test_delete(self, client, factory, auth):
        crew = factory.crew()
        response = client.delete(f"/v1/crews/{crew['id']}", headers=auth)

        assert response.json()["message"] == "Crew member deleted successfully"


class TestVehicles:

    def test_registration_is_upper_cased(self, client, factory, auth):
        v = factory.vehicle(registrationNumber=" mh14 cd 0042 ")

        assert v["registrationNumber"] == "MH14 CD 0042"
        assert v["status"] == "active"

    def test_registration_unique_across_admins(self, client, factory, auth, make_admin):
        factory.vehicle(registrationNumber="MH12XY0001")
        other = make_admin()

        response = client.post("/v1/vehicles", json={
            "name": "Theirs", "type": "car", "registrationNumber": "mh12xy0001",
        }, headers=other)

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Registration number already exists"

    def test_year_range(self, client, auth):
        too_old = client.post("/v1/vehicles", json={
            "name": "Antique", "type": "car", "registrationNumber": "OLD1", "year": 1899,
        }, headers=auth)
        future = client.post("/v1/vehicles", json={
            "name": "Prototype", "type": "car", "registrationNumber": "NEW1", "year": date.today().year + 2,
        }, headers=auth)
        next_year = client.post("/v1/vehicles", json={
            "name": "Next model", "type": "car", "registrationNumber": "NEW2", "year": date.today().year + 1,
        }, headers=auth)

        assert too_old.status_code == 400
        assert "year" in too_old.json()["error"]["details"]["fields"]
        assert future.status_code == 400
        assert next_year.status_code == 201

    def test_unknown_type_rejected(self, client, auth):
        response = client.post("/v1/vehicles", json={
            "name": "Boat", "type": "boat", "registrationNumber": "B1",
        }, headers=auth)

        assert response.status_code == 400

    def test_filters(self, client, factory, auth):
        factory.vehicle(type="car")
        factory.vehicle(type="truck", status="maintenance")

        assert client.get("/v1/vehicles?type=car", headers=auth).json()["pagination"]["total"] == 1
        assert client.get("/v1/vehicles?status=maintenance", headers=auth).json()["pagination"]["total"] == 1

    def test_update_keeps_own_registration(self, client, factory, auth):
        v = factory.vehicle(registrationNumber="KEEP1")

        response = client.put(f"/v1/vehicles/{v['id']}", json={"registrationNumber": "keep1", "status": "inactive"}, headers=auth)

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "inactive"

    def test_delete_clears_site_reference(self, client, factory, auth):
        v = factory.vehicle()
        site = factory.site(vehicleId=v["id"])

        client.delete(f"/v1/vehicles/{v['id']}", headers=auth)

        assert client.get(f"/v1/sites/{site['id']}", headers=auth).json()["data"]["vehicleId"] is None


class TestInstruments:

    def test_serial_unique(self, client, factory, auth):
        factory.instrument(serialNumber="SN-42")

        response = client.post("/v1/instruments", json={"name": "Dup", "serialNumber": "SN-42"}, headers=auth)

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Serial number already exists"

    def test_status_values(self, client, factory, auth):
        inst = factory.instrument()

        ok = client.put(f"/v1/instruments/{inst['id']}", json={"status": "in-use"}, headers=auth)
        bad = client.put(f"/v1/instruments/{inst['id']}", json={"status": "borrowed"}, headers=auth)

        assert ok.status_code == 200
        assert bad.status_code == 400

    def test_search_by_serial(self, client, factory, auth):
        factory.instrument(serialNumber="LEICA-001")
        factory.instrument(serialNumber="TRIMBLE-002")

        body = client.get("/v1/instruments?search=leica", headers=auth).json()

        assert [i["serialNumber"] for i in body["data"]] == ["LEICA-001"]


class TestExpenses:

    def test_embeds_site_and_crew(self, client, factory, auth):
        site = factory.site(name="Wakad")
        crew = factory.crew(name="Mahesh")

        expense = factory.expense(siteId=site["id"], crewId=crew["id"], description="Diesel")

        assert expense["site"]["name"] == "Wakad"
        assert expense["crew"]["name"] == "Mahesh"
        assert expense["amount"] == 250

    def test_foreign_crew_rejected(self, client, auth, make_admin):
        other = make_admin()
        theirs = client.post("/v1/crews", json={"name": "X", "username": "x", "password": "secret1"}, headers=other).json()["data"]

        response = client.post("/v1/expenses", json={
            "type": "SALARY", "amount": 100, "expenseDate": "2024-03-01", "crewId": theirs["id"],
        }, headers=auth)

        assert response.status_code == 400
        assert "crewId" in response.json()["error"]["details"]["fields"]

    def test_filters_and_default_sort(self, client, factory, auth):
        factory.expense(type="FUEL", expenseDate="2024-01-05", description="petrol")
        factory.expense(type="FOOD", expenseDate="2024-03-05", description="lunch")
        factory.expense(type="FUEL", expenseDate="2024-02-05", description="diesel")

        everything = client.get("/v1/expenses", headers=auth).json()
        assert [e["expenseDate"] for e in everything["data"]] == ["2024-03-05", "2024-02-05", "2024-01-05"]

        fuel = client.get("/v1/expenses?type=FUEL", headers=auth).json()
        assert fuel["pagination"]["total"] == 2

        ranged = client.get("/v1/expenses?startDate=2024-02-01", headers=auth).json()
        assert ranged["pagination"]["total"] == 2

        searched = client.get("/v1/expenses?search=LUNCH", headers=auth).json()
        assert [e["description"] for e in searched["data"]] == ["lunch"]

    def test_negative_amount_rejected(self, client, auth):
        response = client.post("/v1/expenses", json={"type": "FUEL", "amount": -1, "expenseDate": "2024-03-01"}, headers=auth)

        assert response.status_code == 400


class TestEnquiries:

    def test_crud(self, client, auth):
        created = client.post("/v1/enquiries", json={"subject": "Plot survey", "message": "Need a quote"}, headers=auth)
        assert created.status_code == 201
        enquiry = created.json()["data"]
        assert enquiry["status"] == "new"

        updated = client.put(f"/v1/enquiries/{enquiry['id']}", json={
            "status": "in-progress", "followUpDate": "2024-04-01", "responseNotes": "Called back",
        }, headers=auth).json()["data"]
        assert updated["status"] == "in-progress"
        assert updated["followUpDate"] == "2024-04-01"
        assert updated["subject"] == "Plot survey"

        assert client.get("/v1/enquiries?status=in-progress", headers=auth).json()["pagination"]["total"] == 1
        assert client.get("/v1/enquiries?search=quote", headers=auth).json()["pagination"]["total"] == 1

        deleted = client.delete(f"/v1/enquiries/{enquiry['id']}", headers=auth)
        assert deleted.json()["message"] == "Enquiry deleted successfully"

    def test_subject_required(self, client, auth):
        response = client.post("/v1/enquiries", json={"message": "No subject"}, headers=auth)

        assert response.status_code == 400
        assert "subject" in response.json()["error"]["details"]["fields"]


class TestPlumbing:

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["success"] is True
        assert body["timestamp"]

    def test_unknown_route(self, client, auth):
        response = client.get("/v1/nowhere", headers=auth)

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": {"code": "NOT_FOUND", "message": "Route not found"}}

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"

    def test_request_id_generated(self, client):
        response = client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 36

    def test_sqlite_enforces_foreign_keys(self, db_session):
        from sqlalchemy import text

        assert db_session.execute(text("PRAGMA foreign_keys")).scalar() == 1
