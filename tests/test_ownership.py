"""
Tenant isolation: one admin can never see or touch another admin's documents
"""
import uuid

import pytest

from surveyhub.errors import ValidationFailed
from surveyhub.models.models import Admin, Client, Instrument
from surveyhub.services.ownership import (
    QUERY_SPECS,
    ListParams,
    OwnedRepository,
    require_owned,
    validate_query_specs,
)


RESOURCES = ["clients", "sites", "crews", "vehicles", "instruments", "bills", "expenses"]


@pytest.fixture
def two_tenants(client, make_admin, factory_for):
    first = make_admin()
    second = make_admin()
    f = factory_for(first)
    c = f.client_()
    s = f.site(clientId=c["id"])
    docs = {
        "clients": c,
        "sites": s,
        "crews": f.crew(),
        "vehicles": f.vehicle(),
        "instruments": f.instrument(),
        "bills": f.bill(c["id"], [s]),
        "expenses": f.expense(siteId=s["id"]),
    }
    enquiry = client.post("/v1/enquiries", json={"subject": "S", "message": "M"}, headers=first).json()["data"]
    docs["enquiries"] = enquiry
    return first, second, docs


class TestIsolation:

    @pytest.mark.parametrize("resource", RESOURCES + ["enquiries"])
    def test_other_admin_gets_not_found(self, client, two_tenants, resource):
        first, second, docs = two_tenants
        doc_id = docs[resource]["id"]

        assert client.get(f"/v1/{resource}/{doc_id}", headers=second).status_code == 404
        assert client.put(f"/v1/{resource}/{doc_id}", json={}, headers=second).status_code == 404
        assert client.delete(f"/v1/{resource}/{doc_id}", headers=second).status_code == 404
        # Still there for the owner
        assert client.get(f"/v1/{resource}/{doc_id}", headers=first).status_code == 200

    @pytest.mark.parametrize("resource", RESOURCES + ["enquiries"])
    def test_lists_are_partitioned(self, client, two_tenants, resource):
        first, second, docs = two_tenants

        theirs = client.get(f"/v1/{resource}", headers=second).json()
        mine = client.get(f"/v1/{resource}", headers=first).json()

        assert theirs["data"] == []
        assert theirs["pagination"]["total"] == 0
        assert mine["pagination"]["total"] >= 1

    def test_dashboard_is_partitioned(self, client, two_tenants):
        first, second, docs = two_tenants

        chart = client.get("/v1/dashboard/revenue-chart?period=all", headers=second).json()["data"]
        assert chart["data"] == []
        assert client.get("/v1/dashboard/top-clients", headers=second).json()["data"] == []

    def test_bill_number_suggestion_is_per_admin(self, client, two_tenants):
        first, second, docs = two_tenants

        assert client.get("/v1/bills/next-number", headers=second).json()["data"]["nextBillNumber"] == "1"


def _admin(db_session, email):
    admin = Admin(name=email, email=email, password_hash="x")
    db_session.add(admin)
    db_session.commit()
    return admin


class TestRepository:

    def test_create_pins_admin(self, db_session):
        a = _admin(db_session, "a@example.com")
        b = _admin(db_session, "b@example.com")
        repo = OwnedRepository(db_session, a.id, Client)

        row = repo.create(name="Mine", admin_id=b.id)
        db_session.commit()

        assert row.admin_id == a.id
        assert OwnedRepository(db_session, b.id, Client).get(row.id) is None

    def test_require_owned(self, db_session):
        a = _admin(db_session, "a@example.com")
        b = _admin(db_session, "b@example.com")
        inst = Instrument(admin_id=b.id, name="Level", serial_number="LV-1")
        db_session.add(inst)
        db_session.commit()

        require_owned(db_session, b.id, Instrument, [inst.id], "instrumentIds")
        with pytest.raises(ValidationFailed) as exc:
            require_owned(db_session, a.id, Instrument, [inst.id], "instrumentIds")
        assert "instrumentIds" in exc.value.details["fields"]

    def test_list_total_counts_before_slicing(self, db_session):
        a = _admin(db_session, "a@example.com")
        repo = OwnedRepository(db_session, a.id, Client)
        for n in range(5):
            repo.create(name=f"Client {n}")
        db_session.commit()

        items, total = repo.list(ListParams(page=2, limit=2, sort_by="name", sort_order="asc"))

        assert total == 5
        assert [c.name for c in items] == ["Client 2", "Client 3"]

    def test_unknown_filter_rejected(self, db_session):
        a = _admin(db_session, "a@example.com")
        repo = OwnedRepository(db_session, a.id, Client)

        with pytest.raises(ValidationFailed):
            repo.list(ListParams(filters={"admin_id": uuid.uuid4()}))


class TestQuerySpecs:

    def test_specs_match_models(self):
        validate_query_specs()

    def test_sort_accepts_wire_and_attribute_names(self):
        spec = QUERY_SPECS[Client]

        assert spec.sort_column(None) == "created_at"
        assert spec.sort_column("createdAt") == "created_at"
        assert spec.sort_column("created_at") == "created_at"
        with pytest.raises(ValidationFailed):
            spec.sort_column("email")

    def test_list_params_clamp(self):
        params = ListParams(page=-3, limit=0)

        assert params.page == 1
        assert params.limit == 10
        assert ListParams(limit=1000).limit == 100

    def test_bad_sort_order(self):
        with pytest.raises(ValidationFailed):
            ListParams(sort_order="sideways")

    def test_year_window(self):
        from datetime import date

        params = ListParams(year=2023, start_date=date(2020, 1, 1))

        assert params.date_window() == (date(2023, 1, 1), date(2023, 12, 31))
