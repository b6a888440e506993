"""GST draft preview, return generation, status tracking and transaction search."""
import uuid

import pytest

from erp.config import settings
from erp.services.gst_service import GSTReturnService


@pytest.fixture
async def november_sale(create_customer, create_item, checkout):
    """One B2B invoice on 2025-11-15: taxable 1000, tax 180."""
    customer = await create_customer()
    item = await create_item()
    response = await checkout(customer["id"], [(item["id"], 2)], issue_date="2025-11-15")
    assert response.status_code == 201, response.text
    return {"customer": customer, "item": item, "invoice": response.json()["data"]}


async def generate(client, period="2025-11", **extra):
    return await client.post("/api/v1/gst/generate", json={"period": period, **extra})


class TestDraftPreview:
    async def test_preview_buckets_by_treatment(self, client, november_sale):
        response = await client.get("/api/v1/gst/draft/preview", params={"period": "2025-11"})

        assert response.status_code == 200
        draft = response.json()["data"]
        assert draft["period"] == "2025-11"
        assert draft["periodStart"] == "2025-11-01"
        assert draft["periodEnd"] == "2025-11-30"
        assert draft["totals"]["taxableValue"] == 1000.0
        assert draft["totals"]["tax"] == 180.0
        assert draft["totals"]["grandTotal"] == 1180.0
        assert draft["totals"]["invoices"] == 1
        assert draft["sections"]["b2b"]["label"] == "B2B"
        assert draft["invoices"][0]["invoiceNumber"] == november_sale["invoice"]["invoice_number"]
        assert draft["invoices"][0]["customerGSTIN"] == "29ABCDE1234F1Z5"

    async def test_preview_of_empty_period(self, client, november_sale):
        response = await client.get("/api/v1/gst/draft/preview", params={"period": "2025-10"})

        assert response.status_code == 200
        draft = response.json()["data"]
        assert draft["sections"] == {}
        assert draft["totals"]["invoices"] == 0

    async def test_preview_rejects_bad_period(self, client):
        response = await client.get("/api/v1/gst/draft/preview", params={"period": "2025-13"})

        assert response.status_code == 400
        assert response.json()["message"] == "Period must be in YYYY-MM format"

    async def test_cancelled_invoices_are_left_out(self, client, november_sale, checkout):
        extra = await checkout(
            november_sale["customer"]["id"], [(november_sale["item"]["id"], 1)], issue_date="2025-11-20"
        )
        invoice_id = extra.json()["data"]["id"]
        await client.patch(f"/api/v1/invoices/{invoice_id}/status", json={"status": "Cancelled"})

        response = await client.get("/api/v1/gst/draft/preview", params={"period": "2025-11"})

        assert response.json()["data"]["totals"]["invoices"] == 1


class TestGenerateReturn:
    async def test_generate_stores_period_totals(self, client, november_sale):
        response = await generate(client)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "GST summary prepared"
        gst_return = body["data"]
        assert gst_return["return_type"] == "GSTR1"
        assert gst_return["status"] == "draft"
        assert gst_return["total_taxable_value"] == 1000.0
        assert gst_return["total_tax"] == 180.0
        assert gst_return["gross_turnover"] == 1180.0
        assert gst_return["total_invoices"] == 1
        assert gst_return["outstanding_tax_liability"] == 180.0
        assert gst_return["summary_breakup"]["invoices"]["b2b"]["count"] == 1

    async def test_regenerate_updates_the_same_return(self, client, november_sale, checkout):
        first = (await generate(client)).json()["data"]
        await checkout(
            november_sale["customer"]["id"], [(november_sale["item"]["id"], 1)], issue_date="2025-11-20"
        )

        second = (await generate(client)).json()["data"]

        assert second["id"] == first["id"]
        assert second["total_invoices"] == 2
        assert second["total_taxable_value"] == 1500.0

        listing = (await client.get("/api/v1/gst")).json()["data"]
        assert listing["total"] == 1

    async def test_regenerate_without_changes_is_identical(self, client, november_sale):
        first = (await generate(client)).json()["data"]

        second = (await generate(client)).json()["data"]

        for field in (
            "id", "period", "period_start", "period_end", "return_type", "status",
            "total_taxable_value", "total_tax", "total_cess", "gross_turnover",
            "payments_received", "outstanding_tax_liability", "total_invoices",
            "total_transactions", "summary_breakup", "created_at",
        ):
            assert second[field] == first[field], field

        listing = (await client.get("/api/v1/gst")).json()["data"]
        assert [r["id"] for r in listing["data"]] == [first["id"]]
        assert listing["total"] == 1
        assert listing["page"] == 1
        assert listing["data"][0]["organization_id"] == first["organization_id"]

    async def test_return_types_are_stored_separately(self, client, november_sale):
        gstr1 = (await generate(client)).json()["data"]
        gstr3b = (await generate(client, returnType="gstr3b")).json()["data"]

        assert gstr3b["return_type"] == "GSTR3B"
        assert gstr3b["id"] != gstr1["id"]

    async def test_regenerate_keeps_status(self, client, november_sale):
        gst_return = (await generate(client)).json()["data"]
        await client.patch(f"/api/v1/gst/{gst_return['id']}", json={"status": "filed"})

        regenerated = (await generate(client)).json()["data"]

        assert regenerated["status"] == "filed"

    async def test_collections_come_from_payments(self, client, november_sale):
        await client.post("/api/v1/payments", json={
            "invoice_id": november_sale["invoice"]["id"],
            "amount_received": "500.00",
        })

        gst_return = (await generate(client)).json()["data"]

        assert gst_return["payments_received"] == 500.0
        assert gst_return["total_transactions"] == 1
        assert gst_return["summary_breakup"]["collections"]["received"] == 500.0

    async def test_generate_rejects_bad_period(self, client):
        response = await generate(client, period="Nov 2025")
        assert response.status_code == 400

    async def test_generate_requires_token(self, client):
        response = await client.post(
            "/api/v1/gst/generate", json={"period": "2025-11"}, headers={"Authorization": ""}
        )
        assert response.status_code == 401


class TestReturnStatus:
    async def test_filing_stamps_filed_at(self, client, november_sale):
        gst_return = (await generate(client)).json()["data"]

        response = await client.patch(
            f"/api/v1/gst/{gst_return['id']}",
            json={"status": "filed", "referenceNumber": "AA2911250012345", "notes": "Filed on portal"},
        )

        assert response.status_code == 200
        updated = response.json()["data"]
        assert updated["status"] == "filed"
        assert updated["filed_at"] is not None
        assert updated["reference_number"] == "AA2911250012345"
        assert updated["notes"] == "Filed on portal"
        assert updated["outstanding_tax_liability"] == 180.0

    async def test_paid_clears_outstanding_liability(self, client, november_sale):
        gst_return = (await generate(client)).json()["data"]

        updated = (await client.patch(
            f"/api/v1/gst/{gst_return['id']}", json={"status": "paid"}
        )).json()["data"]

        assert updated["outstanding_tax_liability"] == 0.0

    async def test_status_can_move_back_by_default(self, client, november_sale):
        gst_return = (await generate(client)).json()["data"]
        await client.patch(f"/api/v1/gst/{gst_return['id']}", json={"status": "filed"})

        response = await client.patch(f"/api/v1/gst/{gst_return['id']}", json={"status": "draft"})

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "draft"

    async def test_forward_only_rejects_moving_back(self, client, november_sale, monkeypatch):
        monkeypatch.setattr(settings, "GST_ENFORCE_FORWARD_TRANSITIONS", True)
        gst_return = (await generate(client)).json()["data"]
        await client.patch(f"/api/v1/gst/{gst_return['id']}", json={"status": "filed"})

        response = await client.patch(f"/api/v1/gst/{gst_return['id']}", json={"status": "submitted"})

        assert response.status_code == 400
        assert response.json()["data"] is None

    async def test_unknown_status_is_rejected(self, client, november_sale):
        gst_return = (await generate(client)).json()["data"]

        response = await client.patch(f"/api/v1/gst/{gst_return['id']}", json={"status": "approved"})

        assert response.status_code == 400

    async def test_unknown_return_is_404(self, client):
        response = await client.patch(f"/api/v1/gst/{uuid.uuid4()}", json={"status": "filed"})

        assert response.status_code == 404
        assert response.json()["message"] == "GST return not found"

    async def test_other_organization_cannot_see_return(self, client, november_sale, other_org_headers):
        gst_return = (await generate(client)).json()["data"]

        response = await client.get(f"/api/v1/gst/{gst_return['id']}", headers=other_org_headers)
        assert response.status_code == 404

        listing = (await client.get("/api/v1/gst", headers=other_org_headers)).json()["data"]
        assert listing["total"] == 0


class TestTransactions:
    @pytest.fixture
    async def mixed_sales(self, november_sale, create_customer, checkout, client):
        walk_in = await create_customer(name="Walk-in Buyer", gstin=None)
        b2c = await checkout(walk_in["id"], [(november_sale["item"]["id"], 1)], issue_date="2025-11-18")
        cancelled = await checkout(walk_in["id"], [(november_sale["item"]["id"], 1)], issue_date="2025-11-19")
        await client.patch(
            f"/api/v1/invoices/{cancelled.json()['data']['id']}/status", json={"status": "Cancelled"}
        )
        return {"b2c": b2c.json()["data"], "cancelled": cancelled.json()["data"]}

    async def test_all_invoices_of_period(self, client, mixed_sales):
        data = (await client.get("/api/v1/gst/transactions", params={"period": "2025-11"})).json()["data"]

        assert data["count"] == 3
        assert data["limit"] == 50

    async def test_filter_by_treatment(self, client, mixed_sales):
        data = (await client.get(
            "/api/v1/gst/transactions", params={"period": "2025-11", "treatment": "b2c", "status": "Sent"}
        )).json()["data"]

        assert data["count"] == 1
        assert data["items"][0]["invoiceNumber"] == mixed_sales["b2c"]["invoice_number"]
        assert data["items"][0]["customerGSTIN"] == "N/A"

    async def test_filter_by_status(self, client, mixed_sales):
        data = (await client.get(
            "/api/v1/gst/transactions", params={"period": "2025-11", "status": "cancelled", "treatment": "all"}
        )).json()["data"]

        assert [i["invoiceNumber"] for i in data["items"]] == [mixed_sales["cancelled"]["invoice_number"]]

    async def test_free_text_search(self, client, mixed_sales):
        data = (await client.get(
            "/api/v1/gst/transactions", params={"period": "2025-11", "q": "walk-in"}
        )).json()["data"]

        assert data["count"] == 2

    async def test_limit_is_clamped(self, client, mixed_sales):
        data = (await client.get(
            "/api/v1/gst/transactions", params={"period": "2025-11", "limit": 1000}
        )).json()["data"]
        assert data["limit"] == 500

        data = (await client.get(
            "/api/v1/gst/transactions", params={"period": "2025-11", "limit": 1}
        )).json()["data"]
        assert data["count"] == 1

    async def test_invalid_treatment(self, client, mixed_sales):
        response = await client.get(
            "/api/v1/gst/transactions", params={"period": "2025-11", "treatment": "import"}
        )
        assert response.status_code == 400


class TestConflictingGenerate:
    async def test_insert_conflict_updates_stored_return(self, db, monkeypatch):
        service = GSTReturnService(db, uuid.uuid4())
        first_user, second_user = uuid.uuid4(), uuid.uuid4()
        stored = await service.generate_return("2025-11", user_id=first_user)
        await db.commit()

        # The first lookup misses the stored return, as if another request had not committed yet
        get_return_by_key = service.get_return_by_key
        lookups = []

        async def stale_lookup(period, return_type):
            lookups.append(period)
            if len(lookups) == 1:
                return None
            return await get_return_by_key(period, return_type)

        monkeypatch.setattr(service, "get_return_by_key", stale_lookup)

        regenerated = await service.generate_return("2025-11", user_id=second_user)
        await db.commit()

        assert regenerated.id == stored.id
        assert regenerated.generated_by == second_user
        assert regenerated.status == "draft"
        returns, total = await service.list_returns()
        assert total == 1
        assert [r.id for r in returns] == [stored.id]
