"""Customers, items, stock adjustments, employees, authentication and the envelope."""
import uuid
from datetime import date, timedelta

from erp.core.security import create_access_token
from erp.models.hr import Employee
from erp.services.numbering import next_document_number


class TestEnvelope:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "connected"

    async def test_missing_token(self, client):
        response = await client.get("/api/v1/customers", headers={"Authorization": ""})

        assert response.status_code == 401
        assert response.json() == {"statusCode": 401, "data": None, "message": "Could not validate credentials"}

    async def test_expired_token(self, client):
        token = create_access_token(uuid.uuid4(), uuid.uuid4(), expires_delta=timedelta(minutes=-5))

        response = await client.get("/api/v1/customers", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    async def test_non_string_organization_claim(self, client):
        token = create_access_token(uuid.uuid4(), uuid.uuid4(), additional_claims={"organization_id": 12345})

        response = await client.get("/api/v1/customers", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "Could not validate credentials"

    async def test_object_organization_claim(self, client):
        token = create_access_token(uuid.uuid4(), uuid.uuid4(), additional_claims={"organization_id": {"id": 1}})

        response = await client.get("/api/v1/customers", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    async def test_validation_error_shape(self, client):
        response = await client.post("/api/v1/customers", json={"name": ""})

        assert response.status_code == 422
        body = response.json()
        assert body["statusCode"] == 422
        assert body["data"] is None
        assert body["message"].startswith("Invalid name:")
        assert body["errors"][0]["field"] == "name"


class TestCustomers:
    async def test_create_and_fetch(self, client, create_customer):
        customer = await create_customer(gstin=" 29abcde1234f1z5 ", email="asha@ashatraders.in")

        assert customer["gstin"] == "29ABCDE1234F1Z5"
        response = await client.get(f"/api/v1/customers/{customer['id']}")
        assert response.json()["message"] == "Customer fetched"
        assert response.json()["data"]["email"] == "asha@ashatraders.in"

    async def test_unknown_fields_are_ignored(self, client):
        response = await client.post("/api/v1/customers", json={"name": "Asha Traders", "legacy_code": "C-17"})

        assert response.status_code == 201
        assert "legacy_code" not in response.json()["data"]

        customer_id = response.json()["data"]["id"]
        response = await client.put(f"/api/v1/customers/{customer_id}", json={"state": "Karnataka", "legacy_code": "C-18"})
        assert response.status_code == 200
        assert response.json()["data"]["state"] == "Karnataka"

    async def test_duplicate_email(self, client, create_customer):
        await create_customer(email="asha@ashatraders.in")

        response = await client.post("/api/v1/customers", json={"name": "Other", "email": "asha@ashatraders.in"})

        assert response.status_code == 409

    async def test_search_and_update(self, client, create_customer):
        customer = await create_customer()
        await create_customer(name="Bharat Stores", gstin=None)

        listing = (await client.get("/api/v1/customers", params={"q": "asha"})).json()["data"]
        assert listing["total"] == 1

        response = await client.put(f"/api/v1/customers/{customer['id']}", json={"phone": "9876543210"})
        assert response.json()["data"]["phone"] == "9876543210"
        assert response.json()["data"]["name"] == "Asha Traders"

    async def test_delete_deactivates(self, client, create_customer):
        customer = await create_customer()

        response = await client.delete(f"/api/v1/customers/{customer['id']}")

        assert response.status_code == 200
        assert (await client.get("/api/v1/customers")).json()["data"]["total"] == 0
        inactive = (await client.get("/api/v1/customers", params={"is_active": False})).json()["data"]
        assert inactive["total"] == 1

    async def test_other_organization_is_isolated(self, client, create_customer, other_org_headers):
        customer = await create_customer()

        response = await client.get(f"/api/v1/customers/{customer['id']}", headers=other_org_headers)

        assert response.status_code == 404


class TestItemsAndStock:
    async def test_opening_stock_is_logged(self, client, create_item):
        item = await create_item()

        assert item["stock_quantity"] == 10
        movements = (await client.get(
            "/api/v1/inventory/movements", params={"item_id": item["id"]}
        )).json()["data"]
        assert movements["total"] == 1
        assert movements["items"][0]["reason"] == "purchase"
        assert movements["items"][0]["balance_after"] == 10

    async def test_services_have_no_stock(self, client, create_item):
        service = await create_item(name="Repair", item_type="service", stock_quantity=5)

        assert service["stock_quantity"] is None
        response = await client.post("/api/v1/inventory/adjust", json={"item_id": service["id"], "quantity_change": 1})
        assert response.status_code == 400

    async def test_adjust_stock(self, client, create_item):
        item = await create_item()

        response = await client.post("/api/v1/inventory/adjust", json={
            "item_id": item["id"], "quantity_change": -4, "reason": "damage", "reference": "Breakage",
        })

        assert response.status_code == 201
        assert response.json()["data"]["movement"]["balance_after"] == 6
        assert response.json()["data"]["item"]["stock_quantity"] == 6

    async def test_stock_never_goes_negative(self, client, create_item):
        item = await create_item()

        response = await client.post("/api/v1/inventory/adjust", json={"item_id": item["id"], "quantity_change": -11})

        assert response.status_code == 400
        assert (await client.get(f"/api/v1/items/{item['id']}")).json()["data"]["stock_quantity"] == 10

    async def test_zero_adjustment(self, client, create_item):
        item = await create_item()

        response = await client.post("/api/v1/inventory/adjust", json={"item_id": item["id"], "quantity_change": 0})

        assert response.status_code == 400

    async def test_update_and_delete_item(self, client, create_item):
        item = await create_item()

        updated = (await client.put(f"/api/v1/items/{item['id']}", json={"unit_price": "550"})).json()["data"]
        assert updated["unit_price"] == 550.0

        assert (await client.delete(f"/api/v1/items/{item['id']}")).status_code == 200
        assert (await client.get(f"/api/v1/items/{item['id']}")).status_code == 404

    async def test_filter_by_type(self, client, create_item):
        await create_item()
        await create_item(name="Repair", item_type="service", stock_quantity=None)

        listing = (await client.get("/api/v1/items", params={"item_type": "service"})).json()["data"]

        assert [i["name"] for i in listing["items"]] == ["Repair"]


class TestEmployees:
    async def test_codes_are_sequential(self, create_employee):
        first = await create_employee()
        second = await create_employee(full_name="Meena Iyer")

        assert first["employee_code"] == "EMP-0001"
        assert second["employee_code"] == "EMP-0002"
        assert first["status"] == "active"

    async def test_code_after_padding_overflow(self, db):
        org_id = uuid.uuid4()
        db.add_all([
            Employee(
                organization_id=org_id, employee_code=code, full_name=f"Staff {code}",
                role_title="Cashier", joining_date=date(2024, 4, 1),
            )
            for code in ("EMP-9998", "EMP-9999", "EMP-10000")
        ])
        await db.commit()

        code = await next_document_number(db, Employee, "employee_code", org_id, "EMP", 4)

        assert code == "EMP-10001"

    async def test_filters(self, client, create_employee):
        await create_employee()
        await create_employee(full_name="Meena Iyer", role_title="Accountant", status="Probation")

        by_status = (await client.get("/api/v1/employees", params={"status": "probation"})).json()["data"]
        assert [e["full_name"] for e in by_status["items"]] == ["Meena Iyer"]

        by_role = (await client.get("/api/v1/employees", params={"role": "cash"})).json()["data"]
        assert [e["full_name"] for e in by_role["items"]] == ["Ravi Kumar"]

    async def test_update(self, client, create_employee):
        employee = await create_employee()

        response = await client.put(f"/api/v1/employees/{employee['id']}", json={"status": "inactive", "salary": "25000"})

        assert response.json()["data"]["status"] == "inactive"
        assert response.json()["data"]["salary"] == 25000.0

    async def test_delete_removes_attendance(self, client, create_employee):
        employee = await create_employee()
        await client.post("/api/v1/attendance", json={"records": [
            {"employeeId": employee["id"], "date": "2025-11-03", "status": "present"},
        ]})

        response = await client.delete(f"/api/v1/employees/{employee['id']}")

        assert response.status_code == 200
        assert (await client.get("/api/v1/attendance")).json()["data"] == []
        assert (await client.get(f"/api/v1/employees/{employee['id']}")).status_code == 404
