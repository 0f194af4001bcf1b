import csv
import io
import unittest

from base import ApiTestCase

from willow.domain.inventory.service import stock_status


class TestStockStatus(unittest.TestCase):
    def test_thresholds(self):
        self.assertEqual(stock_status(0, 5), "out_of_stock")
        self.assertEqual(stock_status(5, 5), "low_stock")
        self.assertEqual(stock_status(6, 5), "in_stock")


class TestInventoryApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth_headers()

    def create_item(self, **overrides):
        payload = {"name": "All-Purpose Cleaner", "quantity": 12, "reorder_threshold": 4, "unit": "bottles"}
        payload.update(overrides)
        response = self.client.post("/admin/inventory", json=payload, headers=self.headers)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_create_sets_status(self):
        self.assertEqual(self.create_item()["status"], "in_stock")
        self.assertEqual(self.create_item(name="Microfiber Cloths", quantity=3)["status"], "low_stock")
        self.assertEqual(self.create_item(name="Mop Heads", quantity=0)["status"], "out_of_stock")

    def test_create_validation(self):
        for payload in (
            {"name": "Gloves", "category": "food"},
            {"name": "Gloves", "quantity": -1},
            {"name": "Gloves", "purchase_url": "javascript:alert(1)"},
        ):
            response = self.client.post("/admin/inventory", json=payload, headers=self.headers)
            self.assertEqual(response.status_code, 422, payload)

    def test_adjust_quantity_clamps_at_zero(self):
        item = self.create_item(quantity=5)
        used = self.client.patch(f"/admin/inventory/{item['id']}/quantity", json={"delta": -2}, headers=self.headers)
        self.assertEqual(used.json()["quantity"], 3)
        self.assertEqual(used.json()["status"], "low_stock")

        emptied = self.client.patch(
            f"/admin/inventory/{item['id']}/quantity", json={"delta": -10}, headers=self.headers
        )
        self.assertEqual(emptied.json()["quantity"], 0)
        self.assertEqual(emptied.json()["status"], "out_of_stock")

        restocked = self.client.patch(
            f"/admin/inventory/{item['id']}/quantity", json={"delta": 10}, headers=self.headers
        )
        self.assertEqual(restocked.json()["status"], "in_stock")

    def test_update_recomputes_status(self):
        item = self.create_item(quantity=6)
        response = self.client.patch(
            f"/admin/inventory/{item['id']}", json={"reorder_threshold": 8}, headers=self.headers
        )
        self.assertEqual(response.json()["status"], "low_stock")

    def test_update_ignores_null_for_required_fields(self):
        item = self.create_item(notes="Branch Basics concentrate")
        response = self.client.patch(
            f"/admin/inventory/{item['id']}", json={"name": None, "notes": None}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "All-Purpose Cleaner")
        self.assertIsNone(response.json()["notes"])

    def test_low_stock_list(self):
        self.create_item(name="Plenty", quantity=50)
        self.create_item(name="Empty", quantity=0)
        self.create_item(name="Running Low", quantity=2)
        names = [i["name"] for i in self.client.get("/admin/inventory/low-stock", headers=self.headers).json()]
        self.assertEqual(names, ["Empty", "Running Low"])

    def test_list_search_and_category(self):
        self.create_item(name="Vacuum", category="equipment")
        self.create_item(name="Glass Cleaner")
        equipment = self.client.get("/admin/inventory?category=equipment", headers=self.headers).json()
        self.assertEqual([i["name"] for i in equipment], ["Vacuum"])
        found = self.client.get("/admin/inventory?search=glass", headers=self.headers).json()
        self.assertEqual([i["name"] for i in found], ["Glass Cleaner"])

    def test_delete_and_missing(self):
        item = self.create_item()
        self.assertEqual(self.client.delete(f"/admin/inventory/{item['id']}", headers=self.headers).status_code, 200)
        self.assertEqual(self.client.get(f"/admin/inventory/{item['id']}", headers=self.headers).status_code, 404)

    def test_export_csv(self):
        self.create_item(cost_per_unit=4.5)
        response = self.client.get("/admin/inventory/export", headers=self.headers)
        self.assertIn("attachment; filename=inventory-", response.headers["content-disposition"])
        rows = list(csv.reader(io.StringIO(response.text)))
        self.assertEqual(rows[0][0], "Name")
        self.assertEqual(rows[1][0], "All-Purpose Cleaner")
        self.assertEqual(rows[1][6], "4.5")


if __name__ == "__main__":
    unittest.main()
