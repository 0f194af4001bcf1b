import unittest
from datetime import timedelta

from base import ApiTestCase

from willow.security_utils import create_jwt_token, hash_password, verify_jwt_token, verify_password


class TestSecurityUtils(unittest.TestCase):
    def test_password_hashing(self):
        hashed = hash_password("correct-horse-battery")
        self.assertNotEqual(hashed, "correct-horse-battery")
        self.assertTrue(verify_password("correct-horse-battery", hashed))
        self.assertFalse(verify_password("wrong", hashed))

    def test_jwt_round_trip_and_expiry(self):
        token = create_jwt_token({"sub": "1", "type": "admin"})
        self.assertEqual(verify_jwt_token(token)["sub"], "1")
        expired = create_jwt_token({"sub": "1"}, expires_delta=timedelta(seconds=-10))
        self.assertIsNone(verify_jwt_token(expired))
        self.assertIsNone(verify_jwt_token("not-a-token"))


class TestAuthApi(ApiTestCase):
    def test_login_and_me(self):
        self.create_admin()
        response = self.client.post(
            "/auth/login", json={"email": "Owner@WillowAndWater.com", "password": "correct-horse-battery"}
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["token_type"], "bearer")
        self.assertEqual(data["admin"]["role"], "owner")

        me = self.client.get("/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["email"], "owner@willowandwater.com")

    def test_login_failures(self):
        admin = self.create_admin()
        wrong = self.client.post(
            "/auth/login", json={"email": "owner@willowandwater.com", "password": "nope-nope-nope"}
        )
        self.assertEqual(wrong.status_code, 401)
        unknown = self.client.post(
            "/auth/login", json={"email": "nobody@willowandwater.com", "password": "correct-horse-battery"}
        )
        self.assertEqual(unknown.status_code, 401)

        admin.is_active = False
        self.db.commit()
        inactive = self.client.post(
            "/auth/login", json={"email": "owner@willowandwater.com", "password": "correct-horse-battery"}
        )
        self.assertEqual(inactive.status_code, 401)

    def test_rejects_bad_tokens(self):
        admin = self.create_admin()
        self.assertEqual(
            self.client.get("/admin/cleaners", headers={"Authorization": "Bearer garbage"}).status_code, 401
        )
        wrong_type = create_jwt_token({"sub": str(admin.id), "type": "customer"})
        self.assertEqual(
            self.client.get("/admin/cleaners", headers={"Authorization": f"Bearer {wrong_type}"}).status_code,
            401,
        )
        ghost = create_jwt_token({"sub": "999", "type": "admin"})
        self.assertEqual(
            self.client.get("/admin/cleaners", headers={"Authorization": f"Bearer {ghost}"}).status_code, 401
        )


if __name__ == "__main__":
    unittest.main()
