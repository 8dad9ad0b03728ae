import pytest
from pymongo.errors import DuplicateKeyError

from shared.repository import DocumentRepository


def register(user_api, email="ada@example.com", password="Secret123", user_type="CUSTOMER", **extra):
    body = {"email": email, "password": password, "userType": user_type, "firstName": "Ada", **extra}
    return user_api.post("/users", json=body)


def registered(user_api, **kwargs):
    response = register(user_api, **kwargs)
    assert response.status_code == 200
    return response.json()["data"]


RESTAURANT = {
    "restaurantName": "Curry Corner",
    "restaurantAddress": "12 Galle Road",
    "restaurantLicenseNumber": "LIC-42",
    "restaurantDocuments": [{"name": "license.pdf", "url": "https://docs.test/license.pdf"}],
}


class TestRegistration:
    def test_register(self, user_api):
        user = registered(user_api)

        assert user["id"]
        assert user["email"] == "ada@example.com"
        assert user["userType"] == "CUSTOMER"
        assert user["authProvider"] == "local"
        assert user["profileComplete"] is False
        assert "password" not in user
        assert "passwordHash" not in user

    def test_duplicate_email(self, user_api):
        registered(user_api)

        response = register(user_api)

        assert response.status_code == 409
        assert response.json()["detail"] == "Email already registered"

    @pytest.mark.parametrize("password", ["short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
    def test_weak_password(self, user_api, password):
        assert register(user_api, password=password).status_code == 422

    def test_concurrent_duplicate_registration(self, user_api, monkeypatch):
        async def duplicate(self, item):
            raise DuplicateKeyError("E11000 duplicate key error collection: users_db.users index: email_1")

        monkeypatch.setattr(DocumentRepository, "insert", duplicate)

        response = register(user_api)

        assert response.status_code == 409
        assert response.json()["detail"] == "Email already registered"

    def test_local_account_needs_password(self, user_api):
        assert register(user_api, password=None).status_code == 422

    def test_google_account_without_password(self, user_api):
        user = registered(user_api, password=None, authProvider="google", googleId="g-123")

        assert user["authProvider"] == "google"

    def test_invalid_email(self, user_api):
        assert register(user_api, email="not-an-email").status_code == 422


class TestAuthentication:
    def test_authenticate(self, user_api):
        user = registered(user_api)

        response = user_api.post("/users/authenticate", json={"email": "ada@example.com", "password": "Secret123"})

        assert response.status_code == 200
        assert response.json()["data"]["id"] == user["id"]

    @pytest.mark.parametrize("email,password", [
        ("ada@example.com", "Wrong1234"),
        ("nobody@example.com", "Secret123"),
    ])
    def test_bad_credentials(self, user_api, email, password):
        registered(user_api)

        response = user_api.post("/users/authenticate", json={"email": email, "password": password})

        assert response.status_code == 401

    def test_google_account_cannot_use_password_login(self, user_api):
        registered(user_api, password=None, authProvider="google")

        response = user_api.post("/users/authenticate", json={"email": "ada@example.com", "password": "Secret123"})

        assert response.status_code == 401


class TestProfiles:
    def test_lookup(self, user_api):
        user = registered(user_api)

        assert user_api.get(f"/users/{user['id']}").json()["data"]["email"] == "ada@example.com"
        assert user_api.get("/users/email/ada@example.com").json()["data"]["id"] == user["id"]
        assert user_api.get("/users/nope").status_code == 404
        assert user_api.get("/users/email/nobody@example.com").status_code == 404

    def test_list_by_type(self, user_api):
        registered(user_api, email="c@example.com", user_type="CUSTOMER")
        registered(user_api, email="d@example.com", user_type="DRIVER")

        drivers = user_api.get("/users", params={"userType": "DRIVER"}).json()["data"]

        assert [u["email"] for u in drivers] == ["d@example.com"]
        assert len(user_api.get("/users").json()["data"]) == 2

    def test_update(self, user_api):
        user = registered(user_api, user_type="PENDING")

        response = user_api.put(f"/users/{user['id']}", json={"userType": "DRIVER", "address": "<i>Colombo</i>"})

        updated = response.json()["data"]
        assert updated["userType"] == "DRIVER"
        assert updated["address"] == "&lt;i&gt;Colombo&lt;/i&gt;"
        assert updated["firstName"] == "Ada"

    def test_update_missing_user(self, user_api):
        assert user_api.put("/users/nope", json={"firstName": "X"}).status_code == 404

    def test_delete(self, user_api):
        user = registered(user_api)

        assert user_api.delete(f"/users/{user['id']}").status_code == 200
        assert user_api.get(f"/users/{user['id']}").status_code == 404
        assert user_api.delete(f"/users/{user['id']}").status_code == 404


class TestRestaurantOwners:
    def test_set_restaurant_profile(self, user_api):
        owner = registered(user_api, user_type="RESTAURANT_OWNER")

        response = user_api.put(f"/users/{owner['id']}/restaurant", json=RESTAURANT)

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["profileComplete"] is True
        assert data["restaurant"]["restaurantName"] == "Curry Corner"
        assert data["restaurant"]["restaurantDocuments"][0]["name"] == "license.pdf"

    def test_customer_cannot_have_restaurant(self, user_api):
        customer = registered(user_api, user_type="CUSTOMER")

        response = user_api.put(f"/users/{customer['id']}/restaurant", json=RESTAURANT)

        assert response.status_code == 409
        assert user_api.get(f"/users/{customer['id']}").json()["data"]["restaurant"] is None

    def test_missing_user(self, user_api):
        assert user_api.put("/users/nope/restaurant", json=RESTAURANT).status_code == 404
