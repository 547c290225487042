import requests

from marketplace.api.deps import get_auth_client


class DownAuthClient:
    def fetch_user(self, access_token):
        raise requests.ConnectionError("auth provider down")


def test_requires_authentication(client):
    resp = client.post("/carts/items", json={"item_id": 1})

    assert resp.status_code == 401
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "NOT_AUTHENTICATED"


def test_unknown_token_is_anonymous(client, auth):
    resp = client.get("/carts/my", headers=auth("token-nobody"))

    assert resp.status_code == 401


def test_auth_provider_outage(app, client, auth):
    app.dependency_overrides[get_auth_client] = lambda: DownAuthClient()

    resp = client.get("/carts/my", headers=auth("token-buyer"))

    assert resp.status_code == 503
    assert resp.json()["code"] == "AUTH_UNAVAILABLE"


def test_invalid_payload(client, auth):
    resp = client.post("/carts/items", json={"item_id": 0}, headers=auth("token-buyer"))

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "VALIDATION_FAILED"
    assert body["details"]


def test_reservation_flow(client, auth, make_item):
    item = make_item(price="19.99")

    added = client.post("/carts/items", json={"item_id": item.id}, headers=auth("token-buyer"))
    assert added.status_code == 201
    body = added.json()
    assert body["success"] is True
    assert body["cart_item"]["status"] == "ACTIVE"
    assert body["cart_item"]["extensions_left"] == 2
    cart_item_id = body["cart_item"]["id"]

    taken = client.post("/carts/items", json={"item_id": item.id}, headers=auth("token-buyer-2"))
    assert taken.status_code == 409
    assert taken.json()["code"] == "ALREADY_RESERVED"

    extended = client.post(f"/carts/items/{cart_item_id}/extend", headers=auth("token-buyer"))
    assert extended.status_code == 200
    assert extended.json()["reservation_count"] == 2
    assert extended.json()["remaining_extensions"] == 1

    cart = client.get("/carts/my", headers=auth("token-buyer")).json()["cart"]
    assert cart["total_items"] == 1
    assert cart["has_expired_items"] is False

    validation = client.post("/carts/validate", headers=auth("token-buyer")).json()
    assert validation["valid"] is True
    assert validation["valid_items"] == 1

    removed = client.delete(f"/carts/items/{cart_item_id}", headers=auth("token-buyer"))
    assert removed.status_code == 200
    assert removed.json()["success"] is True

    cart = client.get("/carts/my", headers=auth("token-buyer")).json()["cart"]
    assert cart["total_items"] == 0


def test_empty_cart(client, auth):
    body = client.get("/carts/my", headers=auth("token-buyer")).json()

    assert body["success"] is True
    assert body["cart"] is None
    assert body["message"] == "No cart found"


def test_cannot_touch_foreign_reservation(client, auth, make_item):
    item = make_item()
    added = client.post("/carts/items", json={"item_id": item.id}, headers=auth("token-buyer")).json()

    resp = client.delete(f"/carts/items/{added['cart_item']['id']}", headers=auth("token-buyer-2"))

    assert resp.status_code == 403
    assert resp.json()["code"] == "NOT_OWNER"


def test_own_item(client, auth, make_item):
    item = make_item(owner_id="buyer-1")

    resp = client.post("/carts/items", json={"item_id": item.id}, headers=auth("token-buyer"))

    assert resp.status_code == 400
    assert resp.json()["code"] == "OWN_ITEM"


def test_missing_item(client, auth):
    resp = client.post("/carts/items", json={"item_id": 12345}, headers=auth("token-buyer"))

    assert resp.status_code == 404
    assert resp.json()["code"] == "ITEM_NOT_FOUND"
