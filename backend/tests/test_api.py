import app as app_module
from home254.llm import RefinementUnavailable
from home254.models import ListingFilter


class StubRefiner:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def refine(self, message, coarse):
        self.calls.append((message, coarse))
        if self.error is not None:
            raise self.error
        return self.result if self.result is not None else coarse


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["listings"] == 4


def test_list_and_get_properties(client):
    body = client.get("/api/properties").json()
    assert body["success"] is True
    assert body["count"] == 4
    assert body["data"][0]["id"] == "d"
    assert body["data"][0]["propertyType"] == "rent"

    one = client.get("/api/properties/b").json()
    assert one["data"]["location"] == {
        "county": "Kiambu", "town": "Kiambu", "coordinates": {"lat": -1.1714, "lng": 36.8356},
    }
    assert one["data"]["specs"]["parkingSpaces"] == 3
    assert one["data"]["specs"]["isFurnished"] is True

    assert client.get("/api/properties/zzz").status_code == 404


def test_search_properties_query_params(client):
    body = client.get("/api/properties/search", params={"propertyType": "sale", "price": 2000000}).json()
    assert [p["id"] for p in body["data"]] == ["c"]

    body = client.get("/api/properties/search", params={"bedrooms": 4, "isFurnished": "true"}).json()
    assert [p["id"] for p in body["data"]] == ["b"]

    assert client.get("/api/properties/search", params={"category": "castle"}).status_code == 422


def test_search_specs_are_exact_matches(client):
    def ids(**params):
        return [p["id"] for p in client.get("/api/properties/search", params=params).json()["data"]]

    # 3 bedrooms means exactly 3, the 4 bedroom bungalow is left out
    assert ids(bedrooms=3) == ["a"]
    assert ids(kitchens=1) == ["b", "a"]
    assert ids(kitchens=1, parkingSpaces=3) == ["b"]
    assert ids(livingRooms=2) == []
    assert client.get("/api/properties/search", params={"upperFloors": -1}).status_code == 422


def test_admin_routes_require_token(client):
    payload = {"title": "Plot", "price": 100, "propertyType": "sale", "category": "land",
               "location": {"county": "Kajiado"}}
    assert client.post("/api/properties", json=payload).status_code == 401
    assert client.post("/api/properties", json=payload,
                       headers={"Authorization": "Bearer wrong"}).status_code == 401


def test_admin_token_not_configured(client, auth, monkeypatch):
    monkeypatch.delenv("ADMIN_API_TOKEN")
    assert client.delete("/api/properties/a", headers=auth).status_code == 503


def test_create_update_delete_property(client, auth):
    payload = {
        "title": "Ruaka 2 Bedroom", "price": 3800000, "propertyType": "sale", "category": "apartment",
        "location": {"county": "Kiambu", "town": "Ruaka"}, "specs": {"bedrooms": 2},
        "images": ["http://img/r1.jpg"],
    }
    created = client.post("/api/properties", json=payload, headers=auth)
    assert created.status_code == 201
    new_id = created.json()["data"]["id"]

    updated = client.put(f"/api/properties/{new_id}", json={"price": 3500000}, headers=auth)
    assert updated.status_code == 200
    assert updated.json()["data"]["price"] == 3500000
    assert updated.json()["data"]["title"] == "Ruaka 2 Bedroom"

    deleted = client.delete(f"/api/properties/{new_id}", headers=auth)
    assert deleted.json() == {"success": True, "data": {}}
    assert client.get(f"/api/properties/{new_id}").status_code == 404
    assert client.put(f"/api/properties/{new_id}", json={"price": 1}, headers=auth).status_code == 404


def test_update_replaces_whole_specs_block(client, auth):
    # specs is one field, anything not resent goes back to its default
    response = client.put("/api/properties/b", json={"specs": {"bedrooms": 5}}, headers=auth)
    assert response.status_code == 200
    specs = response.json()["data"]["specs"]
    assert specs["bedrooms"] == 5
    assert specs["bathrooms"] is None
    assert specs["isFurnished"] is False
    assert client.get("/api/properties/b").json()["data"]["specs"]["isFurnished"] is False


def test_create_property_validation(client, auth):
    response = client.post("/api/properties", json={"title": "No price"}, headers=auth)
    assert response.status_code == 422


def test_chat_requires_token(client):
    assert client.post("/api/chat", json={"message": "flat in Karen"}).status_code == 401


def test_chat_rejects_blank_message(client, auth):
    response = client.post("/api/chat", json={"message": "   "}, headers=auth)
    assert response.status_code == 400
    assert response.json() == {"reply": "Please send a valid message.", "properties": []}


def test_chat_smalltalk(client, auth):
    body = client.post("/api/chat", json={"message": "hello there"}, headers=auth).json()
    assert body["properties"] == []
    assert body["reply"].startswith("Hi!")


def test_chat_rule_based_search(client, auth):
    body = client.post("/api/chat", json={"message": "looking for a 3 bedroom apartment in Karen for rent"},
                       headers=auth).json()
    assert [p["id"] for p in body["properties"]] == ["a"]
    card = body["properties"][0]
    assert card["image"] == "http://img/a1.jpg"
    assert card["propertyType"] == "rent"
    assert body["reply"].startswith("I found 1 property(ies):")
    assert body["trace"]["intent"]["isPropertyRelated"] is True


def test_chat_no_matches(client, auth):
    body = client.post("/api/chat", json={"message": "office to let in Westlands"}, headers=auth).json()
    assert body["properties"] == []
    assert body["reply"].startswith("I couldn't find")


def test_chat_uses_refined_filters(client, auth, monkeypatch):
    refiner = StubRefiner(result=ListingFilter(category="bungalow", is_furnished=True))
    monkeypatch.setattr(app_module, "REFINER", refiner)
    body = client.post("/api/chat", json={"message": "furnished bungalow for sale in Kiambu"}, headers=auth).json()
    assert [p["id"] for p in body["properties"]] == ["b"]
    assert "llm_refine" in body["trace"]["used_tools"]
    assert refiner.calls[0][1].location == "Kiambu"


def test_chat_falls_back_to_recent_listings(client, auth, monkeypatch):
    monkeypatch.setattr(app_module, "REFINER", StubRefiner(error=RefinementUnavailable("timeout")))
    response = client.post("/api/chat", json={"message": "looking for a house in Karen"}, headers=auth)
    assert response.status_code == 200
    body = response.json()
    assert [p["id"] for p in body["properties"]] == ["d", "c", "b", "a"]
    assert body["trace"]["fallback"] == "recent_listings"
