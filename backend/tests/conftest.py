import pandas as pd
import pytest
from fastapi.testclient import TestClient

import app as app_module
from home254.tools import ListingStore

TOKEN = "test-admin-token"


# Helper to make a small listings table
def make_rows():
    return [
        {"id": "a", "title": "Karen Apartment", "price": 85000, "property_type": "rent", "category": "apartment",
         "county": "Nairobi", "town": "Karen", "bedrooms": 3, "bathrooms": 2, "kitchens": 1, "is_furnished": "false",
         "images": "http://img/a1.jpg|http://img/a2.jpg", "created_at": "2025-01-01T00:00:00+00:00"},
        {"id": "b", "title": "Kiambu Bungalow", "price": 18500000, "property_type": "sale", "category": "bungalow",
         "county": "Kiambu", "town": "Kiambu", "lat": -1.1714, "lng": 36.8356, "bedrooms": 4, "bathrooms": 3,
         "kitchens": 1, "parking_spaces": 3, "is_furnished": "true",
         "images": "http://img/b1.jpg", "created_at": "2025-02-01T00:00:00+00:00"},
        {"id": "c", "title": "Kitengela Plot", "price": 1800000, "property_type": "sale", "category": "land",
         "county": "Kajiado", "town": "Kitengela", "is_furnished": "false", "images": "",
         "created_at": "2025-03-01T00:00:00+00:00"},
        {"id": "d", "title": "Kilimani Studio", "price": 25000, "property_type": "rent", "category": "apartment",
         "county": "Nairobi", "town": "Kilimani", "bedrooms": 1, "bathrooms": 1, "is_furnished": "true",
         "images": "http://img/d1.jpg", "created_at": "2025-04-01T00:00:00+00:00"},
    ]


@pytest.fixture
def listings_csv(tmp_path):
    path = tmp_path / "listings.csv"
    pd.DataFrame(make_rows()).to_csv(path, index=False)
    return str(path)


@pytest.fixture
def store(listings_csv):
    return ListingStore(listings_csv)


@pytest.fixture
def client(store, monkeypatch):
    monkeypatch.setenv("ADMIN_API_TOKEN", TOKEN)
    monkeypatch.setattr(app_module, "STORE", store)
    monkeypatch.setattr(app_module, "REFINER", None)
    return TestClient(app_module.app)


@pytest.fixture
def auth():
    return {"Authorization": f"Bearer {TOKEN}"}
