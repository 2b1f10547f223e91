from __future__ import annotations
import os, uuid, logging, threading
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
import pandas as pd

from .models import (
    Coordinates, Listing, ListingCreate, ListingUpdate, ListingFilter, ListingSummary, Location, Specs,
)

logger = logging.getLogger(__name__)

# Flat CSV layout of a listing. Nested location and specs are spread into columns
COLUMNS = [
    "id", "title", "description", "price", "property_type", "category", "county", "town", "lat", "lng",
    "bedrooms", "bathrooms", "kitchens", "living_rooms", "doors", "windows", "parking_spaces", "upper_floors",
    "roof_type", "floor_type", "is_furnished", "images", "created_at", "updated_at",
]
INT_SPECS = [
    "bedrooms", "bathrooms", "kitchens", "living_rooms", "doors", "windows", "parking_spaces", "upper_floors",
]
TEXT_SPECS = ["roof_type", "floor_type"]
IMAGE_SEP = "|"


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes"}


def _clean(value: Any) -> Any:
    # pandas hands back NaN / NaT for empty cells
    if value is None or pd.isna(value):
        return None
    return value


def normalize_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Bring a raw listings frame to the column set and dtypes the store relies on"""
    df = df.copy()
    # Normalize missing columns that the app depends on
    for col in COLUMNS:
        if col not in df.columns:
            df[col] = ""
    df = df[COLUMNS].copy()
    df["id"] = df["id"].astype(str)
    for col in ["title", "description", "property_type", "category", "county", "town",
                "roof_type", "floor_type", "images"]:
        df[col] = df[col].fillna("").astype(str)
    # Coerce types, malformed cells become missing rather than failing the load
    df["price"] = pd.to_numeric(df["price"], errors="coerce").fillna(0.0).astype(float)
    for col in INT_SPECS + ["lat", "lng"]:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    df["is_furnished"] = df["is_furnished"].map(_to_bool).astype(bool)
    for col in ["created_at", "updated_at"]:
        df[col] = pd.to_datetime(df[col], errors="coerce", utc=True)
    return df.reset_index(drop=True)


def apply_filters(df: pd.DataFrame, f: ListingFilter) -> pd.DataFrame:
    # Filter the dataframe based on user constraints
    out = df
    if f.category:
        out = out[out["category"].str.lower() == f.category.lower()]
    if f.property_type:
        out = out[out["property_type"].str.lower() == f.property_type.lower()]
    if f.location:
        loc = f.location.strip()
        in_town = out["town"].str.contains(loc, case=False, na=False, regex=False)
        in_county = out["county"].str.contains(loc, case=False, na=False, regex=False)
        out = out[in_town | in_county]
    if f.county:
        out = out[out["county"].str.lower() == f.county.strip().lower()]
    if f.town:
        out = out[out["town"].str.lower() == f.town.strip().lower()]
    if f.min_bedrooms is not None:
        out = out[out["bedrooms"] >= f.min_bedrooms]
    if f.min_bathrooms is not None:
        out = out[out["bathrooms"] >= f.min_bathrooms]
    if f.max_price is not None:
        out = out[out["price"] <= float(f.max_price)]
    if f.is_furnished is not None:
        out = out[out["is_furnished"] == f.is_furnished]
    return out


def apply_spec_filters(df: pd.DataFrame, specs: Dict[str, int]) -> pd.DataFrame:
    """Exact match on numeric specs like bedrooms or parking_spaces

    Listings that never recorded a spec do not match a query on it
    """
    out = df
    for col, value in specs.items():
        if col not in INT_SPECS:
            raise ValueError(f"Unknown spec filter: {col}")
        out = out[out[col] == value]
    return out


def row_to_listing(row: pd.Series) -> Listing:
    specs: Dict[str, Any] = {k: _clean(row[k]) for k in INT_SPECS}
    specs = {k: (int(v) if v is not None else None) for k, v in specs.items()}
    for k in TEXT_SPECS:
        specs[k] = row[k] or None
    specs["is_furnished"] = bool(row["is_furnished"])
    images = [u for u in str(row["images"]).split(IMAGE_SEP) if u]
    lat, lng = _clean(row["lat"]), _clean(row["lng"])
    coordinates = Coordinates(lat=lat, lng=lng) if lat is not None and lng is not None else None
    return Listing(
        id=str(row["id"]),
        title=row["title"],
        description=row["description"],
        price=float(row["price"]),
        property_type=row["property_type"],
        category=row["category"],
        location=Location(county=row["county"], town=row["town"], coordinates=coordinates),
        specs=Specs(**specs),
        images=images,
        created_at=_clean(row["created_at"]),
        updated_at=_clean(row["updated_at"]),
    )


def listing_to_row(listing: Listing) -> Dict[str, Any]:
    coordinates = listing.location.coordinates
    row: Dict[str, Any] = {
        "id": listing.id,
        "title": listing.title,
        "description": listing.description,
        "price": float(listing.price),
        "property_type": listing.property_type,
        "category": listing.category,
        "county": listing.location.county,
        "town": listing.location.town,
        "lat": coordinates.lat if coordinates else None,
        "lng": coordinates.lng if coordinates else None,
        "is_furnished": bool(listing.specs.is_furnished),
        "images": IMAGE_SEP.join(listing.images),
        "created_at": listing.created_at,
        "updated_at": listing.updated_at,
    }
    for k in INT_SPECS:
        row[k] = getattr(listing.specs, k)
    for k in TEXT_SPECS:
        row[k] = getattr(listing.specs, k) or ""
    return row


def summarize(listing: Listing) -> ListingSummary:
    return ListingSummary(
        id=listing.id,
        title=listing.title,
        price=listing.price,
        location=listing.location,
        property_type=listing.property_type,
        category=listing.category,
        specs=listing.specs,
        image=listing.images[0] if listing.images else None,
    )


class ListingStore:
    def __init__(self, csv_path: str):
        # Load the listings table. A missing file is an empty store that gets created on first write
        self.csv_path = csv_path
        self._lock = threading.Lock()
        if os.path.isfile(csv_path):
            df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
        else:
            logger.info("Listings file %s not found, starting with an empty store", csv_path)
            df = pd.DataFrame(columns=COLUMNS)
        self.df = normalize_frame(df)
        logger.info("Loaded %d listings from %s", len(self.df), csv_path)

    def _newest_first(self, df: pd.DataFrame) -> pd.DataFrame:
        return df.sort_values("created_at", ascending=False, na_position="last", kind="stable")

    def _save(self) -> None:
        directory = os.path.dirname(self.csv_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        out = self.df.copy()
        for col in ["created_at", "updated_at"]:
            out[col] = out[col].map(lambda v: v.isoformat() if pd.notna(v) else "")
        out.to_csv(self.csv_path, index=False)

    def __len__(self) -> int:
        return len(self.df)

    def all(self) -> List[Listing]:
        return [row_to_listing(r) for _, r in self._newest_first(self.df).iterrows()]

    def get(self, listing_id: str) -> Optional[Listing]:
        rows = self.df[self.df["id"] == str(listing_id)]
        if rows.empty:
            return None
        return row_to_listing(rows.iloc[0])

    def search(self, filters: ListingFilter, limit: Optional[int] = None,
               specs: Optional[Dict[str, int]] = None) -> List[Listing]:
        out = apply_filters(self.df, filters)
        if specs:
            out = apply_spec_filters(out, specs)
        out = self._newest_first(out)
        if limit is not None:
            out = out.head(limit)
        return [row_to_listing(r) for _, r in out.iterrows()]

    def recent(self, limit: int) -> List[Listing]:
        return self.search(ListingFilter(), limit=limit)

    def create(self, data: ListingCreate) -> Listing:
        now = datetime.now(timezone.utc)
        listing = Listing(id=uuid.uuid4().hex, created_at=now, updated_at=now, **data.model_dump())
        with self._lock:
            new_row = normalize_frame(pd.DataFrame([listing_to_row(listing)]))
            self.df = new_row if self.df.empty else pd.concat([self.df, new_row], ignore_index=True)
            self._save()
        logger.info("Created listing %s (%s)", listing.id, listing.title)
        return listing

    def update(self, listing_id: str, data: ListingUpdate) -> Optional[Listing]:
        with self._lock:
            current = self.get(listing_id)
            if current is None:
                return None
            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            updated = Listing.model_validate(
                {**current.model_dump(), **changes, "updated_at": datetime.now(timezone.utc)}
            )
            mask = self.df["id"] == str(listing_id)
            new_row = normalize_frame(pd.DataFrame([listing_to_row(updated)]))
            self.df = pd.concat([self.df[~mask], new_row], ignore_index=True)
            self._save()
        logger.info("Updated listing %s", listing_id)
        return updated

    def delete(self, listing_id: str) -> bool:
        with self._lock:
            mask = self.df["id"] == str(listing_id)
            if not mask.any():
                return False
            self.df = self.df[~mask].reset_index(drop=True)
            self._save()
        logger.info("Deleted listing %s", listing_id)
        return True


def generate_reply(listings: List[Listing]) -> str:
    if not listings:
        return (
            "I couldn't find any properties matching your request. Try adjusting your price or location!"
        )
    lines = [
        f"- **{p.title}** ({p.location.town or p.location.county}) – KES {p.price:,.0f} ({p.property_type})"
        for p in listings
    ]
    return f"I found {len(listings)} property(ies):\n\n" + "\n".join(lines)
