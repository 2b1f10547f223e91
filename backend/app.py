# FastAPI backend for Home254
# This is the main API server that handles listings CRUD, filtered search and the property chat assistant
import os
import logging
from typing import Optional, Dict, Any
from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from home254.models import (
    Category, PropertyType, ChatRequest, ChatResponse, ListingCreate, ListingUpdate,
    ListingFilter, ListingResponse, ListingsResponse,
)
from home254.router import detect_intent, build_coarse_filter, smalltalk_reply
from home254.llm import FilterRefiner, RefinementUnavailable, get_refiner
from home254.tools import ListingStore, generate_reply, summarize
from home254.auth import require_bearer

logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("home254.api")

# app

APP_VERSION = "1.0.0"
app = FastAPI(title="Home254 API", version=APP_VERSION)

# Include evaluation API endpoints
try:
    from evaluation.api_endpoints import router as eval_router
    app.include_router(eval_router, prefix="/api/eval", tags=["evaluation"])
except ImportError as e:
    logger.warning("Could not load evaluation endpoints: %s", e)

# CORS setup for local development with the web frontend
allowed_origins = os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global state for the listings table and the LLM client
LISTINGS_PATH = os.environ.get("LISTINGS_PATH", "data/listings.csv")
# Chat replies show a handful of cards, never a full page
CHAT_RESULT_LIMIT = max(1, min(int(os.environ.get("CHAT_RESULT_LIMIT", "4")), 6))
STORE: ListingStore | None = None
REFINER: FilterRefiner | None = None  # None means rule based filters only

admin = [Depends(require_bearer)]


@app.on_event("startup")
def startup():
    # Load the listings when the server starts
    global STORE, REFINER
    try:
        STORE = ListingStore(LISTINGS_PATH)
    except Exception as e:
        raise RuntimeError(f"Failed to load listings: {e}")
    REFINER = get_refiner()


def _store() -> ListingStore:
    if STORE is None:
        raise HTTPException(status_code=500, detail="Listing store not ready")
    return STORE


@app.get("/health")
def health():
    return {"status": "ok", "listings": len(STORE) if STORE else 0, "version": APP_VERSION}


@app.get("/version")
def version():
    return {"version": APP_VERSION}


# listings

@app.get("/api/properties", response_model=ListingsResponse)
def list_properties():
    listings = _store().all()
    return ListingsResponse(count=len(listings), data=listings)


@app.get("/api/properties/search", response_model=ListingsResponse)
def search_properties(
    category: Optional[Category] = None,
    property_type: Optional[PropertyType] = Query(default=None, alias="propertyType"),
    location: Optional[str] = None,
    county: Optional[str] = None,
    town: Optional[str] = None,
    bedrooms: Optional[int] = Query(default=None, ge=0),
    bathrooms: Optional[int] = Query(default=None, ge=0),
    kitchens: Optional[int] = Query(default=None, ge=0),
    living_rooms: Optional[int] = Query(default=None, ge=0, alias="livingRooms"),
    doors: Optional[int] = Query(default=None, ge=0),
    windows: Optional[int] = Query(default=None, ge=0),
    parking_spaces: Optional[int] = Query(default=None, ge=0, alias="parkingSpaces"),
    upper_floors: Optional[int] = Query(default=None, ge=0, alias="upperFloors"),
    price: Optional[float] = Query(default=None, ge=0),
    is_furnished: Optional[bool] = Query(default=None, alias="isFurnished"),
):
    # price is a ceiling, every numeric spec is an exact match
    filters = ListingFilter(
        category=category,
        property_type=property_type,
        location=location or None,
        county=county or None,
        town=town or None,
        max_price=price,
        is_furnished=is_furnished,
    )
    specs = {
        "bedrooms": bedrooms,
        "bathrooms": bathrooms,
        "kitchens": kitchens,
        "living_rooms": living_rooms,
        "doors": doors,
        "windows": windows,
        "parking_spaces": parking_spaces,
        "upper_floors": upper_floors,
    }
    listings = _store().search(filters, specs={k: v for k, v in specs.items() if v is not None})
    return ListingsResponse(count=len(listings), data=listings)


@app.get("/api/properties/{listing_id}", response_model=ListingResponse)
def get_property(listing_id: str):
    listing = _store().get(listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return ListingResponse(data=listing)


@app.post("/api/properties", response_model=ListingResponse, status_code=201, dependencies=admin)
def create_property(body: ListingCreate):
    return ListingResponse(data=_store().create(body))


@app.put("/api/properties/{listing_id}", response_model=ListingResponse, dependencies=admin)
def update_property(listing_id: str, body: ListingUpdate):
    listing = _store().update(listing_id, body)
    if listing is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return ListingResponse(data=listing)


@app.delete("/api/properties/{listing_id}", dependencies=admin)
def delete_property(listing_id: str):
    if not _store().delete(listing_id):
        raise HTTPException(status_code=404, detail="Property not found")
    return {"success": True, "data": {}}


# chat

@app.post("/api/chat", response_model=ChatResponse, dependencies=admin)
def chat(req: ChatRequest):
    # Main chat endpoint that turns a free text request into listing filters
    message = (req.message or "").strip()
    if not message:
        return JSONResponse(status_code=400, content={"reply": "Please send a valid message.", "properties": []})
    store = _store()

    intent = detect_intent(message)
    coarse = build_coarse_filter(message, intent)

    # Track what we did for debugging
    trace: Dict[str, Any] = {
        "intent": intent.model_dump(by_alias=True),
        "used_tools": ["keyword_intent"],
        "filters_coarse": coarse.model_dump(by_alias=True, exclude_none=True),
    }

    if not intent.is_property_related:
        # A place name or a budget on its own is still a search
        if coarse.is_empty():
            return ChatResponse(reply=smalltalk_reply(message), properties=[], trace=trace)
        trace["intent_override"] = "filters_present"

    filters = coarse
    if REFINER is not None:
        try:
            filters = REFINER.refine(message, coarse)
            trace["used_tools"].append("llm_refine")
        except RefinementUnavailable as e:
            logger.warning("Filter refinement failed, serving recent listings: %s", e)
            recent = store.recent(CHAT_RESULT_LIMIT)
            trace["fallback"] = "recent_listings"
            return ChatResponse(
                reply=(
                    "Sorry, I'm having trouble understanding requests right now. "
                    "Here are some of our latest listings."
                ),
                properties=[summarize(p) for p in recent],
                trace=trace,
            )
    trace["filters"] = filters.model_dump(by_alias=True, exclude_none=True)

    listings = store.search(filters, limit=CHAT_RESULT_LIMIT)
    trace["returned"] = len(listings)
    return ChatResponse(reply=generate_reply(listings), properties=[summarize(p) for p in listings], trace=trace)
