from __future__ import annotations
from datetime import datetime
from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Category = Literal["apartment", "bungalow", "land", "office"]
PropertyType = Literal["sale", "rent"]


class CamelModel(BaseModel):
    # Python side stays snake_case, the wire format is camelCase like the web client expects
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# These are the data structures that hold everything together
class IntentFeatures(CamelModel):
    is_furnished: Optional[bool] = None


class IntentResult(CamelModel):
    # What the router thinks a single chat message is about
    is_property_related: bool
    confidence: float = Field(ge=0, le=1)
    category: Optional[Category] = None
    property_type: Optional[PropertyType] = None
    features: IntentFeatures = Field(default_factory=IntentFeatures)


class ListingFilter(CamelModel):
    # What the user is looking for
    category: Optional[Category] = None
    property_type: Optional[PropertyType] = None
    location: Optional[str] = None  # free text, matched against town or county
    county: Optional[str] = None
    town: Optional[str] = None
    min_bedrooms: Optional[int] = Field(default=None, ge=0)
    min_bathrooms: Optional[int] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    is_furnished: Optional[bool] = None

    def is_empty(self) -> bool:
        return not any(v is not None for v in self.model_dump().values())


class Coordinates(CamelModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class Location(CamelModel):
    county: str
    town: str = ""
    coordinates: Optional[Coordinates] = None


class Specs(CamelModel):
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    kitchens: Optional[int] = None
    living_rooms: Optional[int] = None
    doors: Optional[int] = None
    windows: Optional[int] = None
    parking_spaces: Optional[int] = None
    upper_floors: Optional[int] = None
    roof_type: Optional[str] = None  # e.g. tile, mabati
    floor_type: Optional[str] = None  # e.g. tile, wood, concrete
    is_furnished: bool = False


class Listing(CamelModel):
    # Everything that needs to be known about a property on the platform
    id: str
    title: str
    description: str = ""
    price: float
    property_type: PropertyType
    category: Category
    location: Location
    specs: Specs = Field(default_factory=Specs)
    images: List[str] = Field(default_factory=list)  # image URLs
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ListingCreate(CamelModel):
    # Body of an admin create request
    title: str = Field(min_length=1)
    description: str = ""
    price: float = Field(gt=0)
    property_type: PropertyType
    category: Category
    location: Location
    specs: Specs = Field(default_factory=Specs)
    images: List[str] = Field(default_factory=list)


class ListingUpdate(CamelModel):
    # Partial update, only the fields that were sent are applied
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, gt=0)
    property_type: Optional[PropertyType] = None
    category: Optional[Category] = None
    location: Optional[Location] = None
    specs: Optional[Specs] = None
    images: Optional[List[str]] = None


class ListingSummary(CamelModel):
    # Trimmed listing card used in chat replies
    id: str
    title: str
    price: float
    location: Location
    property_type: PropertyType
    category: Category
    specs: Specs
    image: Optional[str] = None


class ChatRequest(CamelModel):
    # What comes from the frontend when the user sends a message
    message: Optional[str] = None


class ChatResponse(CamelModel):
    # What we send back to the frontend
    reply: str
    properties: List[ListingSummary]
    trace: Dict[str, Any] = Field(default_factory=dict)


class ListingsResponse(CamelModel):
    success: bool = True
    count: int
    data: List[Listing]


class ListingResponse(CamelModel):
    success: bool = True
    data: Listing
