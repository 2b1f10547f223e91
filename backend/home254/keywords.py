"""Static vocabulary used by the property intent router

Every bucket maps to an ordered tuple of synonyms and the whole table is wrapped
in a read only mapping so it can be shared freely between requests
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Mapping, Tuple

# Buckets that name a listing category, in the order the router scans them
CATEGORIES: Tuple[str, ...] = ("apartment", "bungalow", "land", "office")
# Buckets fuzzy scored per token. Only the category ones can set the category
SCORED_BUCKETS: Tuple[str, ...] = CATEGORIES + ("sale", "rent")

KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "apartment": ("apartment", "apartments", "flat", "flats", "studio", "bedsitter", "penthouse", "condo"),
    "bungalow": ("bungalow", "bungalows", "house", "villa", "maisonette", "townhouse", "mansion", "cottage"),
    "land": ("land", "plot", "plots", "acre", "acres", "shamba", "parcel"),
    "office": ("office", "offices", "commercial", "workspace", "shop", "shops", "godown"),
    "general": (
        "property", "properties", "house", "houses", "home", "homes", "bedroom", "bedrooms",
        "listing", "listings", "real estate", "estate", "rooms",
    ),
    "sale": ("for sale", "on sale", "buy", "buying", "purchase", "sale", "sell", "selling"),
    "rent": ("for rent", "to let", "rent", "rental", "renting", "lease", "letting"),
    "furnished": ("furnished", "fully furnished", "semi furnished"),
    "unfurnished": ("unfurnished", "empty", "bare"),
    # Gazetteer. Order matters: the first entry found in a message wins
    "locations": (
        "nairobi", "westlands", "kilimani", "kileleshwa", "lavington", "karen", "runda",
        "muthaiga", "kasarani", "roysambu", "embakasi", "langata", "south b", "south c",
        "ngong", "rongai", "kitengela", "syokimau", "athi river", "ruaka", "ruiru", "juja",
        "thika", "kiambu", "kikuyu", "limuru", "machakos", "kajiado", "mombasa", "nyali",
        "diani", "malindi", "kilifi", "kisumu", "nakuru", "naivasha", "eldoret", "nyeri",
        "nanyuki", "meru", "embu", "kisii", "kakamega", "kericho", "narok", "lamu",
    ),
    "actions": (
        "looking for", "searching for", "interested in", "show me", "get me",
        "find", "search", "need", "want",
    ),
})

LOCATIONS: Tuple[str, ...] = KEYWORDS["locations"]
