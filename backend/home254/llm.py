"""LLM refinement of the coarse search filter

The router gives us a rule based ListingFilter. Here we ask an OpenAI compatible
chat model (Ollama Cloud by default) to read the raw message and fill in what the
rules missed. Whatever the model returns is validated field by field and merged
over the coarse filter, so a bad reply can only ever fall back to the rules
"""

from __future__ import annotations
import os, re, json, math, logging
from typing import Any, Dict, Optional
from openai import OpenAI, APIError

from .models import ListingFilter

logger = logging.getLogger(__name__)

LLM_API_KEY = os.environ.get("LLM_API_KEY", "")
LLM_BASE_URL = os.environ.get("LLM_BASE_URL", "https://api.ollama.com/v1")
LLM_MODEL = os.environ.get("LLM_MODEL", "llama3.1")
LLM_TIMEOUT = float(os.environ.get("LLM_TIMEOUT", "8"))

CATEGORIES = {"apartment", "bungalow", "land", "office"}
PROPERTY_TYPES = {"sale", "rent"}

PROMPT_TEMPLATE = """
You are a real estate assistant for Home254, a Kenyan property platform.
Extract property search criteria from the user's message.
Output ONLY valid JSON using these exact keys (omit unknown fields):
- "location.county" (string)
- "location.town" (string)
- "propertyType" ("sale" or "rent")
- "category" ("apartment", "bungalow", "land", "office")
- "price" (number, max price in KES)
- "specs.bedrooms" (number, min)
- "specs.bathrooms" (number, min)
- "specs.isFurnished" (boolean)

Examples:
User: "3-bed apartments under 5M in Nairobi for rent"
-> {{"location.county":"Nairobi","specs.bedrooms":3,"price":5000000,"propertyType":"rent","category":"apartment"}}

User: "furnished bungalows"
-> {{"category":"bungalow","specs.isFurnished":true}}

A keyword matcher already guessed these filters, correct them if they are wrong:
{coarse}

User message: {message}
"""

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


class RefinementUnavailable(RuntimeError):
    """The model could not be reached or returned an API error"""


def build_prompt(message: str, coarse: ListingFilter) -> str:
    coarse_json = json.dumps(coarse.model_dump(by_alias=True, exclude_none=True))
    return PROMPT_TEMPLATE.format(coarse=coarse_json, message=json.dumps(message.strip()))


def parse_llm_filters(raw: Optional[str]) -> Dict[str, Any]:
    """Parse the model reply into a dict

    Models love wrapping JSON in Markdown fences so strip those first
    Anything that is not a JSON object comes back as an empty dict
    """
    text = _FENCE_RE.sub("", (raw or "").strip())
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("LLM reply was not valid JSON, keeping rule based filters: %r", (raw or "")[:200])
        return {}
    if not isinstance(data, dict):
        logger.warning("LLM reply was JSON but not an object: %r", data)
        return {}
    return data


def _number(value: Any) -> Optional[float]:
    # bool is an int subclass in Python, never treat true/false as a count
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    # json.loads accepts Infinity, NaN and overflowing literals like 1e999
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def merge_filters(coarse: ListingFilter, llm: Dict[str, Any]) -> ListingFilter:
    """LLM fields win when present and valid, the coarse filter fills the rest"""
    merged = coarse.model_copy()

    county = _text(llm.get("location.county"))
    town = _text(llm.get("location.town"))
    if county or town:
        # Structured location replaces the gazetteer guess
        merged.county = county
        merged.town = town
        merged.location = None

    if llm.get("propertyType") in PROPERTY_TYPES:
        merged.property_type = llm["propertyType"]
    if llm.get("category") in CATEGORIES:
        merged.category = llm["category"]

    price = _number(llm.get("price"))
    if price is not None and price > 0:
        merged.max_price = price
    bedrooms = _number(llm.get("specs.bedrooms"))
    if bedrooms is not None and bedrooms >= 0:
        merged.min_bedrooms = int(bedrooms)
    bathrooms = _number(llm.get("specs.bathrooms"))
    if bathrooms is not None and bathrooms >= 0:
        merged.min_bathrooms = int(bathrooms)

    if isinstance(llm.get("specs.isFurnished"), bool):
        merged.is_furnished = llm["specs.isFurnished"]
    return merged


class FilterRefiner:
    def __init__(self, api_key: str = LLM_API_KEY, base_url: str = LLM_BASE_URL,
                 model: str = LLM_MODEL, timeout: float = LLM_TIMEOUT, client: Optional[OpenAI] = None):
        self.model = model
        # One retry on top of the first attempt, every attempt bounded by the timeout
        self.client = client or OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=1)

    def complete(self, prompt: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.1,
            )
        except APIError as e:
            raise RefinementUnavailable(str(e)) from e
        if not response.choices:
            raise RefinementUnavailable("LLM returned no choices")
        return response.choices[0].message.content or ""

    def refine(self, message: str, coarse: ListingFilter) -> ListingFilter:
        raw = self.complete(build_prompt(message, coarse))
        return merge_filters(coarse, parse_llm_filters(raw))


def get_refiner() -> Optional[FilterRefiner]:
    """Build the default refiner, or None when no API key is configured"""
    if not LLM_API_KEY:
        logger.info("LLM_API_KEY not set, chat will use rule based filters only")
        return None
    return FilterRefiner()
