"""Lightweight property intent routing and rule based parsing

This module keeps the decision logic simple and easy to follow
The router scores a chat message against a fixed keyword table with fuzzy matching and decides if it is a property search
The coarse filter built here is what the LLM refinement step starts from and what we fall back to when it fails
"""

from __future__ import annotations
import os, re, random
from datetime import datetime
from typing import List, Optional
from .fuzzy import similarity
from .keywords import CATEGORIES, KEYWORDS, LOCATIONS, SCORED_BUCKETS
from .models import IntentFeatures, IntentResult, ListingFilter

AGENT_NAME = os.environ.get("AGENT_NAME", "Home254 Assistant")

# Scores above this mean the message is a property search
PROPERTY_THRESHOLD = 1.5
CATEGORY_MATCH = 0.7
CATEGORY_STRONG_MATCH = 0.85
GENERAL_MATCH = 0.75

_NUMBER_RE = re.compile(r"\d+")
_PRICE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(million|thousand|m|k)\b")
_SCALES = {"m": 1_000_000, "million": 1_000_000, "k": 1_000, "thousand": 1_000}


def _has_word(text: str, phrase: str) -> bool:
    # Whole word match so "unfurnished" never counts as "furnished"
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


def detect_intent(message: str) -> IntentResult:
    """Decide if a message is a property search and pull out coarse attributes

    Never raises. Anything unrecognised simply scores zero
    """
    text = (message or "").lower()
    tokens = text.split()
    score = 0.0
    category = None
    property_type = None
    features = IntentFeatures()

    for token in tokens:
        # Category and deal keywords carry the most weight
        for bucket in SCORED_BUCKETS:
            for keyword in KEYWORDS[bucket]:
                sim = similarity(token, keyword)
                if sim > CATEGORY_MATCH:
                    score += sim * 2
                    if bucket not in CATEGORIES:
                        continue
                    # A strong match overrides, a weak one only fills an empty slot
                    if sim > CATEGORY_STRONG_MATCH or category is None:
                        category = bucket

        for noun in KEYWORDS["general"]:
            if similarity(token, noun) > GENERAL_MATCH:
                score += 1

        # Action phrases are checked against the whole message once per token
        for action in KEYWORDS["actions"]:
            if action in text:
                score += 0.5
                break

    for term in KEYWORDS["sale"]:
        if term in text:
            property_type = "sale"
            score += 1
            break
    if property_type is None:
        for term in KEYWORDS["rent"]:
            if term in text:
                property_type = "rent"
                score += 1
                break

    if any(_has_word(text, term) for term in KEYWORDS["furnished"]):
        features.is_furnished = True
        score += 0.5
    elif any(_has_word(text, term) for term in KEYWORDS["unfurnished"]):
        features.is_furnished = False
        score += 0.5

    return IntentResult(
        is_property_related=score > PROPERTY_THRESHOLD,
        confidence=min(score / 5, 1.0),
        category=category,
        property_type=property_type,
        features=features,
    )


def extract_numbers(text: str) -> List[int]:
    """Every run of digits in the text, left to right"""
    return [int(n) for n in _NUMBER_RE.findall(text or "")]


def extract_price(text: str) -> Optional[float]:
    """Parse a price ceiling like 4M, 5 million or 50k from free text"""
    m = _PRICE_RE.search((text or "").lower())
    if not m:
        return None
    return float(m.group(1)) * _SCALES[m.group(2)]


def detect_location(message: str) -> Optional[str]:
    """First known place name contained in the message

    Gazetteer order wins over position in the message
    """
    text = (message or "").lower()
    for place in LOCATIONS:
        if place in text:
            return " ".join(word.capitalize() for word in place.split())
    return None


def build_coarse_filter(message: str, intent: Optional[IntentResult] = None) -> ListingFilter:
    """Return a ListingFilter using only rules and simple matching"""
    intent = intent or detect_intent(message)
    # Small numbers are almost always bedroom counts
    bedrooms = next((n for n in extract_numbers(message) if n < 10), None)
    return ListingFilter(
        category=intent.category,
        property_type=intent.property_type,
        location=detect_location(message),
        min_bedrooms=bedrooms,
        max_price=extract_price(message),
        is_furnished=intent.features.is_furnished,
    )


def smalltalk_reply(text: str) -> str:
    """Friendly small talk that keeps the conversation in scope"""
    t = (text or "").lower().strip()
    words = set(re.findall(r"[a-z']+", t))

    # Greetings
    if words & {"hi", "hello", "hey", "jambo", "habari", "sasa"} or any(g in t for g in ["good morning", "good afternoon", "good evening"]):
        return f"Hi! I'm {AGENT_NAME}. Tell me what kind of property you're looking for."

    # Name / identity
    if any(k in t for k in ["what's your name", "what is your name", "your name", "who are you", "introduce yourself"]):
        return f"I'm {AGENT_NAME}, your guide to homes, land and offices on Home254."

    # Capabilities
    if any(k in t for k in ["what can you do", "capabilities", "how can you help", "help", "what do you do"]):
        return (
            "I can search our listings for you. "
            "Try: '3-bedroom apartment in Kilimani for rent under 80k' or 'furnished bungalow for sale in Kiambu'."
        )

    # Gratitude / sign-off
    if words & {"thanks", "thx", "asante"} or "thank you" in t:
        return "You're welcome! Ask any time you want to see more properties."
    if words & {"bye", "goodbye"} or "see you" in t:
        return "Bye for now! Good luck with the house hunt."

    # Time / date (local server time)
    if any(k in t for k in ["what time", "current time", "what's the time", "time is it"]):
        now = datetime.now().strftime("%Y-%m-%d %H:%M")
        return f"It's {now} (server time)."

    if "joke" in t:
        jokes = [
            "Why did the house go to the doctor? It had a bad case of window pains.",
            "My landlord said he'd raise the rent. I said good, I can't raise it myself.",
            "Real estate agents make the best friends. They always have an open house.",
        ]
        return random.choice(jokes)

    # Default friendly reply
    return (
        "I can help you find apartments, bungalows, land or offices. "
        "Tell me the location, budget and whether you want to buy or rent."
    )
