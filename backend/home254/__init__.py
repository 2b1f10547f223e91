from .models import (
    IntentResult, ListingFilter, Listing, ListingCreate, ListingUpdate, ListingSummary,
    ChatRequest, ChatResponse, ListingsResponse,
)
from .fuzzy import similarity, edit_distance
from .router import detect_intent, extract_numbers, extract_price, detect_location, build_coarse_filter, smalltalk_reply
from .llm import FilterRefiner, RefinementUnavailable, parse_llm_filters, merge_filters
from .tools import ListingStore, apply_filters, summarize, generate_reply

__all__ = [
    'IntentResult','ListingFilter','Listing','ListingCreate','ListingUpdate','ListingSummary',
    'ChatRequest','ChatResponse','ListingsResponse',
    'similarity','edit_distance',
    'detect_intent','extract_numbers','extract_price','detect_location','build_coarse_filter','smalltalk_reply',
    'FilterRefiner','RefinementUnavailable','parse_llm_filters','merge_filters',
    'ListingStore','apply_filters','summarize','generate_reply'
]
