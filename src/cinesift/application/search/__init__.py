from .debounce import Debouncer
from .fallback import FallbackCoordinator, dedupe
from .requests import InFlightRequest, RequestCoordinator
from .result_cache import CacheEntry, ResultCache
from .session import SearchSession
from .stabilizer import StabilizedView, is_refinement, stabilize

__all__ = [
    "CacheEntry",
    "Debouncer",
    "FallbackCoordinator",
    "InFlightRequest",
    "RequestCoordinator",
    "ResultCache",
    "SearchSession",
    "StabilizedView",
    "dedupe",
    "is_refinement",
    "stabilize",
]
