from .cache import CachePort
from .catalog import CatalogProviderPort, PersonLookupPort
from .health import ProviderHealthPort

__all__ = [
    "CachePort",
    "CatalogProviderPort",
    "PersonLookupPort",
    "ProviderHealthPort",
]
