"""Image provider implementations"""

from .turai import TuraiPostcardProvider
from .pollinations import PollinationsProvider
from .loremflickr import LoremFlickrProvider

__all__ = [
    "TuraiPostcardProvider",
    "PollinationsProvider",
    "LoremFlickrProvider",
]
