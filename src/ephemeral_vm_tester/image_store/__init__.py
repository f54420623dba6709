"""Image store exports."""

from .store_contracts import ImageRecord, ImageStore, VMProcess
from .tart_image_store import (
    ImageStoreCommandError,
    TartImageStore,
    parse_address,
    parse_image_listing,
)

__all__ = [
    "ImageRecord",
    "ImageStore",
    "VMProcess",
    "ImageStoreCommandError",
    "TartImageStore",
    "parse_address",
    "parse_image_listing",
]
