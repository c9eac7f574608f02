"""
Shared plumbing: settings, logging, request tracing, change events, errors
and phone normalisation.
"""

from .config import Settings, get_settings, settings
from .errors import LoyaltyError, NotFoundError, InvalidPhoneError
from .logger import setup_logger, get_logger
from .phone import normalize_phone

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "LoyaltyError",
    "NotFoundError",
    "InvalidPhoneError",
    "setup_logger",
    "get_logger",
    "normalize_phone",
]
