"""CLI helpers.

URL sanitization for safe display, ``NAME=LEVEL`` option parsing and message
emitters that write to stderr with emoji/ASCII fallbacks.
"""

from .db_url import sanitize_url
from .messages import error, success, warn

__all__ = ["error", "sanitize_url", "success", "warn"]
