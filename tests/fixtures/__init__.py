"""
Shared test fixtures for the dbfeatures library.

Usage:
    from tests.fixtures import Base, Document, FixedClock, Product
"""

from tests.fixtures.asgi import ClaimsHeaderBackend, make_connection
from tests.fixtures.clock import FixedClock, naive
from tests.fixtures.models import Base, Category, Document, Note, Product

__all__ = [
    # Models
    "Base",
    "Category",
    "Product",
    "Document",
    "Note",
    # Clock
    "FixedClock",
    "naive",
    # ASGI
    "ClaimsHeaderBackend",
    "make_connection",
]
