"""
Roomly Backend - ORM Models
===========================

Importing this package registers every table on `Base.metadata`, which
Alembic autogenerate and the test fixtures (`create_all`) rely on.
"""

from roomly.models.booking import Booking
from roomly.models.image import Image
from roomly.models.listing import Listing
from roomly.models.token import Token
from roomly.models.user import User

__all__ = ["Booking", "Image", "Listing", "Token", "User"]
