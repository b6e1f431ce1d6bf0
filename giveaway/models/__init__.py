from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .admin import Admin  # noqa: F401
from .campaign import Applicant, Campaign  # noqa: F401
from .draw_request import DrawRequest  # noqa: F401

__all__ = [
    "Base",
    "Admin",
    "Applicant",
    "Campaign",
    "DrawRequest",
]
