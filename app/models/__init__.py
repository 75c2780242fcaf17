from .admin import Admin
from .lecturer_module import LecturerModule
from .rating import Rating, CRITERIA_FIELDS

__all__ = [
    "Admin",
    "LecturerModule",
    "Rating",
    "CRITERIA_FIELDS",
]
