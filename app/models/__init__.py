from .location import Governorate, City, Area
from .developer import Developer
from .user import User
from .property import Property
from .lead import Lead
from .launch import Launch

__all__ = ["Governorate", "City", "Area", "Developer", "User", "Property", "Lead", "Launch"]
