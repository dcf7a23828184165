# models/enums.py
from enum import Enum

from app.utils.enum_mapping import EnumLookup


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SALES_MANAGER = "sales_manager"
    SALES_TEAM_LEADER = "sales_team_leader"
    SALES_AGENT = "sales_agent"


class PropertyType(str, Enum):
    VILLA = "villa"
    TWIN_VILLA = "twin-villa"
    DUPLEX = "duplex"
    APARTMENT = "apartment"
    LAND = "land"
    COMMERCIAL = "commercial"


class PropertyStatus(str, Enum):
    FOR_SALE = "for-sale"
    FOR_RENT = "for-rent"
    SOLD = "sold"
    RENTED = "rented"


class DeveloperStatus(str, Enum):
    OFF_PLAN = "off-plan"
    ON_PLAN = "on-plan"
    SECONDARY = "secondary"
    RENTAL = "rental"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Currency(str, Enum):
    EGP = "EGP"
    AED = "AED"
    USD = "USD"
    EUR = "EUR"


class LeadService(str, Enum):
    BUY = "buy"
    SELL = "sell"
    RENT = "rent"


class LeadPurpose(str, Enum):
    INVESTMENT = "investment"
    PERSONAL_USE = "personal-use"


class LeadTimeline(str, Enum):
    IMMEDIATE = "immediate"
    ONE_TO_THREE_MONTHS = "1-3-months"
    THREE_TO_SIX_MONTHS = "3-6-months"
    SIX_TO_TWELVE_MONTHS = "6-12-months"
    FLEXIBLE = "flexible"


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    PROPOSAL_SENT = "proposal-sent"
    NEGOTIATING = "negotiating"
    CLOSED = "closed"
    LOST = "lost"


class LeadPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LeadSource(str, Enum):
    LANDING_PAGE = "landing-page"
    CONTACT_FORM = "contact-form"
    PHONE = "phone"
    REFERRAL = "referral"
    SOCIAL_MEDIA = "social-media"
    CHAT = "chat"
    CHAT_AI = "chat-ai"


class LaunchPropertyType(str, Enum):
    VILLA = "Villa"
    APARTMENT = "Apartment"
    TOWNHOUSE = "Townhouse"
    PENTHOUSE = "Penthouse"
    DUPLEX = "Duplex"
    STUDIO = "Studio"
    COMMERCIAL = "Commercial"
    LAND = "Land"


class LaunchStatus(str, Enum):
    AVAILABLE = "Available"
    COMING_SOON = "Coming Soon"
    PRE_LAUNCH = "Pre-Launch"
    SOLD_OUT = "Sold Out"


class LaunchCurrency(str, Enum):
    EGP = "EGP"
    USD = "USD"
    EUR = "EUR"


class AreaUnit(str, Enum):
    SQM = "sqm"
    SQFT = "sqft"


# --- Lookup tables (built once) ---
USER_ROLES = EnumLookup(UserRole)
PROPERTY_TYPES = EnumLookup(PropertyType)
PROPERTY_STATUSES = EnumLookup(PropertyStatus)
DEVELOPER_STATUSES = EnumLookup(DeveloperStatus)
CURRENCIES = EnumLookup(Currency)
LEAD_SERVICES = EnumLookup(LeadService)
LEAD_PURPOSES = EnumLookup(LeadPurpose)
LEAD_TIMELINES = EnumLookup(LeadTimeline)
LEAD_STATUSES = EnumLookup(LeadStatus)
LEAD_PRIORITIES = EnumLookup(LeadPriority)
LEAD_SOURCES = EnumLookup(LeadSource)
LAUNCH_PROPERTY_TYPES = EnumLookup(LaunchPropertyType)
LAUNCH_STATUSES = EnumLookup(LaunchStatus)
LAUNCH_CURRENCIES = EnumLookup(LaunchCurrency)
AREA_UNITS = EnumLookup(AreaUnit)


def check_in(column: str, enum_cls) -> str:
    """SQL CHECK clause listing the stored values of an enum."""
    values = ",".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"
