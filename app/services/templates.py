import copy
from typing import Any, Dict, List

from app.core.exceptions import UnknownEntityError

# Example records per entity; each one passes validation as-is.
# `_comment` keys are hints for humans and are dropped from spreadsheets.
TEMPLATES: Dict[str, List[Dict[str, Any]]] = {
    "governorates": [
        {
            "name": "Cairo",
            "annualAppreciationRate": 7.5,
            "description": "The capital and largest city of Egypt, a major metropolitan area",
        },
        {
            "name": "Giza",
            "annualAppreciationRate": 6.8,
            "description": "Home to the Great Pyramids and growing residential areas",
        },
    ],
    "cities": [
        {
            "name": "New Cairo",
            "governorate": "Cairo",
            "annualAppreciationRate": 8.5,
            "description": "Modern suburb of Cairo with residential and commercial developments",
        },
        {
            "_comment": "governorate can be either an ID or a name (resolved automatically)",
            "name": "Sheikh Zayed",
            "governorate": "Giza",
            "annualAppreciationRate": 7.2,
            "description": "Upscale residential area west of Cairo",
        },
    ],
    "areas": [
        {
            "name": "Fifth Settlement",
            "city": "New Cairo",
            "annualAppreciationRate": 9.2,
            "description": "Premium residential and commercial district in New Cairo",
        },
        {
            "_comment": "city can be either an ID or a name (resolved automatically)",
            "name": "Maadi Degla",
            "city": "Maadi",
            "annualAppreciationRate": 6.5,
            "description": "Upscale neighborhood known for expat community",
        },
    ],
    "developers": [
        {
            "name": "Emaar",
            "logo": "emaar-logo",
            "description": "Leading real estate developer in the Middle East",
        },
        {
            "name": "Sodic",
            "logo": "sodic-logo",
            "description": "Premium Egyptian real estate developer",
        },
    ],
    "users": [
        {
            "name": "John Doe",
            "email": "john@example.com",
            "phone": "+201234567890",
            "password": "default123",
            "role": "user",
            "isActive": True,
            "profileImage": "user-profile-pic",
            "bio": "Sample bio",
            "location": "Cairo, Egypt",
            "isEmailVerified": False,
            "preferences": {
                "propertyTypes": ["villa", "apartment"],
                "locations": ["New Cairo", "Sheikh Zayed"],
                "priceRange": {"min": 2000000, "max": 5000000},
            },
        },
        {
            "_comment": "roles: user, admin, sales_manager, sales_team_leader, sales_agent",
            "name": "Ahmed Hassan",
            "email": "ahmed@example.com",
            "phone": "+201234567891",
            "password": "secure123",
            "role": "sales_agent",
            "isActive": True,
            "bio": "Real estate sales professional",
            "location": "Dubai, UAE",
        },
    ],
    "properties": [
        {
            "_comment": "Hierarchical location: governorate_ref / city_ref / area_ref (recommended)",
            "title": "Luxury Villa in Fifth Settlement",
            "description": "Beautiful 4-bedroom villa with garden and pool, spacious living areas perfect for families.",
            "type": "villa",
            "status": "for-sale",
            "developerStatus": "on-plan",
            "developer": "Emaar",
            "price": 5000000,
            "currency": "EGP",
            "governorate_ref": "Cairo",
            "city_ref": "New Cairo",
            "area_ref": "Fifth Settlement",
            "location": {
                "address": "123 Main Street, Fifth Settlement",
                "country": "Egypt",
                "coordinates": {"latitude": 30.0444, "longitude": 31.2357},
            },
            "specifications": {
                "bedrooms": 4,
                "bathrooms": 3,
                "area": 300,
                "areaUnit": "sqm",
                "floors": 2,
                "parking": 2,
                "furnished": "semi-furnished",
            },
            "features": ["pool", "garden", "balcony", "gym"],
            "images": [
                {"url": "villa-001-img1", "caption": "Front view", "isHero": True, "order": 0},
                {"url": "villa-001-img2", "caption": "Living room", "order": 1},
                {"url": "villa-001-img3", "caption": "Garden area", "order": 2},
            ],
            "video": {"url": "https://www.youtube.com/watch?v=example", "thumbnail": "villa-001-video-thumb"},
            "virtualTour": {"url": "https://tour.example.com/villa-001", "type": "360"},
            "amenities": ["security", "maintenance", "gym", "pool"],
            "nearbyFacilities": [
                {"name": "American International School", "type": "school", "distance": 500},
                {"name": "Cairo Festival City Mall", "type": "mall", "distance": 1200},
            ],
            "investment": {"expectedROI": 12.5, "rentalYield": 8.2, "pricePerSqft": 16667},
            "documents": [
                {"name": "Floor Plan", "url": "villa-001-floorplan.pdf", "type": "floor-plan"},
            ],
            "isFeatured": True,
            "isActive": True,
        },
        {
            "_comment": "Flat location: location.address / location.city / location.state",
            "title": "Modern Apartment in Downtown",
            "description": "Spacious 2-bedroom apartment with city view",
            "type": "apartment",
            "status": "for-rent",
            "price": 15000,
            "currency": "EGP",
            "location": {
                "address": "456 Downtown Street",
                "city": "Cairo",
                "state": "Cairo",
                "country": "Egypt",
            },
            "specifications": {"bedrooms": 2, "bathrooms": 2, "area": 120, "areaUnit": "sqm", "furnished": "furnished"},
            "features": ["balcony", "parking"],
            "images": ["apt-002-img1"],
            "amenities": ["elevator", "concierge"],
            "isFeatured": False,
            "isActive": True,
        },
    ],
    "leads": [
        {
            "name": "Jane Smith",
            "email": "jane@example.com",
            "phone": "+201234567890",
            "requiredService": "buy",
            "propertyType": "apartment",
            "purpose": "investment",
            "budget": {"min": 2000000, "max": 3000000, "currency": "AED"},
            "preferredLocation": ["Dubai Marina", "Downtown Dubai"],
            "location": "Dubai Marina",
            "timeline": "3-6-months",
            "status": "new",
            "priority": "medium",
            "source": "landing-page",
            "followUpDate": "2025-11-15",
            "isRead": False,
            "isArchived": False,
        },
        {
            "_comment": "sources: landing-page, contact-form, phone, referral, social-media, chat, chat-ai",
            "name": "Ahmed Ali",
            "email": "ahmed.ali@example.com",
            "phone": "+971501234567",
            "requiredService": "rent",
            "propertyType": "villa",
            "purpose": "personal-use",
            "budget": {"min": 150000, "max": 250000, "currency": "AED"},
            "preferredLocation": ["Arabian Ranches", "The Springs"],
            "location": "Arabian Ranches",
            "timeline": "immediate",
            "status": "contacted",
            "priority": "high",
            "source": "chat-ai",
            "notes": [
                {"note": "Customer interested in 4-bedroom villa with pool", "createdAt": "2025-11-01T10:30:00Z"},
            ],
            "followUpDate": "2025-11-05",
            "lastContactDate": "2025-11-01",
            "isRead": True,
            "isArchived": False,
        },
    ],
    "launches": [
        {
            "title": "Oceanfront Towers",
            "developer": "Emaar Properties",
            "description": "Luxurious apartments with stunning views",
            "content": "Modern design, premium finishes, and an unbeatable location in the heart of New Cairo.",
            "image": "launch-oceanfront-main",
            "images": ["launch-oceanfront-1", "launch-oceanfront-2"],
            "location": "New Cairo",
            "propertyType": "Apartment",
            "status": "Available",
            "startingPrice": 1500000,
            "currency": "EGP",
            "launchDate": "2025-03-01",
            "completionDate": "2027-12-31",
            "area": 120,
            "areaUnit": "sqm",
            "bedrooms": 2,
            "bathrooms": 2,
            "features": ["Smart home", "Balcony", "Storage"],
            "amenities": ["Pool", "Gym", "Parking", "24/7 Security"],
            "coordinates": {"latitude": 30.0444, "longitude": 31.2357},
            "nearbyFacilities": [
                {"name": "Cairo International School", "type": "School", "distance": 1500, "distanceUnit": "m"},
                {"name": "Metro Station", "type": "Transportation", "distance": 500, "distanceUnit": "m"},
            ],
            "paymentPlans": [
                {
                    "name": "Standard Plan",
                    "description": "10% down payment with flexible installments",
                    "downPayment": 10,
                    "installments": 60,
                    "installmentPeriod": "monthly",
                },
            ],
            "isFeatured": True,
            "isActive": True,
            "contactInfo": {"phone": "+201234567890", "email": "sales@example.com", "website": "https://example.com"},
        },
        {
            "_comment": "statuses: Available, Coming Soon, Pre-Launch, Sold Out",
            "title": "Green Valley Villas",
            "developer": "Sodic",
            "description": "Exclusive villa community with lush landscapes",
            "content": "Beautifully landscaped gardens, walking trails, and premium villa designs.",
            "image": "launch-greenvalley-main",
            "images": ["launch-greenvalley-1"],
            "location": "Sheikh Zayed",
            "propertyType": "Villa",
            "status": "Coming Soon",
            "startingPrice": 8500000,
            "currency": "EGP",
            "launchDate": "2025-06-15",
            "completionDate": "2028-06-30",
            "area": 350,
            "areaUnit": "sqm",
            "bedrooms": 4,
            "bathrooms": 4,
            "features": ["Private garden", "Home office", "Terrace"],
            "amenities": ["Club house", "Kids area", "Jogging track"],
            "isFeatured": True,
            "isActive": True,
        },
    ],
}


def get_template(entity: str) -> List[Dict[str, Any]]:
    """Deep copy of the example records for `entity`."""
    if entity not in TEMPLATES:
        raise UnknownEntityError(f"Invalid entity type: {entity}")
    return copy.deepcopy(TEMPLATES[entity])
