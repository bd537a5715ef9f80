# specgen/core/templates.py
"""
Template family registry.

Each family gives the prompt assembler extra context (name, description and the
requirements features of that family usually need).
"""

from typing import Any, Dict, List, Optional

TEMPLATES: List[Dict[str, Any]] = [
    {
        "id": "crud",
        "name": "CRUD Operations",
        "description": "Create, Read, Update, Delete operations for data management",
        "example": "I need a user management system with create, read, update, and delete operations",
        "category": "data-management",
        "complexity": "simple",
        "estimatedHours": 16,
        "commonRequirements": ["Data validation", "Database operations", "REST API endpoints", "Error handling"],
    },
    {
        "id": "auth",
        "name": "Authentication",
        "description": "User authentication and authorization systems",
        "example": "I need a login system with user registration and password reset",
        "category": "security",
        "complexity": "medium",
        "estimatedHours": 28,
        "commonRequirements": ["User registration", "Login/logout", "Password hashing", "JWT tokens", "Session management"],
    },
    {
        "id": "ecommerce",
        "name": "E-commerce",
        "description": "Online shopping and payment processing features",
        "example": "I need a shopping cart with product catalog and checkout process",
        "category": "business",
        "complexity": "complex",
        "estimatedHours": 48,
        "commonRequirements": ["Product catalog", "Shopping cart", "Payment processing", "Order management", "Inventory tracking"],
    },
    {
        "id": "api",
        "name": "API Integration",
        "description": "External API integrations and data synchronization",
        "example": "I need to integrate with a payment gateway and send email notifications",
        "category": "integration",
        "complexity": "medium",
        "estimatedHours": 24,
        "commonRequirements": ["External API calls", "Data transformation", "Error handling", "Rate limiting", "Webhook handling"],
    },
    {
        "id": "dashboard",
        "name": "Dashboard",
        "description": "Data visualization and reporting interfaces",
        "example": "I need an admin dashboard with charts and user analytics",
        "category": "analytics",
        "complexity": "medium",
        "estimatedHours": 32,
        "commonRequirements": ["Data aggregation", "Chart generation", "Real-time updates", "Export functionality", "User permissions"],
    },
    {
        "id": "notification",
        "name": "Notification System",
        "description": "Email, SMS, and push notification systems",
        "example": "I need to send email notifications and push notifications to users",
        "category": "communication",
        "complexity": "medium",
        "estimatedHours": 20,
        "commonRequirements": ["Email templates", "Push notifications", "SMS integration", "Notification preferences", "Delivery tracking"],
    },
    {
        "id": "file-upload",
        "name": "File Management",
        "description": "File upload, storage, and processing systems",
        "example": "I need users to upload images and documents with validation and storage",
        "category": "storage",
        "complexity": "medium",
        "estimatedHours": 18,
        "commonRequirements": ["File validation", "Cloud storage", "Image processing", "File metadata", "Access control"],
    },
]

TEMPLATE_IDS = tuple(t["id"] for t in TEMPLATES)


def get_all_templates() -> List[Dict[str, Any]]:
    return [dict(t) for t in TEMPLATES]


def get_template_by_id(template_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not template_id:
        return None
    for t in TEMPLATES:
        if t["id"] == template_id:
            return dict(t)
    return None


def search_templates(keyword: str) -> List[Dict[str, Any]]:
    term = (keyword or "").strip().lower()
    if not term:
        return get_all_templates()
    out = []
    for t in TEMPLATES:
        if (
            term in t["name"].lower()
            or term in t["description"].lower()
            or any(term in r.lower() for r in t["commonRequirements"])
        ):
            out.append(dict(t))
    return out


def filter_templates(templates: List[Dict[str, Any]],
                     category: Optional[str] = None,
                     complexity: Optional[str] = None) -> List[Dict[str, Any]]:
    if category:
        templates = [t for t in templates if t.get("category") == category]
    if complexity:
        templates = [t for t in templates if t.get("complexity") == complexity]
    return templates


def template_filters() -> Dict[str, List[str]]:
    """Distinct categories/complexities, in registry order."""
    categories: List[str] = []
    complexities: List[str] = []
    for t in TEMPLATES:
        if t["category"] not in categories:
            categories.append(t["category"])
        if t["complexity"] not in complexities:
            complexities.append(t["complexity"])
    return {"categories": categories, "complexities": complexities}
