# stepflow/core/templates.py
"""Built-in flow templates used by `stepflow create`."""

from __future__ import annotations

import copy
import re
from typing import Any, Optional

TEMPLATES: dict[str, dict[str, Any]] = {
    "signup": {
        "name": "Signup Flow",
        "baseUrl": "https://example.com",
        "steps": [
            {"goto": "/"},
            {"click": "text=Sign Up"},
            {"waitFor": "#email"},
            {"type": "#email", "text": "test@example.com"},
            {"type": "#password", "text": "SecurePass123!"},
            {"type": "#confirm-password", "text": "SecurePass123!"},
            {"click": "button[type=submit]"},
            {"waitFor": ".dashboard", "timeout": 10000},
            {"screenshot": "signup-complete"},
            {"verify": "h1", "contains": "Welcome"},
        ],
    },
    "login": {
        "name": "Login Flow",
        "baseUrl": "https://example.com",
        "steps": [
            {"goto": "/login"},
            {"waitFor": "#email"},
            {"type": "#email", "text": "user@example.com"},
            {"type": "#password", "text": "password123"},
            {"click": "button[type=submit]"},
            {"waitFor": ".dashboard", "timeout": 10000},
            {"screenshot": "login-complete"},
            {"verify": "h1", "contains": "Dashboard"},
        ],
    },
    "checkout": {
        "name": "Checkout Flow",
        "baseUrl": "https://example.com",
        "steps": [
            {"goto": "/products"},
            {"click": ".product-card:first-child button"},
            {"waitFor": ".cart-badge"},
            {"click": "text=Checkout"},
            {"waitFor": "#card-element", "timeout": 10000},
            {"screenshot": "checkout-page"},
            {"type": "#email", "text": "customer@example.com"},
            {"type": "#name", "text": "Test Customer"},
            {"screenshot": "checkout-filled"},
        ],
    },
}

TEMPLATE_DESCRIPTIONS = {
    "signup": "User registration flow",
    "login": "User authentication flow",
    "checkout": "Payment/checkout flow (Stripe)",
}


def get_template(name: str, *, flow_name: Optional[str] = None, base_url: Optional[str] = None) -> Optional[dict[str, Any]]:
    """Return a fresh copy of a template, optionally renamed / re-targeted."""
    template = TEMPLATES.get(name)
    if template is None:
        return None
    out = copy.deepcopy(template)
    if flow_name:
        out["name"] = flow_name
    if base_url:
        out["baseUrl"] = base_url
    return out


def flow_filename(name: str) -> str:
    """'My Login Test' -> 'my-login-test.json'"""
    return re.sub(r"\s+", "-", name.strip().lower()) + ".json"
