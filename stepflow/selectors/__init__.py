# stepflow/selectors/__init__.py
"""
Selectors package
-----------------
Translates flow selector notations into driver-addressable locators.
"""

from .locator import resolve_selector, TEXT_PREFIX, XPATH_PREFIX

__all__ = [
    "resolve_selector",
    "TEXT_PREFIX",
    "XPATH_PREFIX",
]
