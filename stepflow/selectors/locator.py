# stepflow/selectors/locator.py
from __future__ import annotations

"""Selector resolution
---------------------
Maps the selector strings written in flow files to strings the driver can
query directly. Three notations are understood:

- "text=Get Started"   → any element whose own text contains "Get Started"
- "xpath=//button[1]"  → passed through (native driver syntax)
- anything else        → CSS, passed through
"""

TEXT_PREFIX = "text="
XPATH_PREFIX = "xpath="


def _xpath_literal(value: str) -> str:
    """Quote `value` as an XPath string literal, whatever quotes it contains."""
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    parts = value.split('"')
    return "concat(" + ", '\"', ".join(f'"{p}"' for p in parts) + ")"


def resolve_selector(selector: str) -> str:
    """
    Convert a flow selector into a driver locator string.
    Never raises; strings that do not resolve are handed to the driver as-is
    so the failure surfaces at wait/click time.
    """
    if selector.startswith(TEXT_PREFIX):
        text = selector[len(TEXT_PREFIX):]
        return f"xpath=//*[contains(text(),{_xpath_literal(text)})]"

    if selector.startswith(XPATH_PREFIX):
        return selector

    return selector
