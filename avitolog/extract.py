"""
Small helpers for selector cascades over BeautifulSoup documents.

A cascade is an ordered list of rules. Each rule pairs a CSS selector with
an extractor that turns one matched node into a value (or None to skip it).
New fallbacks are added by appending rules, not by branching.
"""
from typing import Callable, Iterable, List, NamedTuple, Optional

from bs4 import Tag

from .utils import clean_text


class Rule(NamedTuple):
    name: str
    selector: str
    extract: Callable[[Tag], Optional[object]]


def apply_rule(rule: Rule, node: Tag) -> List[object]:
    """Run one rule over a node, dropping matches the extractor rejects."""
    out = []
    for match in node.select(rule.selector):
        value = rule.extract(match)
        if value is not None:
            out.append(value)
    return out


def first_match(node: Tag, selectors: Iterable[str]) -> Optional[Tag]:
    """Return the first node matched by the first selector that matches anything."""
    for sel in selectors:
        found = node.select_one(sel)
        if found is not None:
            return found
    return None


def first_text(node: Tag, selectors: Iterable[str]) -> str:
    """Cleaned text of the first selector in the cascade that yields non-empty text."""
    for sel in selectors:
        found = node.select_one(sel)
        if found is None:
            continue
        text = clean_text(found.get_text(" "))
        if text:
            return text
    return ""


def node_text(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return clean_text(node.get_text(" "))


def attr(node: Optional[Tag], name: str) -> str:
    """String value of an attribute; multi-valued attributes are space-joined."""
    if node is None:
        return ""
    value = node.get(name)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(value).strip()
    return str(value).strip()


def first_href(node: Tag, contains: Optional[str] = None) -> str:
    """First link href below node, optionally restricted to hrefs containing a marker."""
    for a in node.select("a[href]"):
        href = attr(a, "href")
        if not href:
            continue
        if contains is None or contains in href:
            return href
    return ""
