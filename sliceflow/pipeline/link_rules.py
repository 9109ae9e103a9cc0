"""
Guardrail rules for provisional slice links.

Each rule is a predicate over a slice's text and its assigned link. Rules
are evaluated in a fixed order and the first match names the problem.
"""

import re
from abc import ABC, abstractmethod
from typing import List, Optional

from sliceflow.core.models import Slice

PRICE_PATTERN = re.compile(r"[$€£]\s?\d|\d+(?:[.,]\d{2})?\s?(?:usd|eur|gbp)\b", re.IGNORECASE)
APPAREL_PATTERN = re.compile(
    r"\b(?:shirts?|t-shirts?|tees?|tops?|hoodies?|sweaters?|sweatshirts?|jackets?|coats?|"
    r"dress(?:es)?|skirts?|pants|jeans|shorts|leggings|joggers|shoes?|sneakers?|boots?|"
    r"sandals?|socks?|hats?|caps?|beanies?|bags?|backpacks?|bras?|swimsuits?)\b",
    re.IGNORECASE
)
YEAR_PATTERN = re.compile(r"(?<!\d)(202[4-9]|203\d)(?!\d)")


def is_collection_link(link: Optional[str]) -> bool:
    """Whether a link points at a collection or category rather than a product."""
    if not link:
        return False
    lowered = link.lower()
    return "/products/" not in lowered and ("/collections/" in lowered or "/category/" in lowered)


def looks_like_product(slice_: Slice) -> bool:
    """Price, apparel keyword, or a multi-column layout."""
    text = slice_.text
    return (
        bool(PRICE_PATTERN.search(text))
        or bool(APPAREL_PATTERN.search(text))
        or slice_.total_columns > 1
    )


class LinkRule(ABC):
    """
    A named predicate that flags an imperfect link assignment.
    """

    name = ""

    @abstractmethod
    def matches(self, slice_: Slice, link: str) -> bool:
        """
        Args:
            slice_ (Slice): Slice with description and alt text
            link (str): Assigned link

        Returns:
            bool: True if the assignment looks wrong
        """
        pass


class ProductCollectionMismatch(LinkRule):
    """A product-looking slice linked to a collection page."""

    name = "product_slice_matched_collection"

    def matches(self, slice_: Slice, link: str) -> bool:
        return looks_like_product(slice_) and is_collection_link(link)


class YearMismatch(LinkRule):
    """The link names a year the slice does not mention."""

    name = "year_mismatch"

    def matches(self, slice_: Slice, link: str) -> bool:
        text_years = set(YEAR_PATTERN.findall(slice_.text))
        if not text_years:
            return False
        return any(year not in text_years for year in YEAR_PATTERN.findall(link))


class SharedMultiColumnLink(LinkRule):
    """A column of a split row carrying a collection-level link."""

    name = "multi_column_shared_collection"

    def matches(self, slice_: Slice, link: str) -> bool:
        return slice_.total_columns > 1 and is_collection_link(link)


DEFAULT_LINK_RULES: List[LinkRule] = [
    ProductCollectionMismatch(),
    YearMismatch(),
    SharedMultiColumnLink(),
]


def find_violation(slice_: Slice, rules: Optional[List[LinkRule]] = None) -> Optional[str]:
    """
    Name of the first rule a slice's link breaks.

    Args:
        slice_ (Slice): Slice to check
        rules (List[LinkRule], optional): Rules in evaluation order

    Returns:
        Optional[str]: Rule name, or None if the link passes or is unset
    """
    if not slice_.link:
        return None
    for rule in rules if rules is not None else DEFAULT_LINK_RULES:
        if rule.matches(slice_, slice_.link):
            return rule.name
    return None
