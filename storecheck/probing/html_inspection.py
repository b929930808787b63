"""
BeautifulSoup-based element presence checks.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from bs4 import BeautifulSoup


@dataclass(frozen=True)
class ElementDescriptor:
    """
    Tag name plus one optional attribute constraint.

    ``equals`` requires an exact attribute value, ``contains`` a substring;
    with neither set the attribute only has to be present.
    """

    tag: str
    attribute: str | None = None
    equals: str | None = None
    contains: str | None = None

    def css_selector(self) -> str:
        if self.attribute is None:
            return self.tag
        if self.equals is not None:
            return f'{self.tag}[{self.attribute}="{_escape(self.equals)}"]'
        if self.contains is not None:
            return f'{self.tag}[{self.attribute}*="{_escape(self.contains)}"]'
        return f"{self.tag}[{self.attribute}]"


SHOPIFY_CHECKOUT_META = ElementDescriptor(
    tag="meta",
    attribute="name",
    equals="shopify-checkout-api-token",
)
SHOPIFY_SCRIPT = ElementDescriptor(tag="script", attribute="src", contains="shopify")
PASSWORD_INPUT = ElementDescriptor(tag="input", attribute="type", equals="password")


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class HTMLInspector:
    """
    Answers whether an HTML document contains elements matching a descriptor.
    """

    def __init__(self, *, parser: str = "html.parser") -> None:
        self._parser = parser

    def has_match(self, html: str, descriptor: ElementDescriptor) -> bool:
        return self.first_match(html, [descriptor]) is not None

    def first_match(
        self,
        html: str,
        descriptors: Sequence[ElementDescriptor],
    ) -> ElementDescriptor | None:
        """
        Parse `html` once and return the first descriptor with a matching element.
        """

        if not html or not descriptors:
            return None
        soup = BeautifulSoup(html, self._parser)
        for descriptor in descriptors:
            if soup.select_one(descriptor.css_selector()) is not None:
                return descriptor
        return None
