"""
Catalog Feed Sync - Vendor XML Feed Parser
Parses the vendor's bulk <products><product>...</product></products> feed.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional, Union

import ftfy

from .models import RawFeedRecord
from .exceptions import ParseError

logger = logging.getLogger(__name__)


def ensure_list(value: Any) -> list:
    """
    Coerce a possibly-scalar XML value into a list.

    Generic XML-to-dict conversion yields a scalar when an element occurs
    once and a list when it repeats; callers always get a list back.

    Examples:
        None          -> []
        ""            -> []
        "a.jpg"       -> ["a.jpg"]
        ["a", "b"]    -> ["a", "b"]
    """
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


def element_to_value(element: ET.Element) -> Any:
    """
    Convert an element into plain Python data.

    Leaves become their trimmed text (None when empty); containers become
    dicts, with repeated child tags collected into a list. Attributes are
    ignored.
    """
    children = list(element)
    if not children:
        text = (element.text or "").strip()
        return text or None

    result: Dict[str, Any] = {}
    for child in children:
        value = element_to_value(child)
        if child.tag in result:
            existing = result[child.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[child.tag] = [existing, value]
        else:
            result[child.tag] = value
    return result


class XmlFeedParser:
    """
    Parses the vendor XML feed into RawFeedRecord instances.

    The feed looks like:

        <products>
          <product>
            <sku>123</sku>
            <name>...</name>
            <categories><item>Chairs</item><item>Outdoor</item></categories>
            <photo>https://...</photo>
            <photos><item>https://...</item></photos>
            ...
          </product>
        </products>

    ``categories`` and ``photos`` contain one or more ``<item>`` children;
    they are normalized to lists here so the transformer never has to
    branch on cardinality.
    """

    ROOT_TAG = "products"
    PRODUCT_TAG = "product"
    LIST_FIELDS = ("categories", "photos")
    TEXT_FIELDS = ("name", "description", "comments", "color", "dimensions", "material")

    def parse(self, payload: Union[bytes, str]) -> List[RawFeedRecord]:
        """
        Parse a feed document.

        Args:
            payload: Raw feed bytes (or text) as downloaded

        Returns:
            List of RawFeedRecord in document order

        Raises:
            ParseError: If the document is malformed or has no products
        """
        if not payload:
            raise ParseError("Empty feed document", element=self.ROOT_TAG)

        try:
            root = ET.fromstring(payload)
        except ET.ParseError as e:
            raise ParseError(f"Malformed XML: {e}") from e

        if root.tag != self.ROOT_TAG:
            raise ParseError(
                f"Invalid XML structure: expected <{self.ROOT_TAG}> root, got <{root.tag}>",
                element=self.ROOT_TAG,
            )

        elements = root.findall(self.PRODUCT_TAG)
        if not elements:
            raise ParseError(
                f"Invalid XML structure: missing <{self.ROOT_TAG}><{self.PRODUCT_TAG}> elements",
                element=self.PRODUCT_TAG,
            )

        records = [self._to_record(element) for element in elements]
        logger.info(f"Parsed {len(records)} products from XML")
        return records

    def _to_record(self, element: ET.Element) -> RawFeedRecord:
        fields = element_to_value(element)
        if not isinstance(fields, dict):
            # <product/> with no children at all
            fields = {}

        data: Dict[str, Any] = {}
        for key, value in fields.items():
            if key in self.LIST_FIELDS:
                data[key] = self._items(value, fix_text=(key == "categories"))
            else:
                data[key] = self._scalar(value)

        for key in self.TEXT_FIELDS:
            if isinstance(data.get(key), str):
                data[key] = ftfy.fix_text(data[key])

        return RawFeedRecord.model_validate(data)

    def _items(self, container: Any, fix_text: bool = False) -> List[str]:
        """Extract the <item> values of a list container as strings."""
        if not isinstance(container, dict):
            return []
        items = [item for item in ensure_list(container.get("item")) if isinstance(item, str) and item]
        if fix_text:
            items = [ftfy.fix_text(item) for item in items]
        return items

    @staticmethod
    def _scalar(value: Any) -> Optional[str]:
        """A scalar field that unexpectedly repeats keeps its first value."""
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, dict):
            return None
        return value
