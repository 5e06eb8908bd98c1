"""XML-to-dict and dict-to-XML conversion for SOAP envelopes.

Converts XML response bodies into plain dicts so payload shapes (pydantic
models) can validate them, and converts dicts dumped from payload shapes
into XML request bodies.

Mapping rules shared by both directions:
- Element names are dict keys. On parse, namespace URIs are stripped
  (``{http://schemas.xmlsoap.org/soap/envelope/}Body`` becomes ``Body``).
  On serialize, keys are written verbatim, so ``soap:Body`` stays prefixed.
- ``@name`` keys are attributes. Namespace declarations are emitted on
  serialize (``@xmlns:soap``) but never reported on parse.
- ``#text`` is the text of an element that also has attributes or children.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any


# ---------------------------------------------------------------------------
# XML bytes → Python dict  (response parsing)
# ---------------------------------------------------------------------------


def xml_to_dict(
    xml_bytes: bytes,
    force_list: set[str] | None = None,
) -> dict[str, Any]:
    """Convert XML bytes into a dict.

    Args:
        xml_bytes: Raw XML response body.
        force_list: Tag names that must always be wrapped in a list, even
            when only a single child element exists.

    Returns:
        Dict with the root element tag (namespace stripped) as the single
        top-level key.

    Raises:
        ET.ParseError: If *xml_bytes* is not well-formed XML.
    """
    force_list = force_list or set()
    root = ET.fromstring(xml_bytes)
    return {strip_ns(root.tag): _element_to_dict(root, force_list)}


def strip_ns(tag: str) -> str:
    """Remove namespace URI prefix: ``{http://...}Name`` → ``Name``."""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def local_name(name: str) -> str:
    """Remove a qualified-name prefix: ``soap:Body`` → ``Body``."""
    return strip_ns(name).rsplit(":", 1)[-1]


def _element_to_dict(
    element: ET.Element,
    force_list: set[str],
) -> dict[str, Any] | str | None:
    """Recursively convert a single XML element to a dict, string, or None.

    - Attributes → ``@attr_name`` keys (namespaced attributes are skipped).
    - Child elements → grouped by tag name.  Repeated tags, or tags in
      *force_list*, become lists.
    - Text-only leaf elements → plain string, whitespace preserved.
    - Empty elements (``<detail/>``) → None.
    - Whitespace-only text beside attributes or children is dropped.
    """
    result: dict[str, Any] = {}

    for attr_name, attr_value in element.attrib.items():
        if attr_name.startswith("xmlns") or attr_name.startswith("{"):
            continue
        result[f"@{attr_name}"] = attr_value

    children_by_tag: dict[str, list[Any]] = {}
    for child in element:
        tag = strip_ns(child.tag)
        children_by_tag.setdefault(tag, []).append(
            _element_to_dict(child, force_list)
        )

    for tag, values in children_by_tag.items():
        if tag in force_list or len(values) > 1:
            result[tag] = values
        else:
            result[tag] = values[0]

    text = element.text or ""
    if not result:
        # Leaf text is kept verbatim; only a truly empty element is None
        return text or None
    if text.strip():
        result["#text"] = text

    return result


# ---------------------------------------------------------------------------
# Python dict → XML bytes  (request serialization)
# ---------------------------------------------------------------------------


def dict_to_xml(data: dict[str, Any]) -> bytes:
    """Convert a dict to XML bytes for use as an HTTP request body.

    The dict must have exactly one top-level key, which becomes the root
    element name.  Nested dicts become child elements, lists become
    repeated sibling elements, ``None`` becomes an empty element and
    scalars become text content (booleans as ``true``/``false``).

    Raises:
        ValueError: If *data* does not have exactly one top-level key.
    """
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(
            f"dict_to_xml expects a dict with exactly one top-level key "
            f"(the root element), got {type(data).__name__} with "
            f"{len(data) if isinstance(data, dict) else 'N/A'} keys"
        )

    root_tag = next(iter(data))
    root_element = _dict_to_element(root_tag, data[root_tag])

    return ET.tostring(root_element, encoding="utf-8", xml_declaration=True)


def _dict_to_element(tag: str, value: Any) -> ET.Element:
    """Recursively convert a tag + value pair into an XML Element."""
    element = ET.Element(tag)

    if value is None:
        pass
    elif isinstance(value, dict):
        for key, child_value in value.items():
            if key == "#text":
                if child_value is not None:
                    element.text = _text(child_value)
                continue
            if key.startswith("@"):
                if child_value is not None:
                    element.set(key[1:], _text(child_value))
                continue
            if isinstance(child_value, list):
                for item in child_value:
                    element.append(_dict_to_element(key, item))
            else:
                element.append(_dict_to_element(key, child_value))
    elif isinstance(value, list):
        for item in value:
            element.append(_dict_to_element("item", item))
    else:
        element.text = _text(value)

    return element


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
