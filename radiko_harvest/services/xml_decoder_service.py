from collections.abc import Collection
from typing import Any
import logging
import re

from lxml import etree # type: ignore

from radiko_harvest.exceptions import XMLDecodeError

logger = logging.getLogger(__name__)

TEXT_KEY = "#text"

_INTEGER_RE = re.compile(r"^[-+]?(0|[1-9][0-9]*)$")
_FLOAT_RE = re.compile(r"^[-+]?(0|[1-9][0-9]*)(\.[0-9]+)?([eE][-+]?[0-9]+)?$")


def decode_xml(raw: bytes | str, *, force_list: Collection[str] = ()) -> dict[str, Any]:
    """
    Decode XML text into a generic tree of dicts, lists and scalars

    Attributes and child elements share one key namespace (no prefix).
    Repeated sibling tags become lists, as does every tag named in force_list.

    Args:
        raw: XML document as bytes or str
        force_list: Tag names that always decode to a list

    Returns:
        Mapping of the root tag to its decoded value

    Raises:
        XMLDecodeError: If the payload is not well-formed XML
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")

    parser = etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
    )
    try:
        root = etree.fromstring(raw, parser=parser)
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.error(f"XML parsing error: {e}")
        raise XMLDecodeError(f"Malformed XML: {e}") from e

    if root is None:
        raise XMLDecodeError("Empty XML document")

    logger.debug(f"XML document loaded (root tag: {root.tag})")
    force = frozenset(force_list)
    return {_local_name(root.tag): _element_to_value(root, force)}


def _element_to_value(element: etree._Element, force_list: frozenset[str]) -> Any:
    """Convert one element and its subtree"""
    children = [child for child in element if isinstance(child.tag, str)]
    text = _direct_text(element)

    if not children and not element.attrib:
        return _coerce_scalar(text)

    node: dict[str, Any] = {}
    for name, value in element.attrib.items():
        node[_local_name(name)] = value

    for child in children:
        key = _local_name(child.tag)
        value = _element_to_value(child, force_list)
        if key not in node:
            node[key] = [value] if key in force_list else value
        elif isinstance(node[key], list):
            node[key].append(value)
        else:
            node[key] = [node[key], value]

    if text:
        node[TEXT_KEY] = _coerce_scalar(text)

    return node


def _direct_text(element: etree._Element) -> str:
    """Text directly owned by an element, excluding descendants"""
    parts = [element.text or ""]
    parts.extend(child.tail or "" for child in element)
    return "".join(parts).strip()


def _coerce_scalar(text: str) -> str | int | float:
    """Parse plain numeric literals; leading zeros keep the value a string"""
    if _INTEGER_RE.match(text):
        return int(text)
    if _FLOAT_RE.match(text):
        return float(text)
    return text


def _local_name(tag: str) -> str:
    return etree.QName(tag).localname
