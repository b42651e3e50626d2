"""UIAutomator dump parser: converts `uiautomator dump` XML into UINode trees.

Input XML format::

    <hierarchy rotation="0">
        <node index="0" text="" resource-id="" class="android.widget.FrameLayout"
              content-desc="" clickable="false" bounds="[0,0][1080,2400]">
            <node ...>...</node>
        </node>
    </hierarchy>

Empty text attributes become None so the text extractor skips them.
"""

import logging
import re
import xml.etree.ElementTree as ET

from pydantic import BaseModel, ConfigDict

from offerbot.device.base import Bounds, DeviceError

logger = logging.getLogger(__name__)

# Bounds attribute: "[left,top][right,bottom]"
BOUNDS_PATTERN = re.compile(r"\[(-?\d+),(-?\d+)\]\[(-?\d+),(-?\d+)\]")

MAX_DUMP_DEPTH = 128


class UINode(BaseModel):
    """One element of a parsed UI tree. Frozen, since a dump never changes."""

    model_config = ConfigDict(frozen=True)

    text: str | None = None
    resource_id: str = ""
    content_desc: str = ""
    class_name: str = ""
    clickable: bool = False
    bounds: Bounds = (0, 0, 0, 0)
    children: tuple["UINode", ...] = ()


def parse_bounds(raw: str) -> Bounds:
    match = BOUNDS_PATTERN.search(raw or "")
    if match is None:
        return (0, 0, 0, 0)
    left, top, right, bottom = (int(g) for g in match.groups())
    return left, top, right, bottom


def parse_dump(xml_content: str, max_depth: int = MAX_DUMP_DEPTH) -> UINode:
    """Parse uiautomator XML into a UINode tree rooted at the hierarchy.

    Nodes nested deeper than `max_depth` below the hierarchy are dropped.

    Raises:
        DeviceError: If the content holds no parsable hierarchy.
    """
    xml_content = xml_content.strip()
    start = xml_content.find("<hierarchy")
    if start == -1:
        msg = "No <hierarchy> tag found in uiautomator output"
        raise DeviceError(msg)
    # uiautomator may append a status line after the closing tag
    end = xml_content.rfind("</hierarchy>")
    if end != -1:
        xml_content = xml_content[start : end + len("</hierarchy>")]
    else:
        xml_content = xml_content[start:]

    try:
        hierarchy = ET.fromstring(xml_content)
    except ET.ParseError as e:
        msg = f"Malformed uiautomator dump: {e}"
        raise DeviceError(msg) from e

    children = _build_nodes(hierarchy, max_depth)
    screen = _union_bounds([c.bounds for c in children])
    return UINode(class_name="hierarchy", bounds=screen, children=children)


def _node_elements(element: ET.Element) -> list[ET.Element]:
    return [child for child in element if child.tag == "node"]


def _build_nodes(hierarchy: ET.Element, max_depth: int) -> tuple[UINode, ...]:
    """Build the hierarchy's UINodes bottom-up with an explicit stack."""
    built: dict[int, list[UINode]] = {id(hierarchy): []}
    # (element, parent, depth, children_done)
    stack = [(child, hierarchy, 1, False) for child in reversed(_node_elements(hierarchy))]
    truncated = False
    while stack:
        element, parent, depth, children_done = stack.pop()
        if children_done:
            node = _to_node(element, tuple(built.pop(id(element))))
            built[id(parent)].append(node)
            continue
        built[id(element)] = []
        stack.append((element, parent, depth, True))
        nested = _node_elements(element)
        if depth >= max_depth:
            truncated = truncated or bool(nested)
            continue
        stack.extend((child, element, depth + 1, False) for child in reversed(nested))
    if truncated:
        logger.warning("UI dump deeper than %d levels, deeper nodes dropped", max_depth)
    return tuple(built[id(hierarchy)])


def _to_node(element: ET.Element, children: tuple[UINode, ...]) -> UINode:
    return UINode(
        text=element.get("text") or None,
        resource_id=element.get("resource-id", ""),
        content_desc=element.get("content-desc", ""),
        class_name=element.get("class", ""),
        clickable=element.get("clickable") == "true",
        bounds=parse_bounds(element.get("bounds", "")),
        children=children,
    )


def _union_bounds(all_bounds: list[Bounds]) -> Bounds:
    if not all_bounds:
        return (0, 0, 0, 0)
    return (
        min(b[0] for b in all_bounds),
        min(b[1] for b in all_bounds),
        max(b[2] for b in all_bounds),
        max(b[3] for b in all_bounds),
    )
