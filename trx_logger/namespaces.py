"""Namespace cleanup for assembled report trees."""

import xml.etree.ElementTree as ET


def namespace_of(tag: str) -> str:
    """Return the namespace URI of a Clark-notation tag, or an empty string."""
    if tag.startswith("{"):
        return tag[1 : tag.index("}")]
    return ""


def local_name(tag: str) -> str:
    """Return the local part of a Clark-notation tag."""
    return tag.rpartition("}")[2]


def normalize_namespaces(root: ET.Element) -> int:
    """Move every unqualified descendant into its parent's namespace.

    Elements are built without a namespace and inherit the root's one here,
    dropping any explicit ``xmlns`` attribute they carry. Parents are handled
    before their children, so the namespace propagates down the whole tree.

    Returns:
        Number of elements that were changed

    """
    changed = 0
    pending = [root]
    while pending:
        parent = pending.pop()
        namespace = namespace_of(parent.tag) if isinstance(parent.tag, str) else ""
        for child in parent:
            # Comments and processing instructions use callables as tags
            if not isinstance(child.tag, str):
                continue
            if not namespace_of(child.tag):
                had_xmlns = child.attrib.pop("xmlns", None) is not None
                if namespace:
                    child.tag = f"{{{namespace}}}{local_name(child.tag)}"
                if had_xmlns or namespace:
                    changed += 1
            pending.append(child)
    return changed
