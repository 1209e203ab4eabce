"""Serialization of report trees to TRX files."""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path

from trx_logger.namespaces import namespace_of

log = logging.getLogger(__name__)


def report_file_name(user_name: str, machine_name: str, at: datetime) -> str:
    """Return the report file name for a user, machine and local time."""
    return f"{user_name}_{machine_name} {at:%Y-%m-%d %H_%M_%S}.trx"


def serialize_report(root: ET.Element) -> bytes:
    """Serialize a normalized report tree to UTF-8 with an XML declaration.

    The root's namespace is emitted as the default namespace, so every element
    must already be qualified (see :func:`trx_logger.namespaces.normalize_namespaces`).

    Raises:
        ValueError: If the tree still contains unqualified elements

    """
    ET.indent(root, space="  ")
    return ET.tostring(
        root,
        encoding="UTF-8",
        xml_declaration=True,
        default_namespace=namespace_of(root.tag) or None,
    )


def write_report(root: ET.Element, directory: Path, file_name: str) -> Path:
    """Write a normalized report tree and return the written path.

    The document is serialized completely before the file is opened, so a
    tree that cannot be serialized leaves no file behind.

    Raises:
        OSError: If the file cannot be written
        ValueError: If the tree still contains unqualified elements

    """
    content = serialize_report(root)
    path = directory / file_name
    path.write_bytes(content)
    log.info("Saved to: %s", path)
    return path
