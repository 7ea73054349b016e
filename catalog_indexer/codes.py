import json
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, List, Mapping

from catalog_indexer.errors import ConfigurationError

logger = logging.getLogger(__name__)

CodeTable = Mapping[str, str]

COUNTRY_FILLER = " |"


def load_code_table(code_type: str, path: Path) -> CodeTable:
    """Read a code -> name table.

    XML files hold one <{code_type}> element per entry with <code> and <name>
    children (the MARC code list layout). JSON files hold a flat object.
    """
    path = Path(path)
    try:
        if path.suffix.lower() == ".json":
            codes = _load_json_table(path)
        else:
            codes = _load_xml_table(code_type, path)
    except OSError as exc:
        raise ConfigurationError(f"Unable to read {code_type} codes from {path}: {exc}") from exc

    if not codes:
        raise ConfigurationError(f"No {code_type} codes found in {path}")
    logger.info("Loaded %d %s codes from %s", len(codes), code_type, path)
    return MappingProxyType(codes)


def _load_xml_table(code_type: str, path: Path) -> dict:
    try:
        tree = ET.parse(path)
    except ET.ParseError as exc:
        raise ConfigurationError(f"Code list {path} is not valid XML: {exc}") from exc
    codes = {}
    for element in tree.iter():
        if _local_name(element.tag) != code_type:
            continue
        code = name = None
        for child in element:
            local = _local_name(child.tag)
            if local == "code":
                code = (child.text or "").strip()
            elif local == "name":
                name = (child.text or "").strip()
        if code and name:
            codes[code] = name
    return codes


def _load_json_table(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Code list {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Code list {path} must be a JSON object")
    return {str(code): str(name) for code, name in data.items()}


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def translate(codes: Iterable[str], table: CodeTable) -> List[str]:
    # Unknown codes are kept as-is so the output always lines up with the input.
    return [table.get(code) or code for code in codes]


def translate_country(code: str, table: CodeTable) -> str:
    trimmed = code.strip(COUNTRY_FILLER)
    return translate([trimmed], table)[0]
