import json

import pytest

from catalog_indexer.codes import load_code_table, translate, translate_country
from catalog_indexer.config import ROOT_DIR
from catalog_indexer.errors import ConfigurationError


def test_translate_keeps_unknown_codes():
    assert translate(["eng", "xyz"], {"eng": "English"}) == ["English", "xyz"]


def test_translate_preserves_order_and_cardinality():
    table = {"eng": "English", "fre": "French"}
    assert translate(["fre", "eng", "fre", "zzz"], table) == ["French", "English", "French", "zzz"]


def test_translate_country_trims_filler():
    assert translate_country("xx|", {"xx": "No place, unknown, or undetermined"}) == "No place, unknown, or undetermined"
    assert translate_country(" mau", {"mau": "Massachusetts"}) == "Massachusetts"
    assert translate_country("qq ", {}) == "qq"


def test_load_xml_code_list(tmp_path):
    path = tmp_path / "languages.xml"
    path.write_text(
        """<?xml version="1.0"?>
<codelist xmlns="info:lc/xmlns/codelist-v1">
  <languages>
    <language><name>English</name><code>eng</code></language>
    <language><name>French</name><code>fre</code></language>
    <language><name>Broken</name></language>
  </languages>
</codelist>
""",
        encoding="utf-8",
    )
    table = load_code_table("language", path)
    assert dict(table) == {"eng": "English", "fre": "French"}


def test_code_table_is_read_only(tmp_path):
    path = tmp_path / "countries.json"
    path.write_text(json.dumps({"mau": "Massachusetts"}), encoding="utf-8")
    table = load_code_table("country", path)
    with pytest.raises(TypeError):
        table["nyu"] = "New York"


def test_empty_or_missing_code_list_is_configuration_error(tmp_path):
    path = tmp_path / "empty.xml"
    path.write_text("<codelist><languages/></codelist>", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_code_table("language", path)
    with pytest.raises(ConfigurationError):
        load_code_table("language", tmp_path / "missing.xml")


def test_bundled_code_lists_load():
    languages = load_code_table("language", ROOT_DIR / "config" / "languages.xml")
    countries = load_code_table("country", ROOT_DIR / "config" / "countries.xml")
    assert languages["eng"] == "English"
    assert countries["mau"] == "Massachusetts"
