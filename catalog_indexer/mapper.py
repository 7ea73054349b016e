import logging
from typing import List, Sequence

from pymarc import Field, Record

from catalog_indexer import lookups
from catalog_indexer.codes import CodeTable, translate, translate_country
from catalog_indexer.errors import MissingTitleError, RecordMappingError
from catalog_indexer.rules import RuleEngine, Ruleset
from catalog_indexer.schemas import BibRecord, Contributor, Holding, Link, RelatedItem

logger = logging.getLogger(__name__)


REQUIRED_LABELS = (
    "title",
    "alternate_titles",
    "creators",
    "contributors",
    "related_place",
    "related_items",
    "in_bibliography",
    "subjects",
    "isbns",
    "issns",
    "dois",
    "oclc_number",
    "lccn",
    "place_of_publication",
    "languages",
    "call_numbers",
    "edition",
    "imprint",
    "physical_description",
    "publication_frequency",
    "publication_date",
    "numbering",
    "notes",
    "contents",
    "summary",
    "literary_form",
)

# Labels the mapper stores as one value; the rest are stored as lists.
SINGLE_VALUED_LABELS = frozenset(
    {
        "title",
        "lccn",
        "place_of_publication",
        "edition",
        "physical_description",
        "publication_date",
        "numbering",
        "literary_form",
    }
)

LINK_TAG = "856"
LINK_FIRST_INDICATOR = "4"
LINK_SECOND_INDICATORS = frozenset({"0", "1"})

# Holdings tag families in priority order: tag, location, collection,
# call number, summary, notes, format subfield codes.
SUMMARY_HOLDINGS = ("866", ("b", "c", "h", "a", "z"))
LOCATION_HOLDINGS = ("852", ("b", "c", "h", "a", "z", "k"))


def control_number(record: Record) -> str:
    fields = record.get_fields("001")
    if not fields:
        return ""
    return (fields[0].data or "").strip()


def leader_byte(record: Record, position: int) -> str:
    leader = str(record.leader or "")
    return leader[position] if len(leader) > position else ""


def subfield_value(field: Field, code: str) -> str:
    for subfield in field.subfields:
        if subfield.code == code:
            return subfield.value
    return ""


def get_links(record: Record) -> List[Link]:
    links: List[Link] = []
    for field in record.get_fields(LINK_TAG):
        if field.indicator1 != LINK_FIRST_INDICATOR or field.indicator2 not in LINK_SECOND_INDICATORS:
            continue
        links.append(
            Link(
                kind=subfield_value(field, "3") or "unknown",
                text=subfield_value(field, "y"),
                url=subfield_value(field, "u"),
                restrictions=subfield_value(field, "z"),
            )
        )
    return links


def get_holdings(record: Record, tag: str, codes: Sequence[str]) -> List[Holding]:
    holdings: List[Holding] = []
    for field in record.get_fields(tag):
        location_code = subfield_value(field, codes[0])
        location = lookups.lookup_location(location_code)
        if len(codes) > 5:
            holding_format = lookups.lookup_format(location, subfield_value(field, codes[5]))
        else:
            holding_format = lookups.DEFAULT_FORMAT
        holdings.append(
            Holding(
                location=location,
                collection=lookups.lookup_collection(subfield_value(field, codes[1]), location_code),
                call_number=subfield_value(field, codes[2]),
                summary=subfield_value(field, codes[3]),
                notes=subfield_value(field, codes[4]),
                format=holding_format,
            )
        )
    return holdings


def check_cardinality(ruleset: Ruleset) -> List[str]:
    """Warn about rules whose ``array`` flag disagrees with how the field is stored."""
    mismatched: List[str] = []
    for label in REQUIRED_LABELS:
        array = ruleset.get(label).array
        single = label in SINGLE_VALUED_LABELS
        if array and single:
            logger.warning("Rule %s is marked array but maps to a single value; only the first value is kept", label)
        elif not array and not single:
            logger.warning("Rule %s is not marked array but maps to a list; every value is kept", label)
        else:
            continue
        mismatched.append(label)
    return mismatched


class RecordMapper:
    """Turns one decoded MARC record into a BibRecord."""

    def __init__(
        self,
        ruleset: Ruleset,
        language_codes: CodeTable,
        country_codes: CodeTable,
        source_name: str = "",
        source_link_base: str = "",
    ) -> None:
        ruleset.require(REQUIRED_LABELS)
        check_cardinality(ruleset)
        self.engine = RuleEngine(ruleset)
        self.language_codes = language_codes
        self.country_codes = country_codes
        self.source_name = source_name
        self.source_link_base = source_link_base

    def map(self, record: Record) -> BibRecord:
        identifier = control_number(record)
        try:
            return self._map(record, identifier)
        except RecordMappingError as exc:
            if exc.identifier is None:
                exc.identifier = identifier
            raise

    def _map(self, record: Record, identifier: str) -> BibRecord:
        engine = self.engine

        title = engine.first(record, "title")
        if not title:
            raise MissingTitleError(f"Record {identifier} has no title, check validity", identifier)

        doc = BibRecord(
            identifier=identifier,
            source=self.source_name,
            source_link=f"{self.source_link_base}{identifier}" if identifier and self.source_link_base else "",
            title=title,
        )

        doc.oclcs = engine.apply_rule(record, "oclc_number")
        doc.lccn = engine.first(record, "lccn").strip()
        doc.alternate_titles = engine.apply_rule(record, "alternate_titles")
        doc.creators = engine.apply_rule(record, "creators")
        doc.contributors = [
            Contributor(kind=kind, value=values) for kind, values in engine.apply_kinds(record, "contributors")
        ]
        doc.related_place = engine.apply_rule(record, "related_place")
        doc.related_items = [
            RelatedItem(kind=kind, value=values) for kind, values in engine.apply_kinds(record, "related_items")
        ]
        doc.in_bibliography = engine.apply_rule(record, "in_bibliography")
        doc.subjects = engine.apply_rule(record, "subjects")
        doc.isbns = engine.apply_rule(record, "isbns")
        doc.issns = engine.apply_rule(record, "issns")
        doc.dois = engine.apply_rule(record, "dois")

        country = engine.first(record, "place_of_publication")
        if country:
            doc.country_of_publication = translate_country(country, self.country_codes)
        doc.languages = translate(engine.apply_rule(record, "languages"), self.language_codes)

        doc.call_numbers = engine.apply_rule(record, "call_numbers")
        doc.edition = engine.first(record, "edition")
        doc.imprint = engine.apply_rule(record, "imprint")
        doc.physical_description = engine.first(record, "physical_description")
        doc.publication_frequency = engine.apply_rule(record, "publication_frequency")
        doc.publication_date = engine.first(record, "publication_date")
        doc.numbering = engine.first(record, "numbering")
        doc.notes = engine.apply_rule(record, "notes")
        doc.contents = engine.apply_rule(record, "contents")
        doc.summary = engine.apply_rule(record, "summary")

        doc.content_type = lookups.content_type(leader_byte(record, 6))
        doc.literary_form = lookups.literary_form(engine.apply_rule(record, "literary_form"))

        doc.links = get_links(record)
        doc.holdings = self.holdings(record)
        doc.format = merge_formats(doc.holdings)
        return doc

    def holdings(self, record: Record) -> List[Holding]:
        holdings = get_holdings(record, *SUMMARY_HOLDINGS)
        if not holdings:
            holdings = get_holdings(record, *LOCATION_HOLDINGS)
        return holdings


def merge_formats(holdings: Sequence[Holding]) -> List[str]:
    formats: List[str] = []
    for holding in holdings:
        if holding.format and holding.format not in formats:
            formats.append(holding.format)
    return formats
