import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from pydantic import ValidationError
from pymarc import Record

from catalog_indexer.errors import ConfigurationError, FieldExtractionError
from catalog_indexer.schemas import FieldSpec, Rule

logger = logging.getLogger(__name__)


class Ruleset:
    """Rules keyed by label. Immutable once loaded."""

    def __init__(self, rules: Iterable[Rule]) -> None:
        by_label: Dict[str, Rule] = {}
        for rule in rules:
            if rule.label in by_label:
                raise ConfigurationError(f"Duplicate rule label: {rule.label}")
            by_label[rule.label] = rule
        self._rules = by_label

    @classmethod
    def load(cls, path: Path, required: Iterable[str] = ()) -> "Ruleset":
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigurationError(f"Unable to read rules file {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Rules file {path} is not valid JSON: {exc}") from exc
        if not isinstance(raw, list):
            raise ConfigurationError(f"Rules file {path} must contain a JSON array of rules")
        try:
            rules = [Rule.model_validate(item) for item in raw]
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid rule in {path}: {exc}") from exc

        ruleset = cls(rules)
        ruleset.require(required)
        logger.info("Loaded %d rules from %s", len(ruleset), path)
        return ruleset

    def require(self, labels: Iterable[str]) -> None:
        missing = sorted(label for label in set(labels) if label not in self._rules)
        if missing:
            raise ConfigurationError(f"Rules are missing required labels: {', '.join(missing)}")

    def get(self, label: str) -> Rule:
        try:
            return self._rules[label]
        except KeyError:
            raise ConfigurationError(f"No rule defined for label {label}") from None

    def labels(self) -> List[str]:
        return list(self._rules)

    def __contains__(self, label: object) -> bool:
        return label in self._rules

    def __len__(self) -> int:
        return len(self._rules)


def extract_field(record: Record, spec: FieldSpec) -> List[str]:
    """Values for every occurrence of spec.tag, one string per occurrence.

    Selected subfields are joined with a space in record order. Control
    fields contribute their whole data. A byte range is applied after
    joining and must fall inside the value.
    """
    byte_range = spec.byte_range()
    values: List[str] = []
    for field in record.get_fields(spec.tag):
        if field.is_control_field():
            value = field.data or ""
        else:
            parts = [subfield.value for subfield in field.subfields if subfield.code in spec.subfields]
            value = " ".join(parts)
        if not value:
            continue
        if byte_range is not None:
            start, length = byte_range
            if start + length > len(value):
                raise FieldExtractionError(
                    f"Byte range {spec.bytes} is out of range for {spec.tag} value of length {len(value)}"
                )
            value = value[start : start + length]
        values.append(value)
    return values


class RuleEngine:
    def __init__(self, ruleset: Ruleset) -> None:
        self.ruleset = ruleset

    def apply_rule(self, record: Record, label: str) -> List[str]:
        rule = self.ruleset.get(label)
        result: List[str] = []
        for spec in rule.fields:
            for value in extract_field(record, spec):
                if value not in result:
                    result.append(value)
        return result

    def first(self, record: Record, label: str) -> str:
        values = self.apply_rule(record, label)
        return values[0] if values else ""

    def apply_kinds(self, record: Record, label: str) -> List[Tuple[str, List[str]]]:
        """One (kind, values) entry per field spec that matched anything."""
        rule = self.ruleset.get(label)
        entries: List[Tuple[str, List[str]]] = []
        for spec in rule.fields:
            values = extract_field(record, spec)
            if values:
                entries.append((spec.kind, values))
        return entries
