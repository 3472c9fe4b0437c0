"""Rule catalogs stored as flat documents under ``rules/``.

A catalog is one document (``rules/coding-standards.json`` by default)
holding a list of rule items. Every item carries a ``rule-<hex>`` id minted
by ``generate_id``; catalogs written before ids existed get them backfilled
on first read.

A catalog file that exists but does not validate is never overwritten:
reads treat it as absent, writes raise ``MalformedCatalogError``.
"""

import logging
from typing import Any

from pydantic import ValidationError

from memoria.ids import generate_id
from memoria.models import RuleDocument, RuleItem, now_iso
from memoria.store import DocumentStore, validate_id, write_json

logger = logging.getLogger(__name__)

RULES_KIND = "rules"
DEFAULT_CATALOG = "coding-standards"


class MalformedCatalogError(ValueError):
    """A rule catalog exists on disk but could not be validated."""

    def __init__(self, catalog_id: str, error_count: int = 0):
        self.catalog_id = catalog_id
        self.error_count = error_count
        super().__init__(
            f"Rule catalog {catalog_id!r} is malformed ({error_count} errors); "
            "refusing to overwrite it")


class RuleCatalog:
    """CRUD over the rule items of one catalog document."""

    def __init__(self, store: DocumentStore, catalog_id: str = DEFAULT_CATALOG):
        if not validate_id(catalog_id):
            raise ValueError(f"Invalid rule catalog id: {catalog_id!r}")
        self.store = store
        self.catalog_id = catalog_id

    def get_rules(self) -> RuleDocument | None:
        """Load the catalog, backfilling missing rule ids.

        Returns None if the catalog doesn't exist or is malformed.
        """
        try:
            return self._load()
        except MalformedCatalogError as e:
            logger.warning(str(e))
            return None

    def add_rule(self, category: str, rule: str, **fields: Any) -> RuleDocument:
        """Append a rule, creating the catalog if needed.

        Raises:
            MalformedCatalogError: The catalog file exists but is invalid.
        """
        existing = self._load()
        now = now_iso()
        taken = {item.id for item in existing.rules if item.id} if existing else set()
        item = RuleItem(id=generate_id(taken, prefix="rule"), category=category, rule=rule, **fields)

        if existing is None:
            document = RuleDocument(id=self.catalog_id, createdAt=now, updatedAt=now, rules=[item])
        else:
            document = existing.model_copy(update={
                "rules": [*existing.rules, item],
                "updatedAt": now,
            })
        self._write(document)
        return document

    def update_rule(self, rule_id: str, category: str, rule: str, **fields: Any) -> RuleDocument | None:
        """Replace one rule item, keeping its id.

        Returns None if the catalog or the rule doesn't exist.
        """
        existing = self._load()
        if existing is None:
            return None
        position = self._position(existing, rule_id)
        if position is None:
            return None

        rules = list(existing.rules)
        rules[position] = RuleItem(id=rule_id, category=category, rule=rule, **fields)
        document = existing.model_copy(update={"rules": rules, "updatedAt": now_iso()})
        self._write(document)
        return document

    def remove_rule(self, rule_id: str) -> RuleDocument | None:
        existing = self._load()
        if existing is None or self._position(existing, rule_id) is None:
            return None

        rules = [item for item in existing.rules if item.id != rule_id]
        document = existing.model_copy(update={"rules": rules, "updatedAt": now_iso()})
        self._write(document)
        return document

    def _load(self) -> RuleDocument | None:
        path = self.store.locate(RULES_KIND, self.catalog_id)
        if path is None:
            return None
        data = self.store.read(RULES_KIND, self.catalog_id)
        if data is None:
            raise MalformedCatalogError(self.catalog_id)
        try:
            document = RuleDocument.model_validate(data)
        except ValidationError as e:
            raise MalformedCatalogError(self.catalog_id, e.error_count()) from e
        if not document.id:
            document.id = self.catalog_id

        existing_ids = {rule.id for rule in document.rules if rule.id}
        migrated = False
        for rule in document.rules:
            if not rule.id:
                rule.id = generate_id(existing_ids, prefix="rule")
                existing_ids.add(rule.id)
                migrated = True

        if migrated:
            logger.info(f"Backfilled rule ids in {self.catalog_id}")
            self._write(document)
        return document

    @staticmethod
    def _position(document: RuleDocument, rule_id: str) -> int | None:
        for i, item in enumerate(document.rules):
            if item.id == rule_id:
                return i
        return None

    def _write(self, document: RuleDocument) -> None:
        path = self.store.kind_dir(RULES_KIND) / f"{self.catalog_id}.json"
        write_json(path, document.to_dict())
