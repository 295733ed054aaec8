import pytest

from query_pattern_doctor.domain import Association, Cardinality, RelationFacts, TableFacts
from query_pattern_doctor.sql.classifier import RelationClassifier
from query_pattern_doctor.sql.extractor import SqlStructureExtractor


def _facts(primary_keys: dict[str, set[str]], associations=None) -> RelationFacts:
    return RelationFacts.from_tables(
        [TableFacts(table=table, primary_key_columns=frozenset(columns)) for table, columns in primary_keys.items()],
        associations or {},
    )


def _classify(sql: str, relations: RelationFacts) -> bool:
    extractor = SqlStructureExtractor()
    structure = extractor.describe(sql)
    assert structure.main_table is not None
    return RelationClassifier().is_collection_join(
        structure.joins[0], structure.main_table.table, relations, structure.aliases
    )


@pytest.fixture
def keyed() -> RelationFacts:
    return _facts({"customers": {"id"}, "orders": {"id"}})


class TestPrimaryKeyVotes:
    def test_parent_key_to_child_foreign_key_is_collection(self, keyed: RelationFacts) -> None:
        sql = "SELECT c.id FROM customers c JOIN orders o ON o.customer_id = c.id"
        assert _classify(sql, keyed) is True

    def test_child_key_is_scalar(self, keyed: RelationFacts) -> None:
        sql = "SELECT o.id FROM orders o JOIN customers c ON c.id = o.customer_id"
        assert _classify(sql, keyed) is False

    def test_operand_order_does_not_matter(self, keyed: RelationFacts) -> None:
        sql = "SELECT c.id FROM customers c JOIN orders o ON c.id = o.customer_id"
        assert _classify(sql, keyed) is True

    def test_unknown_tables_default_to_id_key(self) -> None:
        sql = "SELECT c.id FROM customers c JOIN orders o ON o.customer_id = c.id"
        assert _classify(sql, RelationFacts()) is True

    def test_composite_key_agreement(self) -> None:
        relations = _facts({"orders": {"id", "tenant_id"}, "lines": {"id"}})
        sql = (
            "SELECT o.id FROM orders o "
            "JOIN lines l ON l.order_id = o.id AND l.tenant_id = o.tenant_id"
        )
        assert _classify(sql, relations) is True

    def test_composite_key_disagreement_falls_back(self) -> None:
        relations = _facts({"orders": {"id"}, "lines": {"id"}})
        sql = "SELECT o.id FROM orders o JOIN lines l ON l.order_id = o.id AND l.id = o.line_id"
        assert _classify(sql, relations) is False

    def test_unqualified_columns_fall_back(self, keyed: RelationFacts) -> None:
        sql = "SELECT * FROM customers JOIN orders ON customer_id = id"
        assert _classify(sql, keyed) is False


class TestAssociationFallback:
    @pytest.fixture
    def relations(self) -> RelationFacts:
        return _facts(
            {"customers": {"id"}, "orders": {"id"}, "segments": {"id"}},
            {
                ("orders", "customer"): Association("customers", Cardinality.MANY_TO_ONE),
                ("segments", "members"): Association("customers", Cardinality.MANY_TO_MANY),
            },
        )

    def test_owner_association_wins(self, relations: RelationFacts) -> None:
        sql = "SELECT o.id FROM orders o JOIN customers c ON c.email = o.customer_email"
        assert _classify(sql, relations) is False

    def test_other_owner_collection_association(self, relations: RelationFacts) -> None:
        sql = "SELECT s.id FROM segments s JOIN customers c ON c.email = s.owner_email"
        assert _classify(sql, relations) is True

    def test_any_owner_when_parent_has_none(self, relations: RelationFacts) -> None:
        sql = "SELECT x.id FROM exports x JOIN customers c ON c.email = x.email"
        assert _classify(sql, relations) is True

    def test_no_association_is_scalar(self, relations: RelationFacts) -> None:
        sql = "SELECT o.id FROM orders o JOIN invoices i ON i.ref = o.ref"
        assert _classify(sql, relations) is False
