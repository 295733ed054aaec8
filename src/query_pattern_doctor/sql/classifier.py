from collections.abc import Mapping

from query_pattern_doctor.domain.models import JoinDescriptor, RelationFacts

DEFAULT_PRIMARY_KEY = frozenset({"id"})


def _split_column(reference: str) -> tuple[str, str]:
    qualifier, _, column = reference.rpartition(".")
    return qualifier.strip('"`').lower(), column.strip('"`').lower()


class RelationClassifier:
    """Decides whether a join multiplies rows of the parent (a collection join).

    Equality pairs in the ON clause are oriented first: the side qualified by
    the joined alias is the child. A pair votes "collection" when the parent
    column is part of the parent's primary key and the child column is not,
    and "scalar" for the inverse. Composite keys must agree; anything else
    falls back to the association index.
    """

    def is_collection_join(
        self,
        join: JoinDescriptor,
        from_table: str,
        relations: RelationFacts,
        aliases: Mapping[str, str] | None = None,
    ) -> bool:
        aliases = aliases or {}
        votes: set[bool] = set()
        parent_table: str | None = None

        for left, right in join.conditions:
            oriented = self._orient(left, right, join)
            if oriented is None:
                continue
            child_column, parent_qualifier, parent_column = oriented
            resolved = aliases.get(parent_qualifier, from_table) if parent_qualifier else from_table
            parent_table = parent_table or resolved

            parent_in_key = parent_column in self._primary_key(resolved, relations)
            child_in_key = child_column in self._primary_key(join.table, relations)
            if parent_in_key and not child_in_key:
                votes.add(True)
            elif child_in_key and not parent_in_key:
                votes.add(False)

        if len(votes) == 1:
            return votes.pop()
        return self._from_associations(join.table, parent_table or from_table, relations)

    def _orient(self, left: str, right: str, join: JoinDescriptor) -> tuple[str, str, str] | None:
        child_names = {join.reference.lower(), join.table.lower(), join.table.rsplit(".", 1)[-1].lower()}
        left_qualifier, left_column = _split_column(left)
        right_qualifier, right_column = _split_column(right)
        left_is_child = left_qualifier.rsplit(".", 1)[-1] in child_names if left_qualifier else False
        right_is_child = right_qualifier.rsplit(".", 1)[-1] in child_names if right_qualifier else False

        if left_is_child and not right_is_child:
            return left_column, right_qualifier, right_column
        if right_is_child and not left_is_child:
            return right_column, left_qualifier, left_column
        return None

    def _primary_key(self, table: str, relations: RelationFacts) -> frozenset[str]:
        facts = relations.table(table)
        if facts is None or not facts.primary_key_columns:
            return DEFAULT_PRIMARY_KEY
        return frozenset(column.lower() for column in facts.primary_key_columns)

    def _from_associations(self, joined_table: str, parent_table: str, relations: RelationFacts) -> bool:
        associations = relations.associations_targeting(joined_table, owner=parent_table)
        if not associations:
            associations = relations.associations_targeting(joined_table)
        return any(association.cardinality.is_collection for association in associations)
