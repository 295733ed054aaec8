from query_pattern_doctor.relations.base import RelationFactsProvider
from query_pattern_doctor.relations.static import StaticRelationFacts
from query_pattern_doctor.relations.supabase import SupabaseSchemaProvider

__all__ = [
    "RelationFactsProvider",
    "StaticRelationFacts",
    "SupabaseSchemaProvider",
]
