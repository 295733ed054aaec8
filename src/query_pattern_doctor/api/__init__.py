from query_pattern_doctor.api.client import SupabaseManagementClient
from query_pattern_doctor.api.exceptions import (
    AuthenticationError,
    ManagementAPIError,
    NotFoundError,
    QueryExecutionError,
    RateLimitError,
)
from query_pattern_doctor.api.models import LogQueryParams

__all__ = [
    "SupabaseManagementClient",
    "LogQueryParams",
    "ManagementAPIError",
    "RateLimitError",
    "AuthenticationError",
    "NotFoundError",
    "QueryExecutionError",
]
