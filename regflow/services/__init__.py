from regflow.services.dates import (
    to_backend_date, from_backend_date, format_backend_date,
)
from regflow.services.merge import (
    build_completion_payload, build_step_payload, canonical_json,
    MissingIdentityError,
)
from regflow.services.profile_api import (
    ApiResponse, ProfileBackend, ProfileApiClient,
)

__all__ = [
    # dates
    "to_backend_date", "from_backend_date", "format_backend_date",
    # completion merge
    "build_completion_payload", "build_step_payload", "canonical_json",
    "MissingIdentityError",
    # backend
    "ApiResponse", "ProfileBackend", "ProfileApiClient",
]
