from galleria.api.shared.helpers.errors import (
    ErrorCode,
    create_error_response,
    domain_error_response,
    error_code_for,
    get_error_info,
)

__all__ = [
    "ErrorCode",
    "create_error_response",
    "domain_error_response",
    "error_code_for",
    "get_error_info",
]
