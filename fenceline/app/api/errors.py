from fastapi import HTTPException

from fenceline.app.core.exceptions import ServiceError


def handle_service_error(e: ServiceError):
    """Convert service exceptions to HTTP exceptions."""
    if e.error_code:
        raise HTTPException(
            status_code=e.status_code,
            detail={"error_code": e.error_code, "message": e.message},
        )
    raise HTTPException(status_code=e.status_code, detail=e.message)
