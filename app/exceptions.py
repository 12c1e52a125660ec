import logging
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from .application.ports.notification_repo import ContractViolation

logger = logging.getLogger(__name__)

def create_error_response(error_message: str, status_code: int = 400) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message
    }

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", 401)
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, exc.status_code)
    )

async def contract_violation_handler(request: Request, exc: ContractViolation) -> JSONResponse:
    """Malformed notification rows are a server-side fault, not a client error"""
    logger.error(f"Contract violation on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=create_error_response("Malformed notification data", 500)
    )
