"""
Maps typed ledger errors onto HTTP responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ticketing.core.errors import ErrorCode, LedgerError
from ticketing.core.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNKNOWN_TICKET_TYPE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INSUFFICIENT_INVENTORY: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ALREADY_COMPLETED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ALREADY_CANCELLED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_REGISTRATION_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.PERSISTENCE_CONFLICT: status.HTTP_409_CONFLICT,
}


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
    logger.info("ledger_error_response", code=exc.code.value, status_code=status_code)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code.value},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_error_handler)
