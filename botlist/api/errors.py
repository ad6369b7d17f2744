from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from botlist.schemas.common import ErrorResponse
from botlist.services.errors import ErrorKind, WorkflowError


def register_error_handlers(app: FastAPI) -> None:
    """Render workflow rejections and malformed bodies as ErrorResponse."""

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
        body = ErrorResponse(code=exc.kind.value, message=exc.message, retryable=exc.retryable)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        body = ErrorResponse(
            code=ErrorKind.INVALID_PAYLOAD.value,
            message="Invalid payload",
            retryable=True,
            details=[{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()],
        )
        return JSONResponse(status_code=400, content=body.model_dump())
