import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from specgen.api.generate import router as generate_router
from specgen.core.validator import format_path
from specgen.utils.config import LOG_LEVEL

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Feature Specification Generator")
app.include_router(generate_router, prefix="/api")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [{"field": format_path(err.get("loc", ())), "message": err.get("msg", "")} for err in exc.errors()]
    return JSONResponse(status_code=400, content={
        "error": {"code": "VALIDATION_ERROR", "message": "Invalid request data", "details": details},
    })


@app.get("/health")
async def health():
    return {"status": "ok"}
