"""Main FastAPI application for the Quantara Watch biometric service."""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from quantara.api import (
    lifespan,
    quantara_error_handler,
    request_validation_handler,
    router,
    unhandled_error_handler,
)
from quantara.config import SERVICE_NAME, SERVICE_VERSION
from quantara.exceptions import QuantaraError

app = FastAPI(
    title=SERVICE_NAME,
    description="Ingests watch biometrics and maintains daily summaries, heart rate zones and trends",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_exception_handler(QuantaraError, quantara_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_error_handler)
app.include_router(router)
