"""
Ticket Intake Service - FastAPI Backend
"""
import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ticket_intake import __version__
from ticket_intake.config import Settings, get_settings
from ticket_intake.context import AppContext, build_context
from ticket_intake.exceptions import TicketNotFoundError, TicketValidationError
from ticket_intake.middleware.logging_middleware import LoggingMiddleware
from ticket_intake.models.schemas import ErrorResponse
from ticket_intake.routes import chatbot, health, tickets, webhook
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)

VALIDATION_MESSAGE = "الرجاء تعبئة جميع الحقول المطلوبة"
NOT_FOUND_MESSAGE = "التذكرة غير موجودة"
SERVER_ERROR_MESSAGE = "حدث خطأ أثناء إرسال البلاغ"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message).model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors to {success: false, message} responses"""

    @app.exception_handler(TicketValidationError)
    async def handle_validation(request: Request, exc: TicketValidationError):
        logger.info(f"Validation failed on {request.url.path}: {exc}")
        return _error(status.HTTP_400_BAD_REQUEST, VALIDATION_MESSAGE)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        logger.info(f"Malformed request on {request.url.path}: {exc.errors()}")
        return _error(status.HTTP_400_BAD_REQUEST, VALIDATION_MESSAGE)

    @app.exception_handler(TicketNotFoundError)
    async def handle_not_found(request: Request, exc: TicketNotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, NOT_FOUND_MESSAGE)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException):
        response = _error(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, SERVER_ERROR_MESSAGE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the conversation reaper and DM poller; cancel them on shutdown"""
    context: AppContext = app.state.context
    settings = context.settings

    if not settings.service_api_key:
        logger.warning("SERVICE_API_KEY not set! Ticket submission is open.")
    logger.info(f"Notifications: {context.notifier.channel} ({'configured' if context.notifier.configured else 'not configured'})")

    background = [
        asyncio.create_task(context.conversations.run_reaper(settings.conversation_sweep_seconds))
    ]
    if context.x_poller is not None:
        background.append(asyncio.create_task(context.x_poller.run()))

    try:
        yield
    finally:
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)


def create_app(settings: Settings = None, context: AppContext = None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        settings: Override settings (defaults to environment)
        context: Pre-built context (tests inject fakes here)
    """
    settings = settings or get_settings()
    context = context or build_context(settings)

    app = FastAPI(
        title="Ticket Intake Service",
        description="Support ticket intake with AI summaries, notifications and a chatbot",
        version=__version__,
        lifespan=lifespan
    )
    app.state.context = context

    # Middleware order: last added runs first
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.settings.cors_origin_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(tickets.router)
    app.include_router(chatbot.router)
    app.include_router(webhook.router)
    app.include_router(health.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.app_host, port=settings.app_port)
