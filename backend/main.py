import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.core import config
from backend.core.errors import BookingError, ConflictError
from backend.database import build_session_factory, create_db_engine, init_schema
from backend.routes import auth_routes, availability_routes, session_routes, slot_routes
from backend.services.scheduler import AutoCompleteScheduler

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config.validate_runtime_config()

    engine = create_db_engine(config.DATABASE_URL)
    init_schema(engine)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    logger.info('Database ready (%s)', engine.url.render_as_string(hide_password=True))

    scheduler = None
    if config.AUTO_COMPLETE_ENABLED:
        scheduler = AutoCompleteScheduler(app.state.session_factory, config.AUTO_COMPLETE_INTERVAL_MINUTES)
        scheduler.start()

    yield

    if scheduler is not None:
        scheduler.stop()
    engine.dispose()
    logger.info('Database engine disposed')


async def booking_error_handler(request: Request, exc: BookingError):
    content = {'error': exc.message}
    if isinstance(exc, ConflictError) and exc.count is not None:
        content['count'] = exc.count
    if exc.status_code >= 500:
        logger.error('%s %s failed: %s', request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=content)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = '.'.join(str(part) for part in first.get('loc', ()) if part != 'body')
        message = f"{location}: {first.get('msg')}" if location else str(first.get('msg'))
    else:
        message = 'Invalid request'
    return JSONResponse(status_code=400, content={'error': message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={'error': exc.detail}, headers=exc.headers)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception('Unhandled exception on %s %s', request.method, request.url.path)
    return JSONResponse(status_code=500, content={'error': 'Internal server error'})


def create_app() -> FastAPI:
    app = FastAPI(title='Therapy Booking API', lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get('/')
    def root():
        return {'status': 'Therapy Booking API Running'}

    app.include_router(auth_routes.router, prefix='/auth')
    app.include_router(availability_routes.router, prefix='/availability')
    app.include_router(slot_routes.router, prefix='/available-slots')
    app.include_router(session_routes.router, prefix='/sessions')

    return app


app = create_app()
