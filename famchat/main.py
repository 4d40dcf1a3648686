import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pythonjsonlogger import jsonlogger
from .routes import router
from .core import init_metrics, db_startup, shutdown_connections
from .config import FRONTEND_URL, AUTO_CREATE_TABLES, METRICS_PORT, LOG_LEVEL
from .errors import FamChatError, ValidationError
from .ws_manager import PresenceMap

# setup structured logging
logger = logging.getLogger('famchat')
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(LOG_LEVEL)


async def famchat_error_handler(request: Request, exc: FamChatError):
    return JSONResponse(status_code=exc.status_code, content={'error': exc.kind, 'detail': exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = '; '.join(str(e.get('msg', '')) for e in errors) or 'Invalid input'
    return await famchat_error_handler(request, ValidationError(detail))


def create_app() -> FastAPI:
    """Build the app. Serve with `uvicorn --factory famchat.main:create_app`."""
    app = FastAPI(title="FamChat API", version="1.0.0")
    # owned by this app instance, torn down with it
    app.state.presence = PresenceMap()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[FRONTEND_URL],
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    app.add_exception_handler(FamChatError, famchat_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(router, prefix="/api")

    @app.get('/')
    async def root():
        return {'message': 'FamChat API Server', 'status': 'running'}

    @app.get('/healthz')
    async def healthz():
        return {'status': 'ok'}

    @app.middleware('http')
    async def log_requests(request: Request, call_next):
        logger.info({'msg': 'request_start', 'method': request.method, 'path': request.url.path})
        response = await call_next(request)
        logger.info({'msg': 'request_end', 'path': request.url.path, 'status': response.status_code})
        return response

    @app.on_event("startup")
    async def startup():
        await db_startup(create_tables=AUTO_CREATE_TABLES)
        init_metrics(METRICS_PORT)

    @app.on_event("shutdown")
    async def shutdown():
        await app.state.presence.close()
        await shutdown_connections()

    return app

