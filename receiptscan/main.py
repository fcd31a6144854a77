import logging
import os

import sentry_sdk
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from receiptscan.config import Settings, get_settings
from receiptscan.logging_config import setup_logging
from receiptscan.middleware import RequestLoggingMiddleware
from receiptscan.routes import receipts

load_dotenv()

logger = logging.getLogger("receiptscan")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    # Sentry
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=0.1,
            send_default_pii=False,
        )

    app = FastAPI(title="receiptscan", version="0.1.0")
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(receipts.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # Static assets catch every other path, so mount them last
    if os.path.isdir(settings.static_dir):
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    else:
        logger.warning(f"Static directory {settings.static_dir!r} not found, not serving static files")

    return app


app = create_app()


def run():
    settings = get_settings()
    ssl_kwargs = {}
    if os.path.isfile(settings.tls_cert_file) and os.path.isfile(settings.tls_key_file):
        ssl_kwargs = {"ssl_certfile": settings.tls_cert_file, "ssl_keyfile": settings.tls_key_file}
    else:
        logger.warning(
            "TLS certificate or key missing, serving plain HTTP",
            extra={"extra_data": {"cert": settings.tls_cert_file, "key": settings.tls_key_file}},
        )
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None, **ssl_kwargs)


if __name__ == "__main__":
    run()
