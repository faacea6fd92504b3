# cmd_gateway/main.py
import time

import uvicorn
from fastapi import FastAPI, Request
from loguru import logger

from cmd_gateway.core.config import Settings, settings
from cmd_gateway.core.gate import CommandGate
from cmd_gateway.core.logger import setup_logging
from cmd_gateway.api.routes_ws import create_router


def create_app(app_settings: Settings = settings) -> FastAPI:
    """
    Factory function that builds the gateway app: the command websocket,
    a health check and a root status endpoint.
    """
    app = FastAPI(
        title=app_settings.project_name,
        description="Runs whitelisted executables from a command directory over a websocket.",
        version="0.1.0",
        # Disable docs in production if needed, based on debug flag
        docs_url="/docs" if app_settings.debug else None,
        redoc_url="/redoc" if app_settings.debug else None,
    )

    # The policy is frozen here, once, and shared read-only by every connection.
    app.state.settings = app_settings
    app.state.gate = CommandGate(app_settings.execution_policy())

    app.include_router(create_router(app_settings.ws_path))

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        FastAPI middleware to log every incoming HTTP request.
        """
        start_time = time.time()
        logger.info(f"Request: {request.method} {request.url.path}")
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000
        formatted_process_time = f"{process_time:.2f}ms"
        logger.info(
            f"Response: {response.status_code} | Path: {request.url.path} | Duration: {formatted_process_time}"
        )
        return response

    @app.get("/", tags=["Root"])
    async def read_root():
        """
        Root endpoint to check if the server is running.
        """
        return {
            "status": "ok",
            "message": f"Welcome to {app_settings.project_name}!",
            "websocket_path": app_settings.ws_path,
            "debug_mode": app_settings.debug,
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "ok"}

    @app.on_event("startup")
    async def startup_event():
        setup_logging(app_settings.log_level)
        policy = app.state.gate.policy
        logger.info(f"Starting up {app_settings.project_name}...")
        logger.info(f"Log level: {app_settings.log_level}")
        logger.info(f"Debug mode: {'On' if app_settings.debug else 'Off'}")
        logger.info(
            f"Command root: {policy.command_root} | Timeout: {policy.timeout}s | "
            f"Max args: {policy.max_args} | Max arg length: {policy.max_arg_length} | "
            f"Extensions: {sorted(policy.allowed_extensions)}"
        )
        if not policy.command_root.is_dir():
            logger.warning(f"Command root {policy.command_root} does not exist; every command will be rejected")
        if "*" in app_settings.allowed_origins:
            logger.warning("Origin checking is disabled: any website may open the command socket")
        logger.success(f"Websocket endpoint ready at {app_settings.ws_path}")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info(f"Shutting down {app_settings.project_name}...")

    return app


app = create_app()


def run():
    """Console entry point: serves the app on the configured host and port."""
    logger.info(f"Websocket server starting on {settings.host}:{settings.port}...")
    uvicorn.run(
        "cmd_gateway.main:app",
        host=settings.host,
        port=settings.port,
        # Logging goes through loguru's InterceptHandler instead.
        log_config=None,
    )


if __name__ == "__main__":
    run()
