from __future__ import annotations

import atexit
import logging

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from hyperscriber.config import Settings, load_settings
from hyperscriber.db.database import Database
from hyperscriber.db.jobs import JobsRepository
from hyperscriber.db.transcripts import TranscriptsRepository
from hyperscriber.mcp_tools import ToolRegistry
from hyperscriber.services.storage import StorageService
from hyperscriber.services.transcriber import TranscriptionDispatcher
from hyperscriber.worker import BackgroundWorker

logger = logging.getLogger(__name__)


class AppRuntime:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.database = Database(settings.database_path)
        self.jobs = JobsRepository(self.database)
        self.transcripts = TranscriptsRepository(self.database)

        self.storage = StorageService(settings.data_dir)
        self.dispatcher = TranscriptionDispatcher.from_settings(settings)

        self.worker = BackgroundWorker(
            jobs=self.jobs,
            transcripts=self.transcripts,
            dispatcher=self.dispatcher,
            storage=self.storage,
            poll_interval_seconds=settings.poll_interval_seconds,
        )

    def close(self) -> None:
        self.worker.stop()
        self.database.close()


def create_app(runtime: AppRuntime) -> FastMCP:
    mcp = FastMCP(name="hyperscriber")

    tools = ToolRegistry(runtime.jobs, runtime.transcripts)
    tools.register(mcp)

    @mcp.custom_route(runtime.settings.health_path, methods=["GET"])
    async def health(_: Request) -> JSONResponse:
        return JSONResponse(
            {
                "ok": True,
                "worker_running": runtime.worker.is_running,
                "api_key_configured": bool(runtime.settings.gemini_api_key),
                "upload_protocol": runtime.settings.upload_protocol,
                "db_path": str(runtime.settings.database_path),
                "mcp_path": runtime.settings.mcp_path,
            }
        )

    return mcp


def cli() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    settings = load_settings()
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; queued jobs will fail until it is configured")

    runtime = AppRuntime(settings)
    runtime.worker.start()
    atexit.register(runtime.close)

    app = create_app(runtime)
    logger.info("Starting MCP server on %s:%s%s", settings.host, settings.port, settings.mcp_path)
    app.run(
        transport="http",
        host=settings.host,
        port=settings.port,
        path=settings.mcp_path,
    )


if __name__ == "__main__":
    cli()
