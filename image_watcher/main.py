from fastapi import FastAPI
from contextlib import asynccontextmanager
import asyncio
import os
import sys
import uvicorn
import logging

from image_watcher.settings import load_settings
from image_watcher.storage.s3 import S3Service
from image_watcher.upload_service.dispatcher import EventDispatcher, WatchObserver
from image_watcher.upload_service.identity import IdentityCache
from image_watcher.upload_service.scanner import DirectoryScanner
from image_watcher.upload_service.service import UploadPipeline
from image_watcher.routers.watcher import router as watcher_router
from image_watcher.exceptions import add_exception_handlers

CONFIG_FILE_ENV = "CONFIG_FILE"

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
log = logging.getLogger("image-watcher")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
        Async context manager for FastAPI application lifecycle events.
        Uploads existing images, then watches the configured directories until shutdown.
    """
    settings = load_settings(os.environ.get(CONFIG_FILE_ENV))
    logging.getLogger().setLevel(settings.log_level.upper())

    s3 = S3Service(settings)
    identities = IdentityCache()
    pipeline = UploadPipeline(
        s3,
        identities,
        min_image_size=settings.min_image_size,
        max_image_size=settings.max_image_size,
        common_tags=settings.common_tags,
    )
    scanner = DirectoryScanner(settings.watch_dir, pipeline, settings.common_tags)
    dispatcher = EventDispatcher(
        pipeline,
        settings.watch_dir,
        use_wildcard=settings.use_wildcard,
        common_tags=settings.common_tags,
        scanner=scanner,
    )
    observer = WatchObserver(dispatcher)

    # The initial scan completes before any watch event is handled
    if settings.upload_existing:
        await asyncio.to_thread(scanner.upload_existing)
    else:
        log.info("Skipping existing images")

    for directory in scanner.watch_targets(settings.use_wildcard):
        observer.schedule(directory)
    observer.start()
    dispatcher.start()

    app.state.settings = settings
    app.state.s3 = s3
    app.state.identities = identities
    app.state.pipeline = pipeline
    app.state.dispatcher = dispatcher
    app.state.observer = observer
    yield
    # Cleanup resources
    observer.stop()
    dispatcher.stop()
    s3.close()

# Initialize App
app = FastAPI(
    title="Image Watcher",
    lifespan=lifespan,
    description="Watches directories and uploads new images to S3",
)

# Add exception handlers
add_exception_handlers(app)

# Add the routers
app.include_router(watcher_router)

# Check Health
@app.get("/")
def read_root():
    """
        Default end point
    
    """
    return "Image Watcher is running."

def main():
    """Runs the service. The optional first argument is the config file path."""
    if len(sys.argv) > 1:
        os.environ[CONFIG_FILE_ENV] = sys.argv[1]
    settings = load_settings(os.environ.get(CONFIG_FILE_ENV))
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)

if __name__ == "__main__":
    main()
