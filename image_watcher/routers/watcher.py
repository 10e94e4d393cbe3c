from fastapi import APIRouter, Depends, Query
import logging

from image_watcher.settings import Settings
from image_watcher.dependencies.dependencies import get_settings, get_identity_cache, get_dispatcher, get_observer
from image_watcher.upload_service.classifier import file_extension
from image_watcher.upload_service.dispatcher import EventDispatcher, WatchObserver
from image_watcher.upload_service.identity import IdentityCache
from image_watcher.upload_service.models import IdentityResponse, ScanResponse, WatchesResponse, WatchRuleItem
from image_watcher.upload_service.service import object_key
from image_watcher.exceptions import IdentityNotFoundException

log = logging.getLogger(__name__)

router = APIRouter(tags=["image-watcher"])

@router.get("/watches", response_model=WatchesResponse)
def list_watches(
    settings: Settings = Depends(get_settings),
    observer: WatchObserver = Depends(get_observer),
):
    """Lists the configured watch rules and the directories being monitored."""
    return WatchesResponse(
        use_wildcard=settings.use_wildcard,
        upload_existing=settings.upload_existing,
        rules=[WatchRuleItem(dir=rule.directory_pattern, tag=rule.tag) for rule in settings.watch_dir],
        watched_directories=observer.directories,
    )

@router.post("/scan", response_model=ScanResponse, status_code=202)
def request_scan(dispatcher: EventDispatcher = Depends(get_dispatcher)):
    """
    Queues a rescan of the matching directories.

    The scan runs on the dispatcher thread after the events already queued,
    so it never uploads concurrently with the watch loop.
    """
    dispatcher.request_scan()
    log.info("Rescan queued")
    return ScanResponse(status="queued", pending_events=dispatcher.pending)

@router.get("/identities", response_model=IdentityResponse)
def get_identity(
    path: str = Query(..., min_length=1),
    identities: IdentityCache = Depends(get_identity_cache),
):
    """Gets the upload identity and object key assigned to a source path."""
    identity = identities.get(path)
    if identity is None:
        raise IdentityNotFoundException(path)
    return IdentityResponse(path=path, identity=str(identity), s3_key=object_key(identity, file_extension(path)))
