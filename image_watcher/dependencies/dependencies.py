from fastapi import Request
from image_watcher.settings import Settings
from image_watcher.upload_service.dispatcher import EventDispatcher, WatchObserver
from image_watcher.upload_service.identity import IdentityCache

def get_settings(request: Request) -> Settings:
    """Dependency provider for the loaded Settings"""
    return request.app.state.settings

def get_identity_cache(request: Request) -> IdentityCache:
    """Dependency provider for the IdentityCache"""
    return request.app.state.identities

def get_dispatcher(request: Request) -> EventDispatcher:
    """Dependency provider for the EventDispatcher"""
    return request.app.state.dispatcher

def get_observer(request: Request) -> WatchObserver:
    """Dependency provider for the WatchObserver"""
    return request.app.state.observer
