"""
FastAPI dependencies shared by the routers
"""
import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from clutterbug.core.database import get_db
from clutterbug.services.hierarchy_manager import HierarchyManager
from clutterbug.storage.photo_store import PhotoStore, get_photo_store

logger = logging.getLogger(__name__)


def get_hierarchy_manager(db: Session = Depends(get_db)) -> HierarchyManager:
    """Hierarchy manager bound to the request session, with presets seeded"""
    manager = HierarchyManager(db)
    if manager.ensure_defaults_exist() is None:
        logger.warning("Hierarchy bootstrap failed, serving built-in preset")
    return manager


def get_store() -> PhotoStore:
    return get_photo_store()


async def get_request_body(request: Request) -> bytes:
    """Raw request body, for image uploads sent as application/octet-stream or image/*"""
    return await request.body()
