"""FastAPI API endpoints under /api.

Endpoint groups: settings (health, settings, check-connection), stories
(documents), play (the live playthrough of one story). Playthrough actions
are nested under /api/stories/{slug}/play.
"""

from fastapi import APIRouter

from .play import router as play_router
from .settings import router as settings_router
from .stories import router as stories_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(stories_router)
router.include_router(play_router)
