"""Story document endpoints (list, get, upload, delete)."""

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from backend import sessions, storage
from novel_player.models import Story

from .models import UploadStory

router = APIRouter()


@router.get("/stories")
async def list_stories():
    """List preset and uploaded stories."""
    return storage.list_stories()


@router.get("/stories/{slug}")
async def get_story(slug: str):
    """Get a story document as authored."""
    document = storage.get_story(slug)
    if document is None:
        raise HTTPException(404, "Story not found")
    return document


@router.put("/stories/{slug}")
async def put_story(slug: str, body: UploadStory):
    """Upload or replace a story document. Drops its live playthrough."""
    try:
        Story.model_validate(body.story)
    except ValidationError as e:
        raise HTTPException(422, f"Invalid story document: {e.error_count()} error(s)")
    storage.save_story(body.story, slug)
    sessions.drop_session(slug)
    storage.delete_playthrough(slug)
    return {"slug": slug, "title": body.story.get("title", slug)}


@router.delete("/stories/{slug}")
async def delete_story(slug: str):
    """Delete an uploaded story (presets cannot be deleted)."""
    if not storage.delete_story(slug):
        raise HTTPException(404, "Story not found")
    sessions.drop_session(slug)
    storage.delete_playthrough(slug)
    return {"ok": True}
