"""Health check, settings, and connection check endpoints."""

from fastapi import APIRouter

from backend import storage

from .models import CheckConnectionBody

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.post("/check-connection")
async def check_connection(body: CheckConnectionBody):
    """Quick reachability check against an LLM provider URL."""
    import httpx

    base = body.provider_url.rstrip("/")
    params: dict[str, str] = {}
    headers: dict[str, str] = {}
    if body.provider_format == "gemini":
        url = f"{base}/v1beta/models"
        params["key"] = body.api_key
    elif body.provider_format == "openai":
        url = f"{base}/v1/models"
    else:
        url = f"{base}/api/v1/model"
    if body.api_key and body.provider_format != "gemini":
        headers["Authorization"] = f"Bearer {body.api_key}"
    try:
        async with httpx.AsyncClient(timeout=5) as client:
            resp = await client.get(url, params=params, headers=headers)
            resp.raise_for_status()
        return {"ok": True}
    except httpx.HTTPError:
        return {"ok": False}


@router.get("/settings")
async def get_settings():
    """Get global app settings (LLM connection, grading policy, audio)."""
    return storage.get_config()


@router.patch("/settings")
async def update_settings(body: dict):
    """Update global app settings (partial merge per section)."""
    return storage.update_config(body)
