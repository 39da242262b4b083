import secrets
from fastapi import HTTPException, Header
from shared.config import settings


async def verify_api_key(x_api_key: str | None = Header(None)) -> bool:
    if not x_api_key or not secrets.compare_digest(x_api_key, settings.API_SECRET_KEY):
        raise HTTPException(status_code=401, detail="Invalid API key")
    return True
