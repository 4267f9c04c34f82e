"""Liveness endpoints."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def root():
    return "Cyber Advisor API is running"


@router.get("/api/health")
async def health():
    return {"status": "healthy"}
