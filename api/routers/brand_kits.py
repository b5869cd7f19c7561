"""Saved brand kit endpoints"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel

from api.dependencies import get_brand_kit_store
from core.brand_kit.models import BrandKit, SavedBrandKit
from core.brand_kit.pdf_export import render_guidelines_pdf
from core.brand_kit.service import generate_guidelines
from core.brand_kit.storage import BrandKitStore

logger = logging.getLogger(__name__)

router = APIRouter()


class BrandKitSummary(BaseModel):
    """Brand kit list entry"""
    id: str
    name: str
    created_at: datetime
    source_file_name: Optional[str] = None
    logo_count: int


class SaveBrandKitRequest(BaseModel):
    """Request to store a brand kit"""
    brand_kit: BrandKit
    name: Optional[str] = None
    source_file_name: Optional[str] = None


class RenameRequest(BaseModel):
    name: str


class StorageInfo(BaseModel):
    used: int
    max: int
    percentage: float


def _get_or_404(store: BrandKitStore, kit_id: str) -> SavedBrandKit:
    kit = store.get(kit_id)
    if kit is None:
        raise HTTPException(status_code=404, detail=f"Brand kit not found: {kit_id}")
    return kit


@router.get("/", response_model=List[BrandKitSummary])
async def list_brand_kits(store: BrandKitStore = Depends(get_brand_kit_store)):
    """List saved brand kits (newest first)"""
    kits = sorted(store.list_kits(), key=lambda kit: kit.created_at, reverse=True)
    return [
        BrandKitSummary(
            id=kit.id,
            name=kit.name,
            created_at=kit.created_at,
            source_file_name=kit.source_file_name,
            logo_count=len(kit.brand_kit.logos.all_logos),
        )
        for kit in kits
    ]


@router.get("/storage", response_model=StorageInfo)
async def storage_info(store: BrandKitStore = Depends(get_brand_kit_store)):
    """Storage usage of saved brand kits"""
    return StorageInfo(**store.storage_info())


@router.post("/", response_model=SavedBrandKit, status_code=201)
async def save_brand_kit(request: SaveBrandKitRequest,
                         store: BrandKitStore = Depends(get_brand_kit_store)):
    """Save a brand kit"""
    return store.save(request.brand_kit, name=request.name, source_file_name=request.source_file_name)


@router.get("/{kit_id}", response_model=SavedBrandKit)
async def get_brand_kit(kit_id: str, store: BrandKitStore = Depends(get_brand_kit_store)):
    """Get a saved brand kit"""
    return _get_or_404(store, kit_id)


@router.patch("/{kit_id}", response_model=SavedBrandKit)
async def rename_brand_kit(kit_id: str, request: RenameRequest,
                           store: BrandKitStore = Depends(get_brand_kit_store)):
    """Rename a saved brand kit"""
    kit = store.rename(kit_id, request.name)
    if kit is None:
        raise HTTPException(status_code=404, detail=f"Brand kit not found: {kit_id}")
    return kit


@router.delete("/{kit_id}")
async def delete_brand_kit(kit_id: str, store: BrandKitStore = Depends(get_brand_kit_store)):
    """Delete a saved brand kit"""
    if not store.delete(kit_id):
        raise HTTPException(status_code=404, detail=f"Brand kit not found: {kit_id}")
    return {"deleted": kit_id}


@router.delete("/")
async def clear_brand_kits(store: BrandKitStore = Depends(get_brand_kit_store)):
    """Delete all saved brand kits"""
    store.clear()
    return {"cleared": True}


@router.get("/{kit_id}/guidelines", response_class=PlainTextResponse)
async def get_guidelines(kit_id: str, store: BrandKitStore = Depends(get_brand_kit_store)):
    """Markdown usage guidelines of a saved brand kit"""
    kit = _get_or_404(store, kit_id)
    return kit.brand_kit.guidelines or generate_guidelines(kit.brand_kit)


@router.get("/{kit_id}/pdf")
async def get_guidelines_pdf(kit_id: str, store: BrandKitStore = Depends(get_brand_kit_store)):
    """Brand usage guidelines as PDF download"""
    kit = _get_or_404(store, kit_id)
    pdf_bytes = render_guidelines_pdf(kit.brand_kit, title=f"{kit.name} - Brand Usage Guidelines")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{kit.id}-guidelines.pdf"'},
    )
