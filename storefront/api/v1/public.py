"""
Public catalog endpoints (no authentication).

Services, tiers, gallery, case studies, marketing copy, contact form and
the product shop.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.core.database import get_db
from storefront.models.schemas import ContactInquiryCreate
from storefront.services.catalog_service import catalog_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["Public"])


@router.get("/services")
async def list_services(
    category: Optional[str] = Query(None, description="Service category slug"),
    search: Optional[str] = Query(None, max_length=200),
    is_top_seller: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
):
    return catalog_service.list_services(db, category=category, search=search, is_top_seller=is_top_seller)


@router.get("/services/{service_slug}")
async def get_service(service_slug: str, db: Session = Depends(get_db)):
    """Service detail with its quote options and gallery examples."""
    return catalog_service.get_service(db, service_slug)


@router.get("/service-categories")
async def list_service_categories(db: Session = Depends(get_db)):
    return catalog_service.list_service_categories(db)


@router.get("/tiers")
async def list_tiers(db: Session = Depends(get_db)):
    return catalog_service.list_tiers(db)


@router.get("/gallery")
async def list_gallery(
    category: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """
    Paginated portfolio images.

    ``category`` may be a service category slug (expanded to its services)
    or a single service slug.
    """
    return catalog_service.list_gallery(db, category=category, page=page, limit=limit)


@router.get("/case-studies/{case_study_slug}")
async def get_case_study(case_study_slug: str, db: Session = Depends(get_db)):
    return catalog_service.get_case_study(db, case_study_slug)


@router.get("/marketing-content")
async def get_marketing_content(page_key: Optional[str] = Query(None), db: Session = Depends(get_db)):
    if not page_key:
        raise HTTPException(status_code=400, detail="page_key required")
    return catalog_service.get_marketing_content(db, page_key)


@router.post("/contact-inquiry", status_code=201)
async def create_contact_inquiry(request: ContactInquiryCreate, db: Session = Depends(get_db)):
    return catalog_service.create_contact_inquiry(db, request)


@router.get("/products")
async def list_products(
    category: Optional[str] = Query(None, description="Product category slug"),
    search: Optional[str] = Query(None, max_length=200),
    db: Session = Depends(get_db),
):
    return catalog_service.list_products(db, category=category, search=search)


@router.get("/product-categories")
async def list_product_categories(db: Session = Depends(get_db)):
    return catalog_service.list_product_categories(db)


@router.get("/products/{slug}")
async def get_product(slug: str, db: Session = Depends(get_db)):
    """Product with variants (quantity packs) and images."""
    return catalog_service.get_product(db, slug)
