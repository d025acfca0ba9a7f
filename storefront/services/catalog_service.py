"""
Public catalog queries: services, tiers, gallery, case studies,
marketing copy, contact inquiries and the product shop.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from storefront.core.exceptions import NotFoundError
from storefront.models.database import (
    CaseStudy,
    ContactInquiry,
    GalleryImage,
    InquiryStatus,
    MarketingContent,
    Product,
    ProductCategory,
    ProductImage,
    ProductVariant,
    Service,
    ServiceCategory,
    ServiceOption,
    TierFeature,
    TierPackage,
)
from storefront.models.schemas import ContactInquiryCreate
from storefront.services.common import clamp_page, safe_json_loads, total_pages

logger = logging.getLogger(__name__)

GALLERY_EXAMPLES_LIMIT = 10


def _ilike_any(columns, search: str):
    pattern = f"%{search.strip()}%"
    return or_(*[col.ilike(pattern) for col in columns])


class CatalogService:
    """Read-mostly service for public storefront content."""

    # ---------- services ----------

    def list_service_categories(self, db: Session) -> List[Dict[str, Any]]:
        categories = (
            db.query(ServiceCategory)
            .filter(ServiceCategory.is_active.is_(True))
            .order_by(ServiceCategory.sort_order, ServiceCategory.name)
            .all()
        )
        return [c.to_dict() for c in categories]

    def list_services(
        self,
        db: Session,
        category: Optional[str] = None,
        search: Optional[str] = None,
        is_top_seller: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        List active services with optional filters.

        Args:
            db: Database session
            category: Category slug
            search: Case-insensitive match on name or description
            is_top_seller: Only top sellers when True

        Returns:
            Dict with services (each with category_name) and categories
        """
        query = (
            db.query(Service, ServiceCategory.name)
            .join(ServiceCategory, Service.category_id == ServiceCategory.id)
            .filter(Service.is_active.is_(True))
        )
        if category:
            query = query.filter(ServiceCategory.slug == category)
        if search and search.strip():
            query = query.filter(_ilike_any([Service.name, Service.description], search))
        if is_top_seller is not None:
            query = query.filter(Service.is_top_seller.is_(is_top_seller))

        services = []
        for service, category_name in query.order_by(Service.name).all():
            data = service.to_dict()
            data["category_name"] = category_name
            services.append(data)

        return {"services": services, "categories": self.list_service_categories(db)}

    def get_service(self, db: Session, slug: str) -> Dict[str, Any]:
        """
        Service detail with options and gallery examples.

        Raises:
            NotFoundError: Unknown or inactive service
        """
        service = db.query(Service).filter(Service.slug == slug, Service.is_active.is_(True)).first()
        if service is None:
            raise NotFoundError("Service")

        category = db.query(ServiceCategory).filter(ServiceCategory.id == service.category_id).first()
        options = (
            db.query(ServiceOption)
            .filter(ServiceOption.service_id == service.id, ServiceOption.is_active.is_(True))
            .order_by(ServiceOption.sort_order)
            .all()
        )
        examples = (
            db.query(GalleryImage)
            .filter(GalleryImage.is_active.is_(True), GalleryImage.categories.like(f"%{slug}%"))
            .order_by(GalleryImage.sort_order)
            .limit(GALLERY_EXAMPLES_LIMIT)
            .all()
        )

        return {
            "service": service.to_dict(),
            "category": category.to_dict() if category else None,
            "service_options": [self._option_to_dict(o) for o in options],
            "examples": [e.to_dict() for e in examples],
        }

    @staticmethod
    def _option_to_dict(option: ServiceOption) -> Dict[str, Any]:
        data = option.to_dict()
        data["choices"] = safe_json_loads(option.choices, default=None)
        data["pricing_impact"] = safe_json_loads(option.pricing_impact, default=None)
        return data

    def option_labels(self, db: Session, service_id: str) -> Dict[str, str]:
        """Map option key -> label for one service."""
        rows = db.query(ServiceOption.key, ServiceOption.label).filter(ServiceOption.service_id == service_id).all()
        return {key: label for key, label in rows}

    # ---------- tiers ----------

    def list_tiers(self, db: Session) -> List[Dict[str, Any]]:
        """Active tiers with their features grouped in display order."""
        tiers = (
            db.query(TierPackage)
            .filter(TierPackage.is_active.is_(True))
            .order_by(TierPackage.sort_order)
            .all()
        )
        tier_ids = [t.id for t in tiers]
        features_by_tier: Dict[str, List[Dict[str, Any]]] = {tid: [] for tid in tier_ids}
        if tier_ids:
            features = (
                db.query(TierFeature)
                .filter(TierFeature.tier_id.in_(tier_ids))
                .order_by(TierFeature.group_name, TierFeature.sort_order)
                .all()
            )
            for feature in features:
                features_by_tier[feature.tier_id].append(feature.to_dict())

        return [{"tier": t.to_dict(), "features": features_by_tier[t.id]} for t in tiers]

    # ---------- gallery & content ----------

    def list_gallery(
        self,
        db: Session,
        category: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """
        Paginated gallery.

        A category slug is expanded to the slugs of its active services.
        Unknown slugs filter images by the slug itself.
        """
        page, limit, offset = clamp_page(page, limit)
        query = db.query(GalleryImage).filter(GalleryImage.is_active.is_(True))

        if category:
            service_category = db.query(ServiceCategory).filter(ServiceCategory.slug == category).first()
            if service_category is not None:
                slugs = [
                    s for (s,) in db.query(Service.slug).filter(
                        Service.category_id == service_category.id,
                        Service.is_active.is_(True),
                    ).all()
                ]
                if not slugs:
                    return {"images": [], "total": 0, "page": page, "total_pages": 0}
                query = query.filter(or_(*[GalleryImage.categories.like(f"%{s}%") for s in slugs]))
            else:
                query = query.filter(GalleryImage.categories.like(f"%{category}%"))

        total = query.count()
        images = query.order_by(GalleryImage.sort_order, GalleryImage.created_at.desc()).offset(offset).limit(limit).all()
        return {
            "images": [i.to_dict() for i in images],
            "total": total,
            "page": page,
            "total_pages": total_pages(total, limit),
        }

    def get_case_study(self, db: Session, slug: str) -> Dict[str, Any]:
        row = (
            db.query(CaseStudy, Service.name, TierPackage.name, GalleryImage.image_url)
            .join(Service, CaseStudy.service_id == Service.id)
            .join(TierPackage, CaseStudy.tier_id == TierPackage.id)
            .join(GalleryImage, CaseStudy.gallery_image_id == GalleryImage.id)
            .filter(CaseStudy.slug == slug, CaseStudy.is_published.is_(True))
            .first()
        )
        if row is None:
            raise NotFoundError("Case study")
        case_study, service_name, tier_name, image_url = row
        data = case_study.to_dict()
        data["additional_images"] = safe_json_loads(case_study.additional_images, default=[])
        data.update(service_name=service_name, tier_name=tier_name, image_url=image_url)
        return data

    def get_marketing_content(self, db: Session, page_key: str) -> List[Dict[str, Any]]:
        rows = db.query(MarketingContent).filter(MarketingContent.page_key == page_key).all()
        return [r.to_dict() for r in rows]

    def create_contact_inquiry(self, db: Session, request: ContactInquiryCreate) -> Dict[str, Any]:
        inquiry = ContactInquiry(
            name=request.name.strip(),
            email=request.email,
            phone=request.phone,
            service_interested_in=request.service_interested_in,
            message=request.message,
            status=InquiryStatus.NEW,
        )
        db.add(inquiry)
        db.commit()
        db.refresh(inquiry)
        logger.info(f"Contact inquiry {inquiry.id} received")
        return inquiry.to_dict()

    # ---------- products ----------

    def list_product_categories(self, db: Session) -> List[Dict[str, Any]]:
        categories = (
            db.query(ProductCategory)
            .filter(ProductCategory.is_active.is_(True))
            .order_by(ProductCategory.sort_order, ProductCategory.name)
            .all()
        )
        return [c.to_dict() for c in categories]

    def list_products(
        self,
        db: Session,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Active products with a ``from_price``.

        ``from_price`` is the cheapest active variant total, falling back to
        the product base price when it has no variants.
        """
        min_price = (
            db.query(
                ProductVariant.product_id.label("product_id"),
                func.min(ProductVariant.total_price).label("min_price"),
            )
            .filter(ProductVariant.is_active.is_(True))
            .group_by(ProductVariant.product_id)
            .subquery()
        )
        query = (
            db.query(Product, ProductCategory.name, ProductCategory.slug, min_price.c.min_price)
            .outerjoin(ProductCategory, Product.category_id == ProductCategory.id)
            .outerjoin(min_price, min_price.c.product_id == Product.id)
            .filter(Product.is_active.is_(True))
        )
        if category:
            query = query.filter(ProductCategory.slug == category)
        if search and search.strip():
            query = query.filter(_ilike_any([Product.name, Product.description], search))

        products = []
        for product, category_name, category_slug, variant_min in query.order_by(Product.name).all():
            data = product.to_dict()
            data.pop("config_schema", None)
            data["category_name"] = category_name
            data["category_slug"] = category_slug
            data["from_price"] = variant_min if variant_min is not None else product.base_price
            products.append(data)

        return {"products": products, "categories": self.list_product_categories(db)}

    def get_product(self, db: Session, slug: str) -> Dict[str, Any]:
        product = db.query(Product).filter(Product.slug == slug, Product.is_active.is_(True)).first()
        if product is None:
            raise NotFoundError("Product")

        variants = (
            db.query(ProductVariant)
            .filter(ProductVariant.product_id == product.id, ProductVariant.is_active.is_(True))
            .order_by(ProductVariant.sort_order)
            .all()
        )
        images = (
            db.query(ProductImage)
            .filter(ProductImage.product_id == product.id)
            .order_by(ProductImage.sort_order)
            .all()
        )
        data = product.to_dict()
        data["config_schema"] = safe_json_loads(product.config_schema, default=None)
        return {
            "product": data,
            "variants": [v.to_dict() for v in variants],
            "images": [i.to_dict() for i in images],
        }


# Singleton instance
catalog_service = CatalogService()
