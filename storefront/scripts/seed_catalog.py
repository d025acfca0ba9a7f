"""
Seed the catalog, tiers, booking calendar and an admin account.

Existing rows (matched by slug or email) are left untouched, so the script
can be run against a live database.

Usage:
    python -m storefront.scripts.seed_catalog
    sultanstamp-seed --admin-email admin@sultanstamp.com
"""
import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from storefront.core.database import get_db_session, init_db
from storefront.core.security import generate_token, hash_password
from storefront.models.database import (
    CalendarSetting,
    OptionType,
    Product,
    ProductCategory,
    ProductVariant,
    Service,
    ServiceCategory,
    ServiceOption,
    TierFeature,
    TierPackage,
    User,
    UserRole,
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

SERVICE_CATEGORIES = [
    ("Business Printing", "business-printing"),
    ("Marketing Materials", "marketing-materials"),
    ("Large Format Printing", "large-format-printing"),
    ("Signage", "signage"),
]

# (category slug, name, slug, description, requires_booking, requires_proof, is_top_seller, slot hours)
SERVICES = [
    ("business-printing", "Business Cards", "business-cards",
     "Professional business cards in various finishes and materials", False, True, True, 1),
    ("business-printing", "Letterheads", "letterheads",
     "Custom letterhead printing on premium paper stock", False, True, False, 1),
    ("marketing-materials", "Brochures", "brochures",
     "Tri-fold and bi-fold brochure printing", False, True, True, 2),
    ("marketing-materials", "Flyers", "flyers",
     "High-impact flyer printing for promotions and events", False, True, True, 1),
    ("large-format-printing", "Banners", "banners",
     "Vinyl banner printing for indoor and outdoor use", True, True, True, 3),
    ("signage", "Shop Signage", "shop-signage",
     "Fascia signs, window graphics and installation", True, True, False, 4),
]

COMMON_OPTIONS = [
    {"key": "quantity", "label": "Quantity", "type": OptionType.NUMBER, "required": True},
    {"key": "size", "label": "Size", "type": OptionType.SELECT, "required": True,
     "choices": ["A6", "A5", "A4", "A3", "Custom"]},
    {"key": "finish", "label": "Finish", "type": OptionType.SELECT, "required": False,
     "choices": ["Matte", "Gloss", "Silk", "Uncoated"]},
    {"key": "double_sided", "label": "Double-sided", "type": OptionType.CHECKBOX, "required": False},
    {"key": "artwork_notes", "label": "Artwork notes", "type": OptionType.TEXT, "required": False,
     "help_text": "Anything our designers should know"},
]

TIERS = [
    ("Basic", "basic", "Essential printing services with standard turnaround"),
    ("Standard", "standard", "Enhanced services with faster turnaround and more options"),
    ("Premium", "premium", "Priority service with premium materials and quick turnaround"),
    ("Enterprise", "enterprise", "Dedicated account management with custom solutions"),
]

# feature_key -> (group, label, value per tier slug)
TIER_FEATURES = {
    "turnaround_time": ("Turnaround", "Turnaround Time", {
        "basic": "7-10 business days", "standard": "5-7 business days",
        "premium": "2-3 business days", "enterprise": "Next business day",
    }),
    "design_revisions": ("Design", "Design Revisions", {
        "basic": "None", "standard": "2 rounds", "premium": "Unlimited", "enterprise": "Unlimited",
    }),
    "account_manager": ("Support", "Dedicated Account Manager", {
        "basic": None, "standard": None, "premium": None, "enterprise": "Included",
    }),
}

PRODUCT_CATEGORIES = [
    ("Business Essentials", "business-essentials"),
    ("Marketing Materials", "marketing-materials"),
    ("Stickers & Labels", "stickers-labels"),
]

# (category slug, name, slug, description, base price, config schema, [(quantity, unit price, compare at)])
PRODUCTS = [
    ("business-essentials", "Business Cards", "business-cards",
     "Premium business cards delivered to your doorstep.", 17.50,
     {"paperFinish": {"label": "Paper Finish", "options": [
         {"value": "matte", "label": "Matte"}, {"value": "gloss", "label": "Gloss"}], "default": "matte"}},
     [(50, 0.35, None), (100, 0.25, 35.00), (250, 0.16, 87.50), (500, 0.12, 175.00)]),
    ("marketing-materials", "Flyers", "flyers",
     "Eye-catching flyers for events, promotions and announcements.", 25.00,
     {"size": {"label": "Size", "options": [
         {"value": "a5", "label": "A5"}, {"value": "a4", "label": "A4"}], "default": "a5"}},
     [(50, 0.50, None), (100, 0.40, 50.00), (500, 0.22, 250.00)]),
    ("stickers-labels", "Custom Stickers", "stickers",
     "Weather-resistant vinyl stickers for branding and packaging.", 15.00,
     {"shape": {"label": "Shape", "options": [
         {"value": "circle", "label": "Circle"}, {"value": "square", "label": "Square"}], "default": "circle"}},
     [(50, 0.30, None), (100, 0.24, 30.00), (250, 0.18, 75.00)]),
]


def _get_or_create(db: Session, model, lookup: Dict[str, Any], **values):
    """Return (row, created) for the row matching ``lookup``."""
    row = db.query(model).filter_by(**lookup).first()
    if row is not None:
        return row, False
    row = model(**lookup, **values)
    db.add(row)
    db.flush()
    return row, True


def seed_services(db: Session) -> int:
    created = 0
    categories = {}
    for order, (name, slug) in enumerate(SERVICE_CATEGORIES, start=1):
        categories[slug], _ = _get_or_create(db, ServiceCategory, {"slug": slug}, name=name, sort_order=order)

    for category_slug, name, slug, description, booking, proof, top_seller, hours in SERVICES:
        service, is_new = _get_or_create(
            db, Service, {"slug": slug},
            category_id=categories[category_slug].id,
            name=name,
            description=description,
            requires_booking=booking,
            requires_proof=proof,
            is_top_seller=top_seller,
            slot_duration_hours=hours,
        )
        if not is_new:
            continue
        created += 1
        for order, option in enumerate(COMMON_OPTIONS, start=1):
            db.add(ServiceOption(
                service_id=service.id,
                key=option["key"],
                label=option["label"],
                type=option["type"],
                required=option["required"],
                choices=json.dumps(option["choices"]) if option.get("choices") else None,
                help_text=option.get("help_text"),
                sort_order=order,
            ))
    return created


def seed_tiers(db: Session) -> int:
    created = 0
    for order, (name, slug, description) in enumerate(TIERS, start=1):
        tier, is_new = _get_or_create(db, TierPackage, {"slug": slug}, name=name, description=description, sort_order=order)
        if not is_new:
            continue
        created += 1
        for feature_order, (key, (group, label, values)) in enumerate(TIER_FEATURES.items(), start=1):
            value = values.get(slug)
            db.add(TierFeature(
                tier_id=tier.id,
                group_name=group,
                feature_key=key,
                feature_label=label,
                feature_value=value,
                is_included=value is not None,
                sort_order=feature_order,
            ))
    return created


def build_variants(quantities: List[tuple], product_name: str) -> List[Dict[str, Any]]:
    """Quantity packs with totals and a percentage discount label."""
    variants = []
    for order, (quantity, unit_price, compare_at) in enumerate(quantities, start=1):
        total = round(quantity * unit_price, 2)
        discount = None
        if compare_at:
            discount = f"{round((1 - total / compare_at) * 100)}% off"
        variants.append({
            "label": f"{quantity} {product_name}",
            "quantity": quantity,
            "unit_price": unit_price,
            "total_price": total,
            "compare_at_price": compare_at,
            "discount_label": discount,
            "sort_order": order,
        })
    return variants


def seed_products(db: Session) -> int:
    created = 0
    categories = {}
    for order, (name, slug) in enumerate(PRODUCT_CATEGORIES, start=1):
        categories[slug], _ = _get_or_create(db, ProductCategory, {"slug": slug}, name=name, sort_order=order)

    for category_slug, name, slug, description, base_price, schema, quantities in PRODUCTS:
        product, is_new = _get_or_create(
            db, Product, {"slug": slug},
            name=name,
            description=description,
            base_price=base_price,
            category_id=categories[category_slug].id,
            config_schema=json.dumps(schema),
        )
        if not is_new:
            continue
        created += 1
        for variant in build_variants(quantities, name):
            db.add(ProductVariant(product_id=product.id, **variant))
    return created


def seed_calendar(db: Session) -> bool:
    if db.query(CalendarSetting).first() is not None:
        return False
    db.add(CalendarSetting())
    return True


def seed_admin(db: Session, email: str, password: Optional[str]) -> Optional[str]:
    """Create the admin account; returns the generated password when none was given."""
    if db.query(User).filter(User.email == email).first() is not None:
        return None
    generated = None
    if not password:
        generated = password = generate_token()[:16]
    db.add(User(name="Admin", email=email, password_hash=hash_password(password), role=UserRole.ADMIN))
    return generated


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the SultanStamp catalog")
    parser.add_argument("--admin-email", default=os.getenv("SEED_ADMIN_EMAIL", "admin@sultanstamp.com"))
    parser.add_argument("--admin-password", default=os.getenv("SEED_ADMIN_PASSWORD"))
    parser.add_argument("--skip-admin", action="store_true", help="Do not create an admin account")
    args = parser.parse_args(argv)

    init_db()
    with get_db_session() as db:
        services = seed_services(db)
        tiers = seed_tiers(db)
        products = seed_products(db)
        calendar = seed_calendar(db)
        generated = None if args.skip_admin else seed_admin(db, args.admin_email.lower(), args.admin_password)
        db.commit()

    logger.info(f"Seeded {services} services, {tiers} tiers, {products} products (calendar created: {calendar})")
    if generated:
        logger.info(f"Created admin {args.admin_email} with password: {generated}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
