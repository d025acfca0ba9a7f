"""
Mockup templates and print geometry.

Each product has a print size (trim size and bleed in millimetres) and a
set of scene templates describing where the artwork sits on a mockup
photo. Artwork below 300 DPI at print size gets a warning.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from portal.config import config

MM_PER_INCH = 25.4


@dataclass(frozen=True)
class PrintSpec:
    name: str
    width_mm: float
    height_mm: float
    bleed_mm: float = 3.0

    @property
    def full_width_mm(self) -> float:
        return self.width_mm + 2 * self.bleed_mm

    @property
    def full_height_mm(self) -> float:
        return self.height_mm + 2 * self.bleed_mm


@dataclass(frozen=True)
class MockupTemplate:
    """Scene photo and the artwork's placement on it (percentages)."""
    id: str
    label: str
    image_url: str
    x: float
    y: float
    width: float
    height: float
    rotation_deg: float = 0.0
    opacity: float = 0.95
    aspect_ratio: str = "4/3"


PRINT_SPECS: Dict[str, PrintSpec] = {
    "business-cards": PrintSpec("Business card", 85, 55, bleed_mm=2),
    "flyers": PrintSpec("Flyer (A5)", 148, 210),
    "banners": PrintSpec("Banner", 2000, 1000, bleed_mm=10),
    "stickers": PrintSpec("Sticker", 75, 75, bleed_mm=2),
}

MOCKUP_TEMPLATES: Dict[str, List[MockupTemplate]] = {
    "business-cards": [
        MockupTemplate("bc-desk-front", "On Desk", "/mockups/business-card-desk.jpg", 25, 30, 50, 35, rotation_deg=-3),
        MockupTemplate("bc-hand-front", "In Hand", "/mockups/business-card-hand.jpg", 30, 25, 45, 30, rotation_deg=5, opacity=0.92),
    ],
    "flyers": [
        MockupTemplate("fl-desk-front", "On Desk", "/mockups/flyer-desk.jpg", 20, 15, 60, 70, rotation_deg=-2),
        MockupTemplate("fl-display-front", "Display Stand", "/mockups/flyer-display.jpg", 30, 12, 45, 60),
    ],
    "banners": [
        MockupTemplate("bn-storefront", "Storefront", "/mockups/banner-storefront.jpg", 10, 20, 80, 40, aspect_ratio="16/9"),
    ],
    "stickers": [
        MockupTemplate("st-laptop", "On Laptop", "/mockups/sticker-laptop.jpg", 40, 35, 20, 20, rotation_deg=-8),
    ],
}


def get_templates(product_slug: str) -> List[MockupTemplate]:
    return MOCKUP_TEMPLATES.get(product_slug.lower(), [])


def get_template(template_id: str) -> Optional[MockupTemplate]:
    for templates in MOCKUP_TEMPLATES.values():
        for template in templates:
            if template.id == template_id:
                return template
    return None


def pixel_size(print_spec: PrintSpec, dpi: int = None, include_bleed: bool = True) -> Tuple[int, int]:
    """Artwork size in pixels needed to print ``print_spec`` at ``dpi``."""
    dpi = dpi or config.MIN_PRINT_DPI
    width = print_spec.full_width_mm if include_bleed else print_spec.width_mm
    height = print_spec.full_height_mm if include_bleed else print_spec.height_mm
    return round(width / MM_PER_INCH * dpi), round(height / MM_PER_INCH * dpi)


def effective_dpi(print_spec: PrintSpec, width_px: int, height_px: int) -> float:
    """Resolution the artwork reaches when stretched over the full bleed area."""
    dpi_x = width_px / (print_spec.full_width_mm / MM_PER_INCH)
    dpi_y = height_px / (print_spec.full_height_mm / MM_PER_INCH)
    return round(min(dpi_x, dpi_y), 1)


def dpi_warning(dpi: float) -> bool:
    return dpi < config.MIN_PRINT_DPI


def check_artwork(product_slug: str, width_px: int, height_px: int) -> Dict[str, object]:
    """Effective DPI and warning for an image on a product; unknown products are not checked."""
    print_spec = PRINT_SPECS.get(product_slug.lower())
    if print_spec is None:
        return {"effective_dpi": None, "dpi_warning": False, "required_px": None}
    dpi = effective_dpi(print_spec, width_px, height_px)
    return {"effective_dpi": dpi, "dpi_warning": dpi_warning(dpi), "required_px": pixel_size(print_spec)}
