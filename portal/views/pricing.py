"""Pricing table: tiers side by side, features grouped by feature group."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class FeatureRow:
    feature_key: str
    feature_label: str
    cells: List[Optional[str]] = field(default_factory=list)  # one per tier, None when not included


@dataclass
class FeatureGroup:
    name: str
    rows: List[FeatureRow] = field(default_factory=list)


@dataclass
class PricingTable:
    tiers: List[Dict[str, Any]]
    groups: List[FeatureGroup]

    def cell(self, feature_key: str, tier_slug: str) -> Optional[str]:
        index = next((i for i, t in enumerate(self.tiers) if t.get("slug") == tier_slug), None)
        if index is None:
            return None
        for group in self.groups:
            for row in group.rows:
                if row.feature_key == feature_key:
                    return row.cells[index]
        return None


def cell_text(feature: Optional[Dict[str, Any]]) -> Optional[str]:
    """Display text for one tier/feature intersection."""
    if feature is None or not feature.get("is_included", True):
        return None
    return feature.get("feature_value") or "Included"


def build_pricing_table(tiers_response: List[Dict[str, Any]]) -> PricingTable:
    """
    Shape ``GET /public/tiers`` into a feature matrix.

    Groups appear in order of their first feature's ``sort_order``; a tier
    without a feature gets an empty cell for that row.
    """
    entries = sorted(tiers_response, key=lambda e: (e["tier"].get("sort_order", 0), e["tier"].get("name", "")))
    tiers = [entry["tier"] for entry in entries]

    by_tier = []
    ordered: Dict[str, Dict[str, Any]] = {}
    for entry in entries:
        features = {f["feature_key"]: f for f in entry.get("features", [])}
        by_tier.append(features)
        for f in entry.get("features", []):
            current = ordered.get(f["feature_key"])
            if current is None or f.get("sort_order", 0) < current.get("sort_order", 0):
                ordered[f["feature_key"]] = f

    groups: Dict[str, FeatureGroup] = {}
    for feature in sorted(ordered.values(), key=lambda f: (f.get("sort_order", 0), f["feature_label"])):
        group = groups.setdefault(feature["group_name"], FeatureGroup(name=feature["group_name"]))
        group.rows.append(FeatureRow(
            feature_key=feature["feature_key"],
            feature_label=feature["feature_label"],
            cells=[cell_text(features.get(feature["feature_key"])) for features in by_tier],
        ))

    return PricingTable(tiers=tiers, groups=list(groups.values()))
