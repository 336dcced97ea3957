"""
Unit tests for amenity classification and local re-filtering
"""

import pytest

from amenity_finder.overpass.classify import accepts_glass, classify_tags, display_name, filter_points
from amenity_finder.overpass.models import Category, ElementKind, GeoPoint


def point(osm_id, **tags):
    return GeoPoint(id=f"node/{osm_id}", lat=1.0, lon=1.0, tags=tags, kind=ElementKind.NODE)


class TestClassify:
    """Test cases for classify_tags"""

    def test_toilets(self):
        assert classify_tags({"amenity": "toilets"}) is Category.TOILETS

    def test_drinking_water(self):
        assert classify_tags({"amenity": "drinking_water"}) is Category.FOUNTAINS

    @pytest.mark.parametrize("key,value", [
        ("recycling", "glass"),
        ("recycling:glass", "yes"),
        ("recycling:glass_bottles", "yes"),
        ("recycling:glass_packaging", "yes"),
        ("recycling:material", "glass"),
    ])
    def test_every_glass_variant_is_glass(self, key, value):
        tags = {"amenity": "recycling", key: value}
        assert accepts_glass(tags)
        assert classify_tags(tags) is Category.GLASS

    def test_recycling_without_glass_tags_is_glass(self):
        assert classify_tags({"amenity": "recycling"}) is Category.GLASS

    def test_unknown(self):
        assert classify_tags({"amenity": "bench"}) is None
        assert classify_tags({}) is None


class TestFilterPoints:
    """Test cases for filter_points"""

    def test_keeps_only_enabled_categories(self):
        points = [
            point(1, amenity="toilets"),
            point(2, amenity="drinking_water"),
            point(3, amenity="recycling", **{"recycling:glass": "yes"}),
            point(4, amenity="bench"),
        ]
        kept = filter_points(points, {"toilets": True, "glass": True})
        assert [p.id for p in kept] == ["node/1", "node/3"]

    def test_nothing_enabled(self):
        assert filter_points([point(1, amenity="toilets")], None) == []


class TestDisplayName:
    """Test cases for display_name"""

    def test_prefers_name_then_operator(self):
        assert display_name({"name": "Alexanderplatz WC", "operator": "Wall"}) == "Alexanderplatz WC"
        assert display_name({"operator": "Wall"}) == "Wall"
        assert display_name({}) == "Point"
