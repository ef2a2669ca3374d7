"""
Tests for building the national boundary from administrative polygons.
"""

import geopandas as gpd
import pytest
from shapely.geometry import Polygon, box

from boundary_builder import EmptyBoundaryError, build_boundary, clip_to_boundary, select_features


class TestSelectFeatures:

    def test_select_by_single_name(self, admin_boundaries):
        selected = select_features(admin_boundaries, 'adm0_en', 'Ukraine')
        assert len(selected) == 2

    def test_select_by_several_names(self, admin_boundaries):
        selected = select_features(admin_boundaries, 'adm0_en', ['Ukraine', 'Moldova'])
        assert len(selected) == 3

    def test_unknown_field(self, admin_boundaries):
        with pytest.raises(KeyError):
            select_features(admin_boundaries, 'NAME_0', 'Ukraine')


class TestBuildBoundary:

    def test_union_of_halves_is_the_square(self, admin_boundaries):
        """Two adjacent halves dissolve into one square polygon."""
        boundary = build_boundary(admin_boundaries, 'adm0_en', ['Ukraine'])

        assert boundary.is_valid
        assert boundary.geom_type == 'Polygon'
        assert boundary.area == pytest.approx(4.0)
        assert boundary.bounds == pytest.approx((30.0, 48.0, 32.0, 50.0))

    def test_empty_selection_raises(self, admin_boundaries):
        """A filter matching nothing must not produce an empty boundary."""
        with pytest.raises(EmptyBoundaryError):
            build_boundary(admin_boundaries, 'adm0_en', ['Atlantis'])

    def test_empty_boundary_is_value_error(self, admin_boundaries):
        with pytest.raises(ValueError):
            build_boundary(admin_boundaries, 'adm0_en', 'Atlantis')

    def test_zero_area_union_raises(self):
        """Degenerate polygons dissolve to nothing and are rejected."""
        flat = Polygon([(0, 0), (1, 0), (2, 0)])
        gdf = gpd.GeoDataFrame({'adm0_en': ['Flatland']}, geometry=[flat], crs="EPSG:3857")
        with pytest.raises(EmptyBoundaryError):
            build_boundary(gdf, 'adm0_en', 'Flatland')

    def test_invalid_polygon_is_repaired(self):
        """A self-intersecting bow-tie is made valid."""
        bowtie = Polygon([(0, 0), (2, 2), (2, 0), (0, 2)])
        assert not bowtie.is_valid

        gdf = gpd.GeoDataFrame({'adm0_en': ['Bowtie']}, geometry=[bowtie], crs="EPSG:3857")
        boundary = build_boundary(gdf, 'adm0_en', 'Bowtie')

        assert boundary.is_valid
        assert boundary.area == pytest.approx(2.0)


class TestClipToBoundary:

    def test_clip_drops_outside_features(self):
        gdf = gpd.GeoDataFrame(
            {'population': [10, 20]},
            geometry=[box(0, 0, 1, 1), box(10, 10, 11, 11)],
            crs="EPSG:3857",
        )
        clipped = clip_to_boundary(gdf, box(-1, -1, 5, 5))

        assert len(clipped) == 1
        assert clipped['population'].iloc[0] == 10

    def test_clip_cuts_partial_features(self):
        gdf = gpd.GeoDataFrame({'population': [10]}, geometry=[box(0, 0, 2, 2)], crs="EPSG:3857")
        clipped = clip_to_boundary(gdf, box(1, 0, 3, 2))

        assert clipped.geometry.iloc[0].area == pytest.approx(2.0)

    def test_clip_drops_touching_edges(self):
        """Neighbours that only share an edge with the boundary are not kept as lines."""
        gdf = gpd.GeoDataFrame(
            {'population': [10, 20]},
            geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1)],
            crs="EPSG:3857",
        )
        clipped = clip_to_boundary(gdf, box(0, 0, 1, 1))

        assert list(clipped.geom_type) == ['Polygon']
        assert list(clipped['population']) == [10]
