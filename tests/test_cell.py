"""Tests for citygrid.world.cell."""

import numpy as np

from citygrid.world.cell import (
    LOCKED_ROADS,
    CellKind,
    attribute_table,
    kind_mask,
    kind_of,
    normalise_codes,
)


class TestKindLookup:
    """Tests for code -> kind resolution."""

    def test_known_codes(self) -> None:
        assert kind_of(0) is CellKind.EMPTY
        assert kind_of(14) is CellKind.LOCKED_ROAD_4LANE
        assert kind_of(33) is CellKind.LANDMARK

    def test_unknown_codes_default_to_empty(self) -> None:
        for code in (-1, 15, 19, 26, 40, 999):
            assert kind_of(code) is CellKind.EMPTY

    def test_every_kind_has_attributes(self) -> None:
        for kind in CellKind:
            assert kind.attributes.label

    def test_codes_are_unique(self) -> None:
        codes = [kind.code for kind in CellKind]
        assert len(codes) == len(set(codes))


class TestPredicates:
    """Tests for the derived kind predicates."""

    def test_roads(self) -> None:
        roads = {kind for kind in CellKind if kind.is_road}
        assert roads == {
            CellKind.ROAD,
            CellKind.LOCKED_ROAD,
            CellKind.ROAD_4LANE,
            CellKind.LOCKED_ROAD_4LANE,
            CellKind.BRIDGE,
        }

    def test_locked_roads(self) -> None:
        assert LOCKED_ROADS == {CellKind.LOCKED_ROAD, CellKind.LOCKED_ROAD_4LANE}
        assert CellKind.LOCKED_ROAD.is_locked_road
        assert not CellKind.ROAD.is_locked_road

    def test_residential_and_zones(self) -> None:
        assert CellKind.RESIDENTIAL_MID.is_residential
        assert not CellKind.ZONE_RESIDENTIAL.is_residential
        assert CellKind.ZONE_INDUSTRIAL.is_zone
        assert CellKind.COMMERCIAL.is_building
        assert not CellKind.PARK.is_building

    def test_public_building_band(self) -> None:
        public = {kind for kind in CellKind if kind.is_public_building}
        assert all(20 <= kind.code < 40 for kind in public)
        assert CellKind.AIRPORT in public
        assert CellKind.ROAD_4LANE not in public

    def test_power(self) -> None:
        assert CellKind.POWER_PLANT.produces_power
        assert CellKind.POWER_PLANT.power_production == 50
        assert CellKind.POWER_PLANT.power_consumption == 0
        assert CellKind.HOSPITAL.power_consumption == 5
        assert not CellKind.HOSPITAL.produces_power

    def test_radii(self) -> None:
        assert CellKind.POLICE_STATION.attributes.effect_radius == 8
        assert CellKind.LARGE_POWER_PLANT.attributes.effect_radius == 15
        assert CellKind.AIRPORT.attributes.effect_radius == 0


class TestVectorisedTables:
    """Tests for the numpy lookup helpers."""

    def test_normalise_replaces_unknown(self) -> None:
        grid = np.array([[3, 99], [-4, 21]])
        assert normalise_codes(grid).tolist() == [[3, 0], [0, 21]]
        assert grid.tolist() == [[3, 99], [-4, 21]]

    def test_attribute_table(self) -> None:
        tax = attribute_table("tax_per_hour")
        assert tax[CellKind.RESIDENTIAL_HIGH.code] == 800
        assert tax[CellKind.AIRPORT.code] == 500
        assert tax[16] == 0

    def test_kind_mask(self) -> None:
        grid = np.array([[1, 2], [14, 0]])
        assert kind_mask(grid, LOCKED_ROADS).tolist() == [[False, True], [True, False]]
