from __future__ import annotations

import pytest

from freight_quote.chargeable import chargeable_quantity
from freight_quote.models import OverallCargo, Piece
from freight_quote.modes import AIR, FCL, LCL


def test_air_volumetric_piece():
    piece = Piece(length=100, width=80, height=60, weight=50)

    assert piece.volume == pytest.approx(0.48)
    assert piece.volumetric_weight(167) == pytest.approx(80.16)

    result = chargeable_quantity(AIR, pieces=[piece])
    assert result.quantity == pytest.approx(80.16)
    assert result.unit == "kg"
    assert result.basis == "volume"
    assert result.total_weight == pytest.approx(50)


def test_air_heavy_pieces_bill_by_weight():
    pieces = [
        Piece(length=50, width=40, height=30, weight=100, quantity=2),
        Piece(length=20, width=20, height=20, weight=15),
    ]
    result = chargeable_quantity(AIR, pieces=pieces)
    assert result.total_weight == pytest.approx(215)
    assert result.quantity == pytest.approx(215)
    assert result.basis == "weight"


def test_air_overall_applies_volume_factor():
    result = chargeable_quantity(AIR, overall=OverallCargo(weight=100, volume=1.0))
    assert result.quantity == pytest.approx(167)
    assert result.basis == "volume"
    assert result.total_volumetric_weight == pytest.approx(167)


def test_zero_dimension_gives_zero_volume():
    piece = Piece(length=0, width=80, height=60, weight=12)
    assert piece.volume == 0.0
    assert chargeable_quantity(AIR, pieces=[piece]).quantity == pytest.approx(12)


def test_lcl_wm_per_piece_summed():
    pieces = [
        Piece(length=120, width=100, height=100, weight=500, quantity=2),  # 1.2 m3 vs 0.5 t
        Piece(length=100, width=100, height=50, weight=900),  # 0.5 m3 vs 0.9 t
    ]
    result = chargeable_quantity(LCL, pieces=pieces)
    assert result.unit == "W/M"
    assert result.quantity == pytest.approx(1.2 * 2 + 0.9)
    assert result.total_volume == pytest.approx(2.9)


def test_lcl_overall_and_tie_reports_weight():
    result = chargeable_quantity(LCL, overall=OverallCargo(weight=2000, volume=2.0))
    assert result.quantity == pytest.approx(2.0)
    assert result.basis == "weight"


def test_fcl_counts_containers():
    assert chargeable_quantity(FCL, container_count=3).quantity == 3
    assert chargeable_quantity(FCL).quantity == 1
    assert chargeable_quantity(FCL, container_count=0).quantity == 0
    with pytest.raises(ValueError):
        chargeable_quantity(FCL, container_count=-1)


def test_air_without_cargo_is_rejected():
    with pytest.raises(ValueError):
        chargeable_quantity(AIR)
