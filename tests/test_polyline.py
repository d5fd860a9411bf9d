"""
Tests for the encoded polyline format.
"""

import pytest

from safe_walk_routing.data import decode_polyline, encode_polyline

# Reference example from the public format description
REFERENCE_COORDS = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]
REFERENCE_ENCODED = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


def test_reference_encoding():
    assert encode_polyline(REFERENCE_COORDS) == REFERENCE_ENCODED
    for (lat, lon), (exp_lat, exp_lon) in zip(decode_polyline(REFERENCE_ENCODED), REFERENCE_COORDS):
        assert lat == pytest.approx(exp_lat)
        assert lon == pytest.approx(exp_lon)


def test_empty_and_single_point():
    assert encode_polyline([]) == ''
    assert decode_polyline('') == []
    assert decode_polyline(encode_polyline([(51.5, -0.12)])) == [(51.5, -0.12)]


def test_truncated_input_rejected():
    with pytest.raises(ValueError):
        decode_polyline(REFERENCE_ENCODED[:-2])
