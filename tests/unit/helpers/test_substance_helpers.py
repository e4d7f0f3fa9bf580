import pytest

from degradscan.helpers.substance_helpers import (
    normalize_substance_name,
    substance_cache_key,
)


@pytest.mark.parametrize("name", ["Paracetamol", " paracetamol ", "PARACETAMOL"])
def test_variants_share_cache_key(name):
    assert substance_cache_key(name) == "substance_paracetamol"


def test_inner_whitespace_collapses_to_underscore():
    assert substance_cache_key("Acetic \t  Acid") == "substance_acetic_acid"


def test_normalize_keeps_single_spaces():
    assert normalize_substance_name("  Sodium   Chloride ") == "sodium chloride"
