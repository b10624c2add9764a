"""
Unit Tests for mailing address change detection

Run with: pytest tests/test_change_detection.py -v
"""

from models import ProfileBase
from services.change_detection import address_changed, detect_address_change


def profile(address=None):
    return ProfileBase(mailing_address=address)


class TestAddressChanged:

    def test_missing_proposed_address_is_no_change(self):
        assert address_changed(profile({"city": "Reno"}), profile(None)) is False

    def test_empty_proposed_address_is_no_change(self):
        assert address_changed(profile({"city": "Reno"}), profile({})) is False

    def test_first_address_is_a_change(self):
        assert address_changed(profile(None), profile({"city": "Reno"})) is True

    def test_empty_original_is_a_change(self):
        assert address_changed(profile({}), profile({"city": "Reno"})) is True

    def test_identical_address_is_no_change(self):
        address = {"line1": "1 Main St", "city": "Reno"}
        assert address_changed(profile(address), profile(dict(address))) is False

    def test_changed_field(self):
        assert address_changed(
            profile({"line1": "1 Main St", "city": "Reno"}),
            profile({"line1": "1 Main St", "city": "Austin"}),
        ) is True

    def test_subset_of_original_is_no_change(self):
        """Fields only present on the stored address are not compared."""
        assert address_changed(
            profile({"line1": "1 Main St", "city": "Reno", "state": "NV"}),
            profile({"city": "Reno"}),
        ) is False

    def test_new_field_is_a_change(self):
        assert address_changed(
            profile({"city": "Reno"}),
            profile({"city": "Reno", "line2": "Apt 4"}),
        ) is True

    def test_new_field_with_none_value_is_a_change(self):
        assert address_changed(profile({"city": "Reno"}), profile({"line2": None})) is True


class TestDetectAddressChange:

    def test_delta_carries_both_addresses(self):
        delta = detect_address_change(profile({"city": "Reno"}), profile({"city": "Austin"}))

        assert delta.changed is True
        assert delta.original == {"city": "Reno"}
        assert delta.proposed == {"city": "Austin"}
