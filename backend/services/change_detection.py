"""
Address change detection.

Decides whether an update touches the mailing address in a way that has to
be pushed to billing and CRM. The proposed address is authoritative for which
fields are compared; fields only present on the stored address are ignored.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from models import ProfileBase


@dataclass(frozen=True)
class AddressDelta:
    changed: bool
    original: Optional[Dict[str, Any]]
    proposed: Optional[Dict[str, Any]]


def address_changed(original: ProfileBase, proposed: ProfileBase) -> bool:
    # an empty or missing proposed address is "no change", by policy
    if not proposed.mailing_address:
        return False

    if not original.mailing_address:
        return True

    _missing = object()
    for key, value in proposed.mailing_address.items():
        if original.mailing_address.get(key, _missing) != value:
            return True

    return False


def detect_address_change(original: ProfileBase, proposed: ProfileBase) -> AddressDelta:
    return AddressDelta(
        changed=address_changed(original, proposed),
        original=original.mailing_address,
        proposed=proposed.mailing_address,
    )
