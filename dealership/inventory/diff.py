"""Field-level diff between two car snapshots, for the edit confirmation."""

from .constants import EDITABLE_FIELDS


def calculate_car_diff(old_car, new_car):
    """List the editable fields that differ between two snapshots.

    Timestamps and the SKU are never compared. A field is reported only when
    both snapshots carry a value for it and the values are unequal (no type
    coercion: 30000 and '30000' differ).

    Returns:
        list of {'field', 'fieldLabel', 'oldValue', 'newValue'} in display order
    """
    changes = []
    for field, label in EDITABLE_FIELDS:
        old_value = old_car.get(field)
        new_value = new_car.get(field)
        if old_value is None or new_value is None:
            continue
        if old_value != new_value:
            changes.append({
                'field': field,
                'fieldLabel': label,
                'oldValue': old_value,
                'newValue': new_value,
            })
    return changes
