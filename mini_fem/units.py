# Length units for reporting. Internal lengths are mm, forces N.

LENGTH_UNITS = {
    'mm': 1.0,
    'cm': 0.1,
    'm': 1e-3,
    'in': 1.0 / 25.4,
    'ft': 1.0 / 304.8,
}


def length_factor(unit: str) -> float:
    """Factor converting mm to `unit`."""
    try:
        return LENGTH_UNITS[unit]
    except KeyError:
        raise ValueError(f"Unknown length unit '{unit}'. Options: {list(LENGTH_UNITS)}") from None
