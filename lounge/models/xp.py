"""Experience point (XP) progression utilities.

Creatures keep a per-level experience counter that resets to zero on every
level-up, so the curve is a simple per-level threshold rather than a
cumulative table. Import `xp_for_level` anywhere level gating or progress
bars need the number.
"""


def xp_for_level(level: int) -> int:
    """Return the experience a creature must bank at ``level`` to level up.

    Args:
        level: Current 1-based level. Values below 1 return 0.

    Returns:
        ``level * 100``. Experience is reset to 0 after each level-up, so
        this is the threshold for the *next* level only.
    """
    if level < 1:
        return 0
    return level * 100
