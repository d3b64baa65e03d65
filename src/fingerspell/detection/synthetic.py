"""
Synthetic hand poses for demos, replay files and tests.

Builds a plausible right hand with each finger either straight or curled
into the palm, optionally rotated to one of the four orientations and
shifted in the image. The geometry satisfies the extractor's default
thresholds with a comfortable margin.
"""

from typing import List, Sequence, Tuple

from ..core.types import HandOrientation

Point = Tuple[float, float, float]

# Offsets from the wrist in an upright hand: (lateral dx, distance up, z).
# Fingers list MCP, PIP, DIP, TIP heights.
_FINGER_LAYOUT = {
    "index":  (-0.06, (0.20, 0.28, 0.33, 0.38)),
    "middle": (0.00, (0.21, 0.30, 0.36, 0.42)),
    "ring":   (0.05, (0.20, 0.28, 0.33, 0.37)),
    "pinky":  (0.09, (0.17, 0.22, 0.26, 0.30)),
}

_THUMB_BASE = ((-0.05, 0.04, 0.0), (-0.09, 0.09, 0.0))             # CMC, MCP
_THUMB_OPEN = ((-0.14, 0.14, 0.0), (-0.19, 0.18, 0.0))             # IP, TIP
_THUMB_TUCKED = ((-0.08, 0.16, -0.02), (-0.04, 0.18, -0.03))       # IP, TIP


def _rotate(dx: float, dy: float, orientation: HandOrientation) -> Tuple[float, float]:
    """Rotate an image-space offset so that 'up' maps to ``orientation``."""
    if orientation == HandOrientation.RIGHT:
        return -dy, dx
    if orientation == HandOrientation.DOWN:
        return -dx, -dy
    if orientation == HandOrientation.LEFT:
        return dy, -dx
    return dx, dy


def synthetic_hand(
    signature: Sequence[bool],
    orientation: HandOrientation = HandOrientation.UP,
    wrist: Tuple[float, float] = (0.5, 0.75),
    offset: Tuple[float, float] = (0.0, 0.0),
) -> List[Point]:
    """Build 21 landmarks for the given thumb -> pinky extension flags.

    Args:
        signature: Five booleans, True = finger extended
        orientation: Direction the fingers point in the image
        wrist: Wrist position in normalized image coordinates
        offset: Extra translation applied to every point

    Returns:
        List of 21 (x, y, z) tuples in MediaPipe order
    """
    thumb, index, middle, ring, pinky = (bool(s) for s in signature)
    extended = {"index": index, "middle": middle, "ring": ring, "pinky": pinky}

    # Offsets as (dx, up, z) relative to the wrist
    local: List[Point] = [(0.0, 0.0, 0.0)]
    local.extend(_THUMB_BASE)
    local.extend(_THUMB_OPEN if thumb else _THUMB_TUCKED)

    for finger in ("index", "middle", "ring", "pinky"):
        dx, (mcp, pip, dip, tip) = _FINGER_LAYOUT[finger]
        local.append((dx, mcp, 0.0))
        local.append((dx, pip, 0.0))
        if extended[finger]:
            local.append((dx, dip, 0.0))
            local.append((dx, tip, 0.0))
        else:
            # Fold the finger back toward the palm
            local.append((dx, pip - 0.02, -0.03))
            local.append((dx, mcp, -0.04))

    wx, wy = wrist[0] + offset[0], wrist[1] + offset[1]
    points = []
    for dx, up, z in local:
        rx, ry = _rotate(dx, -up, orientation)
        points.append((round(wx + rx, 6), round(wy + ry, 6), z))
    return points


def hand_for_letter(letter: str, patterns, **kwargs) -> List[Point]:
    """Synthetic hand showing the expected finger signature of ``letter``."""
    return synthetic_hand(patterns[letter.upper()].signature, **kwargs)
