"""
TechDraw Kernel Configuration

Tolerances and defaults shared by the store, the geometry functions
and the interactive tools.
"""

from dataclasses import dataclass


# ============================================================
# NUMERICAL TOLERANCES
# ============================================================

EPSILON = 1e-4              # parallel test, on-boundary test, degenerate lengths
DEDUPE_DECIMALS = 4         # intersection points are merged at this precision

# ============================================================
# MODIFICATION TOOLS
# ============================================================

EXTEND_PROBE_LENGTH = 10000.0   # how far past the free end extend looks
HIT_TOLERANCE = 5.0             # pointer pick distance in world units

# ============================================================
# ENTITIES
# ============================================================

DEFAULT_LAYER = "default"
MIN_POLYGON_SIDES = 3


@dataclass
class KernelSettings:
    """Tunable kernel parameters."""
    epsilon: float = EPSILON
    dedupe_decimals: int = DEDUPE_DECIMALS
    extend_probe_length: float = EXTEND_PROBE_LENGTH
    hit_tolerance: float = HIT_TOLERANCE
    default_layer: str = DEFAULT_LAYER

    def validate(self):
        """
        Validate settings.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if self.epsilon <= 0:
            return False, "Epsilon must be positive"
        if self.dedupe_decimals < 0:
            return False, "Dedupe decimals cannot be negative"
        if self.extend_probe_length <= 0:
            return False, "Extend probe length must be positive"
        if self.hit_tolerance < 0:
            return False, "Hit tolerance cannot be negative"
        if not self.default_layer:
            return False, "Default layer name is required"
        return True, ""


DEFAULT_SETTINGS = KernelSettings()
