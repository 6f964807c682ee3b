"""Human-readable order numbers: ``ORD-<WORD>-<WORD>-<NNNN>``."""
import secrets
import time
from typing import Optional

PREFIX = "ORD"

WORDS = (
    "amber", "anchor", "arrow", "aspen", "atlas", "autumn", "basil", "beacon",
    "birch", "bloom", "breeze", "brook", "canyon", "cedar", "chalk", "cinder",
    "clover", "comet", "coral", "cotton", "crane", "crystal", "dawn", "delta",
    "dune", "ember", "falcon", "fern", "field", "flint", "forest", "frost",
    "garden", "glacier", "granite", "harbor", "hazel", "heron", "island", "ivory",
    "jasper", "juniper", "lagoon", "lantern", "lark", "lemon", "linen", "lotus",
    "maple", "marble", "meadow", "mesa", "mint", "moss", "nectar", "north",
    "oak", "ocean", "olive", "opal", "orbit", "otter", "pebble", "pepper",
    "pine", "planet", "plum", "prairie", "quartz", "quill", "raven", "reef",
    "ridge", "river", "robin", "saffron", "sage", "shadow", "silver", "sparrow",
    "spruce", "stone", "summit", "thistle", "thunder", "timber", "topaz", "tulip",
    "valley", "velvet", "willow", "winter", "wren", "zephyr",
)


def generate_order_number(now_ms: Optional[int] = None, rng=None) -> str:
    """
    Build a readable order number from two random words and the last four
    digits of the current epoch milliseconds.

    Only probabilistically unique; the orders table enforces uniqueness.
    """
    rng = rng or secrets.SystemRandom()
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    words = "-".join(rng.choice(WORDS) for _ in range(2))
    suffix = str(now_ms)[-4:]
    return f"{PREFIX}-{words}-{suffix}".upper()
