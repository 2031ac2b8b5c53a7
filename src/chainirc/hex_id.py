"""Hex ID generation for local write records.

Hex IDs are temporary handles for optimistic records (pending messages)
shown in the terminal. They are never sent to collaborators and change on
each app run.
"""

import random
from typing import Set


HEX_ID_MIN_DIGITS = 3
HEX_ID_MAX_ATTEMPTS = 3


def generate_hex_id(existing_ids: Set[str], min_digits: int = HEX_ID_MIN_DIGITS) -> str:
    """Generate unique hex ID.

    Args:
        existing_ids: Set of already used hex IDs (will be modified)
        min_digits: Minimum number of hex digits (default: HEX_ID_MIN_DIGITS)

    Returns:
        Unique hex ID string (e.g., "a3f", "b2c", "1a4f")

    The function tries to generate a hex ID with min_digits length.
    If all attempts fail (collisions), it increases the digit count
    and tries again.
    """
    digits = min_digits

    while True:
        for _ in range(HEX_ID_MAX_ATTEMPTS):
            hex_id = format(random.randint(0, 16**digits - 1), f"0{digits}x")
            if hex_id not in existing_ids:
                existing_ids.add(hex_id)
                return hex_id

        # All attempts failed, increase digits
        digits += 1

