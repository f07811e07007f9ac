"""
Height range validation.

Shared by the graph builder and the HTTP layer so both reject the same
inputs with the same message.

Time Complexity: O(1)
Memory: O(1)
"""

from typing import Any, Optional


def validate_height_range(
    start_height: Any, end_height: Any, max_span: Optional[int] = None
) -> Optional[str]:
    """
    Validate a block height range. Returns error message if invalid, None if valid.

    Checks:
        1. Both bounds are integers (bools rejected)
        2. Both bounds are non-negative
        3. start_height <= end_height
        4. The inclusive span does not exceed max_span, when given
    """
    for name, value in (("start_height", start_height), ("end_height", end_height)):
        if isinstance(value, bool) or not isinstance(value, int):
            return f"'{name}' must be an integer."
        if value < 0:
            return f"'{name}' must be non-negative."

    if start_height > end_height:
        return f"start_height ({start_height}) must not exceed end_height ({end_height})."

    if max_span is not None and end_height - start_height + 1 > max_span:
        return f"Height range spans more than {max_span} blocks."

    return None
