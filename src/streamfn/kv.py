"""Comma-delimited ``key=value`` list parsing.

Values may themselves contain commas; a comma only starts a new pair when
the following segment begins with ``key=``:

    >>> parse_comma_delimited_key_value_pairs("a.b=1,2,c=3")
    {'a.b': '1,2', 'c': '3'}
"""

import re
from typing import Dict, Optional

_PAIR_START = re.compile(r"^\s*([A-Za-z0-9_.\-]+)\s*=(?!=)(.*)$", re.DOTALL)


def parse_comma_delimited_key_value_pairs(text: Optional[str]) -> Dict[str, str]:
    """Parse ``k1=v1,k2=v2`` where values may contain commas.

    Raises:
        ValueError: If the text does not start with a ``key=value`` pair
    """
    pairs: Dict[str, str] = {}
    if text is None or not text.strip():
        return pairs

    current: Optional[str] = None
    for segment in text.split(","):
        match = _PAIR_START.match(segment)
        if match:
            current = match.group(1)
            pairs[current] = match.group(2).strip()
        elif current is None:
            raise ValueError(f"Expected key=value at start of '{text}'")
        else:
            pairs[current] = f"{pairs[current]},{segment.rstrip()}"
    return pairs


__all__ = ["parse_comma_delimited_key_value_pairs"]
