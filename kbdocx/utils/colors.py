import re

# Named colors the article generator is known to use
NAMED_COLORS = {
    'blue': '3B82F6',
    'red': 'EF4444',
    'green': '10B981',
    'gray': '71717A',
    'grey': '71717A',
}

_HEX_RE = re.compile(r'^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')
_RGB_RE = re.compile(r'^rgba?\(([^)]*)\)$', re.IGNORECASE)


def to_hex(value: str | None) -> str | None:
    """
    Converts a CSS color value to an uppercase 6-digit hex string without '#'.
    Supports #RGB, #RRGGBB, rgb()/rgba() and a few named colors.
    Returns None for anything else.
    """
    if not value:
        return None
    value = value.strip().lower()

    if match := _HEX_RE.match(value):
        digits = match.group(1)
        if len(digits) == 3:
            digits = ''.join(c * 2 for c in digits)
        return digits.upper()

    if match := _RGB_RE.match(value):
        parts = re.findall(r'\d+', match.group(1))
        if len(parts) < 3:
            return None
        channels = [min(int(p), 255) for p in parts[:3]]
        return ''.join(f'{c:02X}' for c in channels)

    return NAMED_COLORS.get(value)
