import re
import secrets

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
NAMED_COLOR_RE = re.compile(r"^[a-zA-Z]+$")


def is_color(value: str) -> bool:
    """Accept #RGB, #RRGGBB or a named token such as `yellow`."""
    return bool(HEX_COLOR_RE.fullmatch(value) or NAMED_COLOR_RE.fullmatch(value))


def new_token(prefix: str = "i") -> str:
    return prefix + secrets.token_hex(6)
