import secrets
import string

DEFAULT_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_LENGTH = 6
MIN_LENGTH = 4


def generate_code(length: int = DEFAULT_LENGTH, alphabet: str = DEFAULT_ALPHABET) -> str:
    """
    Returns a short, human-enterable session code.

    Codes are shared identifiers bounded by the session deadline and the
    enrollment check, not secrets; uniqueness among open sessions is
    enforced by the store, which makes callers retry on a clash.
    """
    if length < MIN_LENGTH:
        raise ValueError(f"Session codes must be at least {MIN_LENGTH} characters long.")
    symbols = "".join(sorted(set(alphabet)))
    if len(symbols) < 2:
        raise ValueError("The code alphabet needs at least two distinct symbols.")
    return "".join(secrets.choice(symbols) for _ in range(length))


def normalize_code(code: str, alphabet: str = DEFAULT_ALPHABET) -> str:
    """
    Canonical form used for lookups: surrounding blanks dropped, and upper
    case when the alphabet has no lower-case letters.
    """
    code = code.strip()
    if alphabet == alphabet.upper():
        code = code.upper()
    return code
