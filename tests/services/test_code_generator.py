import pytest

from app.rollcall.services.code_generator import DEFAULT_ALPHABET, generate_code, normalize_code


def test_generate_code_uses_length_and_alphabet():
    code = generate_code(8, "AB")
    assert len(code) == 8
    assert set(code) <= {"A", "B"}

def test_generate_code_defaults_to_six_upper_alphanumerics():
    code = generate_code()
    assert len(code) == 6
    assert all(ch in DEFAULT_ALPHABET for ch in code)

def test_generate_code_rejects_short_length():
    with pytest.raises(ValueError, match="at least 4"):
        generate_code(3)

def test_generate_code_rejects_single_symbol_alphabet():
    with pytest.raises(ValueError, match="two distinct symbols"):
        generate_code(6, "AAAA")

def test_generated_codes_vary():
    """A 36^6 space should not produce the same code 50 times running."""
    assert len({generate_code() for _ in range(50)}) > 1

@pytest.mark.parametrize("raw, expected", [
    ("  ab12cd ", "AB12CD"),
    ("AB12CD", "AB12CD"),
    ("", ""),
])
def test_normalize_code(raw, expected):
    assert normalize_code(raw) == expected

def test_normalize_code_keeps_case_for_mixed_alphabets():
    assert normalize_code(" aBc1 ", alphabet="abcABC123") == "aBc1"
