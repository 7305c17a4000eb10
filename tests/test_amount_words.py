from gstbill.amount_words import amount_in_words, round_rupees


def test_zero_and_negative_amounts() -> None:
    assert amount_in_words(0) == "Zero rupees only"
    assert amount_in_words(-15) == "Zero rupees only"
    assert amount_in_words(0.4) == "Zero rupees only"


def test_lakh_grouping() -> None:
    words = amount_in_words(150000)
    assert words.startswith("One lakh")
    assert "one lakh fifty thousand" in words.lower()
    assert words.endswith(" rupees only")
    assert "," not in words


def test_crore() -> None:
    assert amount_in_words(10 ** 7) == "One crore rupees only"


def test_largest_two_digit_crore_amount() -> None:
    words = amount_in_words(999999999).lower()
    assert words.startswith("ninety nine crore ninety nine lakh")
    assert "-" not in words
    assert " and " not in words


def test_hundred_crore_and_beyond() -> None:
    assert amount_in_words(100 * 10 ** 7) == "One hundred crore rupees only"
    words = amount_in_words(12345 * 10 ** 7 + 5).lower()
    assert words.startswith("twelve thousand three hundred forty five crore")
    assert words.endswith("crore five rupees only")


def test_round_rupees() -> None:
    assert round_rupees(2.5) == 3
    assert round_rupees("10.49") == 10
    assert round_rupees("abc") == 0
    assert round_rupees(None) == 0
    assert round_rupees(float("nan")) == 0
