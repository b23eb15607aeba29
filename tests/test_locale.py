"""Tests for message catalogs."""

from tripflow.core.locale import SUPPORTED_LOCALES, create_translator, load_catalog


def test_catalogs_share_keys():
    catalogs = [load_catalog(locale) for locale in SUPPORTED_LOCALES]

    assert all(set(catalog) == set(catalogs[0]) for catalog in catalogs)


def test_renders_parameters():
    t = create_translator("en")

    assert t("trip.message.bill_of_lading_number", bill_of_lading="BL-9") == "Bill of lading number: BL-9"


def test_vietnamese_catalog():
    t = create_translator("vi")

    assert t("trip.message.bill_of_lading_notes", notes="giao gấp") == "Ghi chú: giao gấp"


def test_unsupported_locale_falls_back_to_default():
    assert create_translator("fr")("error.validation") == create_translator("vi")("error.validation")
    assert create_translator(None)("error.validation") == "Yêu cầu thiếu thông tin bắt buộc."


def test_missing_key_renders_key():
    assert create_translator("en")("error.nope") == "error.nope"


def test_missing_parameter_renders_key():
    assert create_translator("en")("error.existed") == "error.existed"
