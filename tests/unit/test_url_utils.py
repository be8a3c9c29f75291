"""URL 파싱 유틸 테스트"""
import pytest

from kl_taxonomy.utils.url_utils import (
    build_category_url,
    build_selection_url,
    extract_category_id,
    extract_category_identifier,
    extract_numeric_id,
    extract_path_ids,
    normalize_category_url,
    normalize_href,
    parse_category_path,
)


class TestExtractCategoryId:
    """URL에서 숫자 카테고리 id 추출"""

    def test_listing_url(self):
        assert extract_category_id("https://www.kleinanzeigen.de/s-autos/c216") == "216"

    def test_attribute_suffix(self):
        """속성 토큰이 붙은 URL"""
        assert extract_category_id("/s-kategorie/c161+autos.marke_s:bmw") == "161"

    def test_trailing_digits(self):
        assert extract_category_id("/kategorie/176") == "176"

    def test_no_id(self):
        assert extract_category_id("") is None
        assert extract_category_id("https://www.kleinanzeigen.de/s-kategorien.html") is None


class TestNormalizeCategoryUrl:
    def test_strips_origin_and_trailing_slash(self):
        assert normalize_category_url("https://www.kleinanzeigen.de/s-autos/c216/") == "/s-autos/c216"

    def test_relative_equals_absolute(self):
        assert normalize_category_url("/s-autos/c216") == normalize_category_url("https://kleinanzeigen.de/s-autos/c216")


class TestIdentifier:
    def test_slug_segment_wins(self):
        url = "https://www.kleinanzeigen.de/s-elektronik/handy-telefon/c161"
        assert extract_category_identifier(url, numeric_id="161", target_id="161") == "handy-telefon"

    def test_attribute_token(self):
        url = "/s-autos/c216+autos.marke_s:bmw"
        assert extract_category_identifier(url, numeric_id="216", target_id="216") == "bmw"

    def test_numeric_fallback(self):
        assert extract_category_identifier("/s-autos/c216", numeric_id="216", target_id="210") == "216"


class TestPathIds:
    def test_path_param(self):
        assert extract_path_ids("/p-kategorie-aendern.html?path=161/176") == ["161", "176"]

    def test_encoded_separator(self):
        assert extract_path_ids("/p-kategorie-aendern.html?path=161%2F176%2F280") == ["161", "176", "280"]

    def test_without_path(self):
        assert extract_path_ids("/s-autos/c216") == []

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("161/176", ["161", "176"]),
            ("161,176", ["161", "176"]),
            ("161 > 176", ["161", "176"]),
            ("/p-kategorie-aendern.html?path=161/176", ["161", "176"]),
            ("elektronik/176", ["176"]),
            ('["161","176"]', ["161", "176"]),
            ('["https://www.kleinanzeigen.de/s-elektronik/c161", "https://www.kleinanzeigen.de/s-handy/c173"]', ["161", "173"]),
            ("/s-autos/c216", ["216"]),
            (
                "https://www.kleinanzeigen.de/s-elektronik/c161 > https://www.kleinanzeigen.de/s-audio-hifi/c176",
                ["161", "176"],
            ),
            ("Elektronik > 176", ["176"]),
            ("", []),
            (None, []),
        ],
    )
    def test_parse_category_path(self, raw, expected):
        assert parse_category_path(raw) == expected


class TestExtractNumericId:
    @pytest.mark.parametrize(
        "item,expected",
        [
            ("161", "161"),
            (161, "161"),
            ("/p-kategorie-aendern.html?path=161%2F176", "176"),
            ("https://www.kleinanzeigen.de/s-autos/c216", "216"),
            ("kategorie 280", "280"),
            ("Elektronik", ""),
            (None, ""),
        ],
    )
    def test_items(self, item, expected):
        assert extract_numeric_id(item) == expected


class TestBuildUrls:
    def test_category_url(self):
        assert build_category_url("161") == "https://www.kleinanzeigen.de/s-kategorie/c161"

    def test_slug_id_has_no_url(self):
        assert build_category_url("auto-rad-and-boot") == ""

    def test_selection_url_quotes_path(self):
        url = build_selection_url(["161", "176"])
        assert url.endswith("/p-kategorie-aendern.html?path=161%2F176")


def test_normalize_href():
    assert normalize_href("//www.kleinanzeigen.de/s-autos/c216") == "https://www.kleinanzeigen.de/s-autos/c216"
    assert normalize_href("/s-autos/c216") == "https://www.kleinanzeigen.de/s-autos/c216"
    assert normalize_href("https://example.com/x") == "https://example.com/x"
    assert normalize_href("") == ""
