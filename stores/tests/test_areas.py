"""
Unit Tests for area-name canonicalisation
"""

import pytest

from stores.areas import (
    area_variations,
    areas_match,
    canonical_area,
    canonical_sido,
    canonical_sigungu,
)


class TestCanonicalNames:
    """Tests for canonical province and district names."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("서울", "서울특별시"),
            ("서울시", "서울특별시"),
            ("서울특별시", "서울특별시"),
            ("부산", "부산광역시"),
            ("경기", "경기도"),
            ("강원도", "강원특별자치도"),
            ("전라북도", "전북특별자치도"),
            ("제주도", "제주특별자치도"),
        ],
    )
    def test_sido(self, raw, expected):
        """Test abbreviated, full and renamed province names."""
        assert canonical_sido(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("강남", "강남구"),
            ("강남구", "강남구"),
            ("중", "중구"),
            ("구로", "구로구"),
            ("수원", "수원시"),
            ("양평군", "양평군"),
            ("수원시 영통구", "수원시 영통구"),
            ("", ""),
        ],
    )
    def test_sigungu(self, raw, expected):
        """Test 시/군/구 suffix handling."""
        assert canonical_sigungu(raw) == expected

    def test_canonical_area(self):
        """Test the combined form."""
        assert canonical_area("서울", "강남") == "서울특별시 강남구"


class TestAreasMatch:
    """Tests for area coverage."""

    def test_spelling_variants_match(self):
        """Test differently written names of one district match."""
        assert areas_match("서울", "강남", "서울특별시", "강남구")

    def test_different_district_does_not_match(self):
        """Test neighbouring districts are distinct."""
        assert not areas_match("서울특별시", "강남구", "서울특별시", "서초구")

    def test_different_province_does_not_match(self):
        """Test 중구 in Seoul is not 중구 in Busan."""
        assert not areas_match("서울", "중구", "부산", "중구")

    def test_whole_province_covers_districts(self):
        """Test a blank or 전체 district covers the province."""
        assert areas_match("경기도", "전체", "경기", "수원시")
        assert areas_match("경기도", "", "경기", "수원시")

    def test_city_covers_its_districts(self):
        """Test 수원시 covers 수원시 영통구."""
        assert areas_match("경기도", "수원시", "경기도", "수원시 영통구")
        assert not areas_match("경기도", "용인시", "경기도", "수원시 영통구")

    @pytest.mark.parametrize("sido_full, sigungu_full, sido_short, sigungu_short", [
        ("부산광역시", "해운대구", "부산", "해운대"),
        ("대구광역시", "수성구", "대구", "수성"),
        ("인천광역시", "남동구", "인천", "남동"),
        ("강원특별자치도", "양양군", "강원", "양양"),
    ])
    def test_abbreviated_districts_outside_seoul(self, sido_full, sigungu_full, sido_short, sigungu_short):
        """Test unsuffixed district names match their 구 and 군 forms."""
        assert areas_match(sido_full, sigungu_full, sido_short, sigungu_short)
        assert areas_match(sido_short, sigungu_short, sido_full, sigungu_full)

    def test_abbreviated_district_keeps_other_districts_apart(self):
        """Test 해운대 does not match a different Busan district."""
        assert not areas_match("부산", "해운대", "부산광역시", "수영구")


class TestAreaVariations:
    """Tests for search variations."""

    def test_variations_cover_short_and_full_forms(self):
        """Test every spelling a store might have registered."""
        variations = area_variations("서울", "강남구")

        assert "서울 강남구" in variations
        assert "서울특별시 강남구" in variations
        assert "서울 강남" in variations
        assert "서울특별시 강남" in variations
        assert len(variations) == len(set(variations))

    def test_variations_for_unsuffixed_district(self):
        """Test an unsuffixed district is searched with each suffix."""
        variations = area_variations("부산", "해운대")

        assert "부산광역시 해운대구" in variations
        assert "부산 해운대" in variations
        assert len(variations) == len(set(variations))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
