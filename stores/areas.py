"""
Korean administrative area names.

Addresses reach us as "서울 강남", "서울시 강남구" or "서울특별시 강남구"
depending on where they were typed; stores register delivery areas in any of
those forms too. Everything is compared in canonical form.
"""
import re
from typing import Optional

SIDO_ALIASES = {
    "서울": "서울특별시",
    "서울시": "서울특별시",
    "부산": "부산광역시",
    "부산시": "부산광역시",
    "대구": "대구광역시",
    "대구시": "대구광역시",
    "인천": "인천광역시",
    "인천시": "인천광역시",
    "광주": "광주광역시",
    "광주시": "광주광역시",
    "대전": "대전광역시",
    "대전시": "대전광역시",
    "울산": "울산광역시",
    "울산시": "울산광역시",
    "세종": "세종특별자치시",
    "세종시": "세종특별자치시",
    "경기": "경기도",
    "강원": "강원특별자치도",
    "강원도": "강원특별자치도",
    "충북": "충청북도",
    "충남": "충청남도",
    "전북": "전북특별자치도",
    "전라북도": "전북특별자치도",
    "전남": "전라남도",
    "경북": "경상북도",
    "경남": "경상남도",
    "제주": "제주특별자치도",
    "제주도": "제주특별자치도",
}

SHORT_SIDO = {
    "서울특별시": "서울",
    "부산광역시": "부산",
    "대구광역시": "대구",
    "인천광역시": "인천",
    "광주광역시": "광주",
    "대전광역시": "대전",
    "울산광역시": "울산",
    "세종특별자치시": "세종",
    "경기도": "경기",
    "강원특별자치도": "강원",
    "충청북도": "충북",
    "충청남도": "충남",
    "전북특별자치도": "전북",
    "전라남도": "전남",
    "경상북도": "경북",
    "경상남도": "경남",
    "제주특별자치도": "제주",
}

# Seoul districts are 구; an unsuffixed name outside this set is spelled as a 시
SEOUL_GU = {
    "강남", "강동", "강북", "강서", "관악", "광진", "구로", "금천", "노원",
    "도봉", "동대문", "동작", "마포", "서대문", "서초", "성동", "성북", "송파",
    "양천", "영등포", "용산", "은평", "종로", "중", "중랑",
}

WHOLE_SIDO = {"", "전체", "전지역"}

_SUFFIX = re.compile(r"^(.+?)(시|구|군)$")


def canonical_sido(sido: str) -> str:
    sido = (sido or "").strip()
    return SIDO_ALIASES.get(sido, sido)


def canonical_sigungu(sigungu: str) -> str:
    parts = (sigungu or "").split()
    if not parts:
        return ""
    head = parts[0]
    if head not in WHOLE_SIDO and not _SUFFIX.match(head):
        head += "구" if head in SEOUL_GU else "시"
    return " ".join([head] + parts[1:])


def canonical_area(sido: str, sigungu: str = "") -> str:
    """"서울 강남" -> "서울특별시 강남구"."""
    return f"{canonical_sido(sido)} {canonical_sigungu(sigungu)}".strip()


def _short_sigungu(sigungu: str) -> Optional[str]:
    match = _SUFFIX.match(sigungu)
    return match.group(1) if match and " " not in sigungu else None


def _stems(sigungu: str) -> list[str]:
    """"해운대구" -> ["해운대"], "수원시 영통구" -> ["수원", "영통"]."""
    stems = []
    for part in sigungu.split():
        match = _SUFFIX.match(part)
        stems.append(match.group(1) if match else part)
    return stems


def areas_match(
    sido_a: str, sigungu_a: str, sido_b: str, sigungu_b: str
) -> bool:
    """True when one area covers the other.

    A blank or "전체" district covers the whole province, and a city covers
    its own districts ("수원시" covers "수원시 영통구"). Districts are compared
    without their 시/구/군 suffix, so "부산 해운대" matches "부산광역시 해운대구".
    """
    if canonical_sido(sido_a) != canonical_sido(sido_b):
        return False

    a = canonical_sigungu(sigungu_a)
    b = canonical_sigungu(sigungu_b)
    if a == b or a in WHOLE_SIDO or b in WHOLE_SIDO:
        return True
    shorter, longer = sorted((_stems(a), _stems(b)), key=len)
    return longer[:len(shorter)] == shorter


def area_variations(sido: str, sigungu: str) -> list[str]:
    """Every spelling a store might have registered for this area."""
    sido = sido.strip()
    sigungu = sigungu.strip()
    full_sido = canonical_sido(sido)
    full_sigungu = canonical_sigungu(sigungu)
    short_sido = SHORT_SIDO.get(full_sido)
    short_sigungu = _short_sigungu(full_sigungu)

    sidos = [sido, full_sido] + ([short_sido] if short_sido else [])
    sigungus = [sigungu, full_sigungu] + ([short_sigungu] if short_sigungu else [])
    if short_sigungu and sigungu == short_sigungu:
        # Unsuffixed input could be any of the three
        sigungus += [short_sigungu + suffix for suffix in ("시", "구", "군")]

    variations: dict[str, None] = {}
    for s in sidos:
        for g in sigungus:
            variations[f"{s} {g}".strip()] = None
    return list(variations)
