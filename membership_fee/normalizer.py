"""
이름 정규화 모듈
- 입금자명/회원명 비교용 정규화
- 부부 공동 입금자명 분리 ("김철수·박영희")
"""
import re
import unicodedata
from typing import Optional, Tuple

from .config import reconciliation_config


_WHITESPACE_RE = re.compile(r"\s+")


def normalize_name(name: Optional[str]) -> str:
    """
    비교용 이름 정규화

    - 유니코드 NFC 정규화 (한글 자모 분리 입력 대응)
    - 앞뒤 공백 제거, 내부 연속 공백 1칸으로
    - 대소문자 무시 (영문 이름)
    """
    if not name:
        return ""
    cleaned = unicodedata.normalize("NFC", str(name))
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned.casefold()


def split_joint_name(
    name: Optional[str],
    separators: Optional[str] = None
) -> Optional[Tuple[str, str]]:
    """
    부부 공동 입금자명을 두 이름으로 분리

    Returns:
        정규화된 (앞 이름, 뒤 이름) 또는 공동명이 아니면 None

    >>> split_joint_name("김철수·박영희")
    ('김철수', '박영희')
    """
    normalized = normalize_name(name)
    if not normalized:
        return None

    seps = separators if separators is not None else reconciliation_config.couple_name_separators
    if not seps:
        return None

    pattern = "[" + re.escape(seps) + "]"
    parts = [p.strip() for p in re.split(pattern, normalized)]
    parts = [p for p in parts if p]

    if len(parts) != 2:
        return None
    return parts[0], parts[1]
