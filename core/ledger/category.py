"""
카테고리 라벨 정규화

카테고리는 자유 텍스트. 동일성 판정은 정규화 키로 수행:
앞뒤 공백 제거 → 연속 공백 1칸으로 축소 → casefold.

    "  Rice  Bags " → 표시 라벨 "Rice Bags", 키 "rice bags"
"""

from core.errors import ValidationError


def clean_label(label: str | None) -> str:
    """표시용 라벨 정리 (공백만 정리, 대소문자 유지)

    Raises:
        ValidationError: 비어 있거나 공백뿐인 경우
    """
    if label is None:
        raise ValidationError("category is required")
    cleaned = " ".join(str(label).split())
    if not cleaned:
        raise ValidationError("category is required")
    return cleaned


def category_key(label: str) -> str:
    """비교/그룹핑용 정규화 키"""
    return clean_label(label).casefold()
