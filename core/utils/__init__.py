"""
유틸리티 패키지

타임존 처리 등 공통 유틸리티
"""

from core.utils.timezone import (
    PHT,
    make_tz,
    ensure_utc,
    to_local,
    local_date,
    format_local,
    now_utc,
    to_iso,
    parse_iso,
)
