"""
API 라우트 패키지

각 기능별 라우터 모듈:
- health: 헬스 체크
- customers: 고객, 외상 기록, 상환 배분
- entries: 외상/상환 조회, 삭제, 카테고리 변경
- balances: 잔액, 명세서, 카테고리, 요약
- orders: 주문 확정, POS 현금 판매
- audit: 캐시 잔액 재보정
"""
