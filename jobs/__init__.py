"""
Jobs 패키지

요청 시 실행되는 배치 작업 (잔액 재보정 등)
"""
