"""
auth_blocking_kit
-----------------

Identity Platform Auth Blocking 함수 등록 관리 패키지.
배포 계획(backend) 안의 blocking 트리거를 검증하고, 토큰 전달 옵션을 병합한 뒤
원격 blockingFunctions 설정에 등록/해제하는 것을 목표로 한다.
"""

__all__ = [
    "auth_blocking",
    "backend",
    "config",
    "events",
    "identity_platform",
    "orchestrator",
]
