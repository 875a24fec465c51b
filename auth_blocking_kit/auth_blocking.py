"""
auth_blocking
-------------

Auth Blocking 트리거 검증/옵션 병합과 Identity Platform 등록/해제를 담당하는 모듈.

- 배포 계획 안에서 이벤트 타입별 blocking 함수는 최대 1개만 허용한다.
- 토큰 전달 옵션(accessToken/idToken/refreshToken)은 계획 전체의 OR 로 병합한다.
- 원격 blockingFunctions 설정은 매번 새로 읽고, 수정해서, 다시 쓴다.
  (동시 배포에 대한 잠금은 없으므로 프로젝트 단위 배포 직렬화는 호출자 책임)
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from . import backend, identity_platform
from .backend import Backend, Endpoint, IdentityPlatformOptions
from .events import EventFamily, classify_event_type
from .logging_utils import get_logger


logger = get_logger(__name__)


class AuthBlockingError(ValueError):
    """Auth Blocking 트리거 처리 중 발생하는 오류의 공통 부모."""


class DuplicateTriggerError(AuthBlockingError):
    """같은 이벤트 타입에 blocking 트리거가 둘 이상 있을 때."""


class InvalidTriggerTypeError(AuthBlockingError):
    """beforeCreate/beforeSignIn 어느 쪽에도 속하지 않는 이벤트 타입."""


def ensure_auth_blocking_trigger_is_valid(endpoint: Endpoint, want_backend: Backend) -> None:
    """
    이벤트 타입별 blocking 함수가 최대 1개인지 확인하고,
    이 엔드포인트의 토큰 전달 옵션을 backend 의 identity_platform 옵션에 OR 로 합친다.
    """
    trigger = endpoint.blocking_trigger
    for ep in backend.all_endpoints(want_backend):
        if not backend.is_blocking_triggered(ep):
            continue
        if ep.blocking_trigger.event_type == trigger.event_type and ep.id != endpoint.id:
            raise DuplicateTriggerError(
                "Auth Blocking 트리거는 이벤트 타입당 하나만 만들 수 있습니다: "
                f"{trigger.event_type} ({ep.id}, {endpoint.id})"
            )

    options = want_backend.resource_options
    if options.identity_platform is None:
        options.identity_platform = IdentityPlatformOptions()

    merged = options.identity_platform
    merged.access_token = merged.access_token or bool(trigger.access_token)
    merged.id_token = merged.id_token or bool(trigger.id_token)
    merged.refresh_token = merged.refresh_token or bool(trigger.refresh_token)


def copy_identity_platform_options_to_endpoint(endpoint: Endpoint, want_backend: Backend) -> None:
    """
    병합된 토큰 전달 옵션을 엔드포인트에 그대로 덮어쓴다.
    """
    merged = want_backend.resource_options.identity_platform
    trigger = endpoint.blocking_trigger
    trigger.access_token = bool(merged and merged.access_token)
    trigger.id_token = bool(merged and merged.id_token)
    trigger.refresh_token = bool(merged and merged.refresh_token)


def _slot_key(endpoint: Endpoint) -> str:
    family = classify_event_type(endpoint.blocking_trigger.event_type)
    if family is EventFamily.UNKNOWN:
        raise InvalidTriggerTypeError(
            f"잘못된 Auth Blocking 트리거 타입입니다: {endpoint.blocking_trigger.event_type}"
        )
    return family.value


def _bool_str(value: Optional[bool]) -> str:
    # 원격 설정은 boolean 을 "true"/"false" 문자열로 받는다.
    return "true" if value else "false"


def register_trigger(endpoint: Endpoint, update: bool, client: Any = None) -> None:
    """
    Auth Blocking 트리거를 Identity Platform 에 등록한다.

    update=True 이면 함수 URI 만 바꾸고 forwardInboundCredentials 는 건드리지 않는다.
    endpoint.uri 는 호출 전에 채워져 있어야 한다.
    """
    client = client or identity_platform
    blocking_config: Dict[str, Any] = client.get_blocking_functions_config(endpoint.project)

    slot = _slot_key(endpoint)
    triggers = dict(blocking_config.get("triggers") or {})
    triggers[slot] = {"functionUri": endpoint.uri}
    blocking_config["triggers"] = triggers

    if not update:
        trigger = endpoint.blocking_trigger
        blocking_config["forwardInboundCredentials"] = {
            "idToken": _bool_str(trigger.id_token),
            "accessToken": _bool_str(trigger.access_token),
            "refreshToken": _bool_str(trigger.refresh_token),
        }

    logger.info(
        "Auth Blocking 트리거 등록: project=%s %s=%s (update=%s)",
        endpoint.project,
        slot,
        endpoint.uri,
        update,
    )
    client.set_blocking_functions_config(endpoint.project, blocking_config)


def unregister_trigger(endpoint: Endpoint, client: Any = None) -> None:
    """
    Auth Blocking 트리거를 Identity Platform 에서 해제한다.

    원격 슬롯의 URI 가 이 엔드포인트의 URI 와 다르면(이미 다른 함수로 교체됨)
    아무것도 쓰지 않는다.
    """
    client = client or identity_platform
    blocking_config: Dict[str, Any] = client.get_blocking_functions_config(endpoint.project)

    slot = _slot_key(endpoint)
    triggers = dict(blocking_config.get("triggers") or {})
    current_uri = (triggers.get(slot) or {}).get("functionUri")
    if not current_uri or current_uri != endpoint.uri:
        logger.debug(
            "등록된 URI 가 달라 해제를 건너뜁니다: project=%s %s=%s (endpoint=%s)",
            endpoint.project,
            slot,
            current_uri,
            endpoint.uri,
        )
        return

    triggers[slot] = {}
    blocking_config["triggers"] = triggers

    logger.info(
        "Auth Blocking 트리거 해제: project=%s %s=%s", endpoint.project, slot, endpoint.uri
    )
    client.set_blocking_functions_config(endpoint.project, blocking_config)
