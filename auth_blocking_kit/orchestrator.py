from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from . import auth_blocking, backend, identity_platform
from .backend import Backend, Endpoint
from .events import EventFamily, classify_event_type
from .logging_utils import get_logger


logger = get_logger(__name__)

ACTION_REGISTER = "register"
ACTION_UPDATE = "update"
ACTION_UNREGISTER = "unregister"

_SLOTS = [EventFamily.BEFORE_CREATE.value, EventFamily.BEFORE_SIGN_IN.value]


def _blocking_endpoints(bkend: Optional[Backend]) -> List[Endpoint]:
    if bkend is None:
        return []
    return [ep for ep in backend.all_endpoints(bkend) if backend.is_blocking_triggered(ep)]


def _key(ep: Endpoint) -> Tuple[str, str, str]:
    return (ep.project, ep.region, ep.id)


def prepare_backend(want: Backend) -> None:
    """
    계획 안의 모든 blocking 엔드포인트를 검증/병합한 뒤,
    병합된 토큰 전달 옵션을 각 엔드포인트에 다시 복사한다.
    """
    endpoints = _blocking_endpoints(want)
    for ep in endpoints:
        auth_blocking.ensure_auth_blocking_trigger_is_valid(ep, want)
    for ep in endpoints:
        auth_blocking.copy_identity_platform_options_to_endpoint(ep, want)


def _same_family(a: Endpoint, b: Endpoint) -> bool:
    return classify_event_type(a.blocking_trigger.event_type) is classify_event_type(
        b.blocking_trigger.event_type
    )


def compute_actions(want: Backend, have: Optional[Backend] = None) -> List[Tuple[str, Endpoint]]:
    """
    엔드포인트 식별자(project, region, id) 기준으로 등록/갱신/해제 대상을 계산한다.
    같은 식별자라도 이벤트 계열이 바뀌면 새 슬롯 등록 + 이전 슬롯 해제로 본다.
    등록/갱신이 먼저, 해제가 나중에 온다.
    """
    have_by_key = {_key(ep): ep for ep in _blocking_endpoints(have)}
    want_endpoints = _blocking_endpoints(want)
    want_by_key = {_key(ep): ep for ep in want_endpoints}

    actions: List[Tuple[str, Endpoint]] = []
    for ep in want_endpoints:
        old = have_by_key.get(_key(ep))
        action = ACTION_UPDATE if old is not None and _same_family(old, ep) else ACTION_REGISTER
        actions.append((action, ep))
    for key, ep in have_by_key.items():
        new = want_by_key.get(key)
        # 이벤트 계열이 바뀐 엔드포인트는 이전 슬롯도 해제한다.
        if new is None or not _same_family(ep, new):
            actions.append((ACTION_UNREGISTER, ep))
    return actions


def _describe(ep: Endpoint) -> str:
    family = classify_event_type(ep.blocking_trigger.event_type)
    return f"{ep.id} [{ep.project}/{ep.region}] {family.value} uri={ep.uri or '(not set)'}"


def plan_all(want: Backend, have: Optional[Backend] = None) -> str:
    """
    병합된 옵션과 엔드포인트별 실행 예정 동작을 요약 텍스트로 리턴한다.
    원격 호출은 하지 않는다.
    """
    prepare_backend(want)

    lines: List[str] = []
    lines.append("# Auth Blocking plan")
    lines.append("")

    lines.append("## Forwarding options")
    merged = want.resource_options.identity_platform
    if merged is None:
        lines.append("- (blocking 엔드포인트 없음)")
    else:
        lines.append(f"- accessToken: {merged.access_token}")
        lines.append(f"- idToken: {merged.id_token}")
        lines.append(f"- refreshToken: {merged.refresh_token}")
    lines.append("")

    lines.append("## Endpoints")
    actions = compute_actions(want, have)
    if not actions:
        lines.append("- (none)")
    for action, ep in actions:
        lines.append(f"- {action}: {_describe(ep)}")

    return "\n".join(lines)


def apply_all(
    want: Backend,
    have: Optional[Backend] = None,
    client: Any = None,
) -> tuple[str, bool]:
    """
    엔드포인트별로 실제 등록/해제를 호출한다.

    검증 오류(DuplicateTriggerError 등)는 원격 호출 전에 그대로 올라간다.

    Returns:
        summary: 사람이 읽기 좋은 텍스트 요약
        has_failures: 하나 이상의 엔드포인트에서 예외가 발생했는지 여부
    """
    prepare_backend(want)
    actions = compute_actions(want, have)
    logger.info("적용 대상 엔드포인트: %s", [f"{a}:{ep.id}" for a, ep in actions])

    executed: List[str] = []
    failed: List[str] = []

    for action, ep in actions:
        label = f"{action} {ep.id}"
        logger.info("엔드포인트 처리: %s", label)
        if action != ACTION_UNREGISTER and not ep.uri:
            # URI 없이 등록하면 원격 슬롯이 functionUri=null 로 덮어써진다.
            failed.append(label)
            logger.error("함수 URI 가 없어 등록을 건너뜁니다: %s", label)
            continue

        try:
            if action == ACTION_UNREGISTER:
                auth_blocking.unregister_trigger(ep, client=client)
            else:
                auth_blocking.register_trigger(
                    ep, update=(action == ACTION_UPDATE), client=client
                )
        except Exception:  # noqa: BLE001
            failed.append(label)
            logger.exception("엔드포인트 처리 실패: %s", label)
            continue

        executed.append(label)

    lines: List[str] = []
    lines.append("# Auth Blocking deploy summary")
    lines.append("")

    lines.append("## Executed")
    if executed:
        for s in executed:
            lines.append(f"- {s}")
    else:
        lines.append("- (none)")

    lines.append("")
    lines.append("## Failed")
    if failed:
        for s in failed:
            lines.append(f"- {s}")
    else:
        lines.append("- (none)")

    summary = "\n".join(lines)
    return summary, bool(failed)


def check_all(project_id: str, client: Any = None) -> tuple[str, bool]:
    """
    원격 blockingFunctions 설정을 조회해서 슬롯별 URI 와 전달 옵션을 보여준다.
    실제 변경은 하지 않는다.

    Returns:
        summary: 사람이 읽기 좋은 텍스트 요약
        has_issues: 설정 조회에 실패했는지 여부
    """
    client = client or identity_platform

    lines: List[str] = []
    lines.append("# Auth Blocking pre-check")
    lines.append(f"- project: {project_id}")
    lines.append("")

    try:
        blocking_config: Dict[str, Any] = client.get_blocking_functions_config(project_id)
    except Exception as e:  # noqa: BLE001
        logger.exception("blockingFunctions 설정 조회 실패")
        lines.append("## Summary")
        lines.append(f"- 상태: 설정 조회에 실패했습니다: {e}")
        return "\n".join(lines), True

    lines.append("## Triggers")
    triggers = blocking_config.get("triggers") or {}
    for slot in _SLOTS:
        uri = (triggers.get(slot) or {}).get("functionUri")
        lines.append(f"- {slot}: {uri or '(none)'}")
    lines.append("")

    lines.append("## Forward inbound credentials")
    creds = blocking_config.get("forwardInboundCredentials") or {}
    for name in ("accessToken", "idToken", "refreshToken"):
        lines.append(f"- {name}: {creds.get(name, '(not set)')}")

    return "\n".join(lines), False
