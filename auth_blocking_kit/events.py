"""
events
------

Auth Blocking 이벤트 타입 상수와 이벤트 계열(family) 분류.
v1/v2 두 가지 명명 체계가 있지만 등록 처리에서는 같은 계열로 취급한다.
"""

from __future__ import annotations

from enum import Enum


V1_BEFORE_CREATE_EVENT = "providers/cloud.auth/eventTypes/user.beforeCreate"
V1_BEFORE_SIGN_IN_EVENT = "providers/cloud.auth/eventTypes/user.beforeSignIn"

V2_BEFORE_CREATE_EVENT = "providers/cloud.auth/eventTypes/user.beforeCreate"
V2_BEFORE_SIGN_IN_EVENT = "providers/cloud.auth/eventTypes/user.beforeSignIn"


class EventFamily(Enum):
    BEFORE_CREATE = "beforeCreate"
    BEFORE_SIGN_IN = "beforeSignIn"
    UNKNOWN = "unknown"


_FAMILY_BY_EVENT = {
    V1_BEFORE_CREATE_EVENT: EventFamily.BEFORE_CREATE,
    V2_BEFORE_CREATE_EVENT: EventFamily.BEFORE_CREATE,
    V1_BEFORE_SIGN_IN_EVENT: EventFamily.BEFORE_SIGN_IN,
    V2_BEFORE_SIGN_IN_EVENT: EventFamily.BEFORE_SIGN_IN,
}


def classify_event_type(event_type: str) -> EventFamily:
    """
    이벤트 타입 문자열을 계열로 분류한다. 알 수 없는 값은 UNKNOWN.
    """
    return _FAMILY_BY_EVENT.get(event_type, EventFamily.UNKNOWN)
