"""
backend
-------

배포 계획(backend) 모델. 엔드포인트 목록과 공유 리소스 옵션을 가진다.
계획 파일(JSON)을 읽어 Backend 로 만드는 로더도 여기 둔다.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .logging_utils import get_logger


logger = get_logger(__name__)


@dataclass
class BlockingTrigger:
    event_type: str
    # None 은 "요청하지 않음" 이며 False 로 취급한다.
    access_token: Optional[bool] = None
    id_token: Optional[bool] = None
    refresh_token: Optional[bool] = None


@dataclass
class Endpoint:
    id: str
    project: str
    region: str = "us-central1"
    uri: Optional[str] = None
    blocking_trigger: Optional[BlockingTrigger] = None


@dataclass
class IdentityPlatformOptions:
    access_token: bool = False
    id_token: bool = False
    refresh_token: bool = False


@dataclass
class ResourceOptions:
    identity_platform: Optional[IdentityPlatformOptions] = None


@dataclass
class Backend:
    # region -> id -> Endpoint
    endpoints: Dict[str, Dict[str, Endpoint]] = field(default_factory=dict)
    resource_options: ResourceOptions = field(default_factory=ResourceOptions)


def of(*endpoints: Endpoint) -> Backend:
    bkend = Backend()
    for ep in endpoints:
        bkend.endpoints.setdefault(ep.region, {})[ep.id] = ep
    return bkend


def all_endpoints(backend: Backend) -> List[Endpoint]:
    return [ep for by_id in backend.endpoints.values() for ep in by_id.values()]


def is_blocking_triggered(endpoint: Endpoint) -> bool:
    return endpoint.blocking_trigger is not None


def _opt_bool(raw: Dict[str, Any], key: str, where: str) -> Optional[bool]:
    value = raw.get(key)
    if value is None or isinstance(value, bool):
        return value
    raise ValueError(f"{where}: {key} 는 true/false 여야 합니다 (받은 값: {value!r})")


def _parse_endpoint(raw: Any, default_project: str, index: int) -> Endpoint:
    where = f"endpoints[{index}]"
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: 객체여야 합니다.")
    if not raw.get("id"):
        raise ValueError(f"{where}: id 가 필요합니다.")

    trigger: Optional[BlockingTrigger] = None
    raw_trigger = raw.get("blockingTrigger")
    if raw_trigger is not None:
        if not isinstance(raw_trigger, dict) or not raw_trigger.get("eventType"):
            raise ValueError(f"{where}: blockingTrigger.eventType 가 필요합니다.")
        trigger = BlockingTrigger(
            event_type=raw_trigger["eventType"],
            access_token=_opt_bool(raw_trigger, "accessToken", where),
            id_token=_opt_bool(raw_trigger, "idToken", where),
            refresh_token=_opt_bool(raw_trigger, "refreshToken", where),
        )

    return Endpoint(
        id=raw["id"],
        project=raw.get("project") or default_project,
        region=raw.get("region") or "us-central1",
        uri=raw.get("uri"),
        blocking_trigger=trigger,
    )


def load_backend(path: str, default_project: str) -> Backend:
    """
    JSON 계획 파일을 읽어 Backend 를 만든다.

    형식: {"endpoints": [{"id": ..., "uri": ..., "blockingTrigger": {...}}, ...]}
    project 가 없으면 default_project 를 사용한다.
    """
    if not os.path.exists(path):
        raise ValueError(f"배포 계획 파일을 찾을 수 없습니다: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"배포 계획 파일이 올바른 JSON 이 아닙니다: {path} ({e})") from e

    raw_endpoints = data.get("endpoints") if isinstance(data, dict) else None
    if not isinstance(raw_endpoints, list):
        raise ValueError(f"배포 계획 파일에 endpoints 목록이 없습니다: {path}")

    endpoints = [
        _parse_endpoint(raw, default_project, i) for i, raw in enumerate(raw_endpoints)
    ]
    logger.debug("배포 계획 로드: %s (endpoints=%d)", path, len(endpoints))
    return of(*endpoints)
