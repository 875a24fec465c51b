"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 auth_blocking_kit 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.
공용 fixture 로 원격 blockingFunctions 설정을 흉내내는 메모리 클라이언트를 제공한다.
"""

from __future__ import annotations

import copy
import os
import sys
from typing import Any, Dict, List, Tuple

import pytest


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


class FakeIdentityPlatform:
    """프로젝트별 blockingFunctions 설정을 메모리에 보관하고 set 호출을 기록한다."""

    def __init__(self, configs: Dict[str, Dict[str, Any]] | None = None) -> None:
        self.configs: Dict[str, Dict[str, Any]] = configs or {}
        self.set_calls: List[Tuple[str, Dict[str, Any]]] = []

    def get_blocking_functions_config(self, project_id: str) -> Dict[str, Any]:
        return copy.deepcopy(self.configs.get(project_id, {}))

    def set_blocking_functions_config(self, project_id: str, config: Dict[str, Any]) -> Dict[str, Any]:
        self.set_calls.append((project_id, copy.deepcopy(config)))
        self.configs[project_id] = copy.deepcopy(config)
        return config


@pytest.fixture
def fake_ip() -> FakeIdentityPlatform:
    return FakeIdentityPlatform()
