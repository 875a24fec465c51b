"""
identity_platform
-----------------

Identity Platform(Identity Toolkit Admin v2) 프로젝트 설정 중
blockingFunctions 항목을 읽고 쓰는 모듈.

config 리소스 전체가 아니라 blockingFunctions 필드만 다루며,
쓰기는 updateMask=blockingFunctions 로 해당 필드 전체를 교체한다.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import google.auth
from google.api_core import exceptions
from google.auth.transport.requests import AuthorizedSession

from .config import DEFAULT_IDENTITY_TOOLKIT_ORIGIN
from .logging_utils import get_logger


logger = get_logger(__name__)

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

# {"triggers": {"beforeCreate": {"functionUri": ...}, "beforeSignIn": {...}},
#  "forwardInboundCredentials": {"idToken": "true", ...}}
BlockingFunctionsConfig = Dict[str, Any]


class IdentityPlatformClient:
    def __init__(
        self,
        origin: str = DEFAULT_IDENTITY_TOOLKIT_ORIGIN,
        session: Optional[AuthorizedSession] = None,
    ) -> None:
        self._origin = origin.rstrip("/")
        self._session = session

    def _get_session(self) -> AuthorizedSession:
        if self._session is None:
            credentials, _ = google.auth.default(scopes=SCOPES)
            self._session = AuthorizedSession(credentials)
        return self._session

    def _config_url(self, project_id: str) -> str:
        return f"{self._origin}/admin/v2/projects/{project_id}/config"

    def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        response = self._get_session().request(method, url, **kwargs)
        if response.status_code >= 400:
            raise exceptions.from_http_response(response)
        if not response.content:
            return {}
        return response.json()

    def get_blocking_functions_config(self, project_id: str) -> BlockingFunctionsConfig:
        """
        프로젝트의 현재 blockingFunctions 설정을 조회한다. 없으면 빈 dict.
        """
        logger.debug("blockingFunctions 설정 조회: project=%s", project_id)
        config = self._request("GET", self._config_url(project_id))
        return config.get("blockingFunctions") or {}

    def set_blocking_functions_config(
        self, project_id: str, blocking_config: BlockingFunctionsConfig
    ) -> BlockingFunctionsConfig:
        """
        blockingFunctions 설정을 통째로 교체하고, 저장된 값을 반환한다.
        """
        logger.debug("blockingFunctions 설정 저장: project=%s", project_id)
        config = self._request(
            "PATCH",
            self._config_url(project_id),
            params={"updateMask": "blockingFunctions"},
            json={"blockingFunctions": blocking_config},
        )
        return config.get("blockingFunctions") or {}


_default_client: Optional[IdentityPlatformClient] = None


def default_client() -> IdentityPlatformClient:
    global _default_client
    if _default_client is None:
        _default_client = IdentityPlatformClient()
    return _default_client


def get_blocking_functions_config(project_id: str) -> BlockingFunctionsConfig:
    return default_client().get_blocking_functions_config(project_id)


def set_blocking_functions_config(
    project_id: str, blocking_config: BlockingFunctionsConfig
) -> BlockingFunctionsConfig:
    return default_client().set_blocking_functions_config(project_id, blocking_config)
