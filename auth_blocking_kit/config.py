from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, List

from dotenv import load_dotenv


ENV_FILES_DEFAULT_ORDER = [".env", ".env.infra"]

DEFAULT_IDENTITY_TOOLKIT_ORIGIN = "https://identitytoolkit.googleapis.com"
DEFAULT_BACKEND_FILE = "functions.backend.json"


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


@dataclass
class RegistrarConfig:
    # 필수
    gcp_project_id: str

    identity_toolkit_origin: str = DEFAULT_IDENTITY_TOOLKIT_ORIGIN
    backend_file: str = DEFAULT_BACKEND_FILE

    @classmethod
    def from_env(cls) -> "RegistrarConfig":
        missing: List[str] = []
        def req(name: str) -> str:
            val = os.getenv(name)
            if not val:
                missing.append(name)
            return val or ""

        cfg = cls(
            gcp_project_id=req("GCP_PROJECT_ID"),
            identity_toolkit_origin=os.getenv(
                "IDENTITY_TOOLKIT_ORIGIN", DEFAULT_IDENTITY_TOOLKIT_ORIGIN
            ),
            backend_file=os.getenv("AUTH_BLOCKING_BACKEND_FILE", DEFAULT_BACKEND_FILE),
        )

        if missing:
            raise ValueError(
                "필수 환경변수가 누락되었습니다: " + ", ".join(sorted(set(missing)))
            )

        # 끝의 / 는 URL 조합 시 중복되므로 제거
        cfg.identity_toolkit_origin = cfg.identity_toolkit_origin.rstrip("/")
        return cfg
