import os
import sys
from typing import Optional

import click

from .backend import Backend, load_backend
from .config import load_env_files, RegistrarConfig
from .identity_platform import IdentityPlatformClient
from .logging_utils import setup_logging, get_logger
from .orchestrator import apply_all, plan_all, check_all


logger = get_logger(__name__)


@click.group()
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="작업 디렉토리 (기본: 현재 디렉토리)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다. (-vv 는 google-auth 로그까지 출력)",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int) -> None:
    """Identity Platform Auth Blocking 함수 등록 관리 CLI"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["verbose"] = verbose


def _load_config_from_ctx(ctx: click.Context) -> RegistrarConfig:
    base_dir: str = ctx.obj["chdir"]
    load_env_files(base_dir)
    cfg = RegistrarConfig.from_env()
    logger.debug("Config loaded: %s", cfg)
    return cfg


def _resolve(base_dir: str, path: str) -> str:
    return path if os.path.isabs(path) else os.path.join(base_dir, path)


def _load_backends(
    ctx: click.Context, backend_file: Optional[str], previous_file: Optional[str]
) -> tuple[RegistrarConfig, Backend, Optional[Backend]]:
    base_dir: str = ctx.obj["chdir"]
    cfg = _load_config_from_ctx(ctx)
    want = load_backend(_resolve(base_dir, backend_file or cfg.backend_file), cfg.gcp_project_id)
    have = None
    if previous_file:
        have = load_backend(_resolve(base_dir, previous_file), cfg.gcp_project_id)
    return cfg, want, have


_backend_option = click.option(
    "--backend",
    "backend_file",
    type=str,
    default=None,
    help="배포할 계획 파일(JSON). 기본: AUTH_BLOCKING_BACKEND_FILE 또는 functions.backend.json",
)
_previous_option = click.option(
    "--previous",
    "previous_file",
    type=str,
    default=None,
    help="현재 배포되어 있는 계획 파일(JSON). 여기에만 있는 엔드포인트는 해제됩니다.",
)


@main.command()
@_backend_option
@_previous_option
@click.pass_context
def plan(ctx: click.Context, backend_file: Optional[str], previous_file: Optional[str]) -> None:
    """계획을 검증하고 병합된 옵션과 엔드포인트별 동작을 출력"""
    try:
        _, want, have = _load_backends(ctx, backend_file, previous_file)
        report = plan_all(want, have)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 계획 확인 실패: {e}", err=True)
        sys.exit(1)

    click.echo(report)


@main.command(name="deploy")
@_backend_option
@_previous_option
@click.pass_context
def deploy(ctx: click.Context, backend_file: Optional[str], previous_file: Optional[str]) -> None:
    """blocking 트리거를 Identity Platform 에 실제로 등록/해제"""
    try:
        cfg, want, have = _load_backends(ctx, backend_file, previous_file)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)

    client = IdentityPlatformClient(origin=cfg.identity_toolkit_origin)
    try:
        summary, has_failures = apply_all(want, have, client=client)
    except Exception as e:  # noqa: BLE001
        logger.exception("배포 중 오류 발생")
        click.echo(f"[ERROR] 배포 실패: {e}", err=True)
        sys.exit(1)

    click.echo(summary)

    # 엔드포인트 단위 실패가 있었다면 전체 명령은 실패(exit 1)로 간주
    if has_failures:
        sys.exit(1)


@main.command()
@click.option(
    "--project",
    "project_id",
    type=str,
    default=None,
    help="조회할 프로젝트 ID (기본: GCP_PROJECT_ID)",
)
@click.pass_context
def check(ctx: click.Context, project_id: Optional[str]) -> None:
    """
    원격 blockingFunctions 설정 상태를 조회한다.
    (실제 변경은 하지 않는다)
    """
    try:
        cfg = _load_config_from_ctx(ctx)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)

    client = IdentityPlatformClient(origin=cfg.identity_toolkit_origin)
    report, has_issues = check_all(project_id or cfg.gcp_project_id, client=client)

    click.echo(report)

    if has_issues:
        sys.exit(1)
