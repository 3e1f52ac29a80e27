"""
Jobs 진입점

실행 방법:
    python -m jobs recalibrate              # 설정 파일의 DB 대상으로 재보정
    python -m jobs recalibrate --db PATH    # 특정 DB 대상
    python -m jobs check                    # 보정 없이 drift만 점검
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import INotifier
from adapters.slack.notifier import SlackNotifier
from core.config.loader import NotificationConfig, SettingsLoadError, get_settings
from core.errors import AuditFailure
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.logging import setup_logging
from core.money import format_money
from jobs.reconciler.drift import DriftDetector
from jobs.reconciler.recalibrator import RecalibrationReport, Recalibrator

logger = logging.getLogger("jobs")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m jobs", description="LedgerConnect 배치 작업")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="settings.yaml 경로 (기본: config/settings.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("recalibrate", "전체 고객 캐시 잔액 재보정"),
        ("check", "캐시 잔액 drift 점검 (보정 없음)"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--db", type=Path, default=None, help="DB 파일 경로 (기본: 설정 모드의 DB)")

    return parser


async def notify_report(notifier: INotifier | None, report: RecalibrationReport) -> None:
    """보정된 고객이 있으면 알림 채널에 요약 전송"""
    if notifier is None or report.adjusted_count == 0:
        return

    sent = await notifier.send(
        f"잔액 재보정: {report.adjusted_count}명 보정",
        level="WARNING",
        extra={
            f"{d.customer_name} ({d.customer_id[:8]})": f"{format_money(d.cached)} → {format_money(d.computed)}"
            for d in report.drifts
        },
    )
    if not sent:
        logger.warning("재보정 결과 알림 전송 실패")


async def run_recalibrate(db_path: Path, notifier: INotifier | None = None) -> int:
    """재보정 실행

    Returns:
        종료 코드 (0: 성공, 1: 실패, 130: 취소)
    """
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
        except NotImplementedError:
            # Windows: add_signal_handler 미지원
            pass

    def on_progress(processed: int, total: int, message: str) -> None:
        logger.info(f"[{processed}/{total}] {message}")

    async with SQLiteAdapter(db_path) as db:
        await init_ledger_schema(db)
        recalibrator = Recalibrator(LedgerStore(db))

        try:
            report = await recalibrator.recalibrate_all(
                progress_callback=on_progress,
                cancel_event=cancel_event,
            )
        except AuditFailure as e:
            logger.error(
                f"재보정 실패: {e} "
                f"({e.report.processed}/{e.report.total} 처리, {e.report.adjusted_count}명 보정됨)"
            )
            return 1

    for drift in report.drifts:
        logger.info(
            f"  - {drift.customer_name}: {format_money(drift.cached)} → {format_money(drift.computed)}"
        )

    if report.cancelled:
        logger.warning(f"재보정 취소됨: {report.processed}/{report.total}")
        return 130

    logger.info(f"보정된 고객: {report.adjusted_count}명")
    await notify_report(notifier, report)
    return 0


async def run_check(db_path: Path) -> int:
    """drift 점검 (읽기 전용)

    Returns:
        종료 코드 (0: 일관됨, 2: drift 있음)
    """
    async with SQLiteAdapter(db_path) as db:
        await init_ledger_schema(db)
        store = LedgerStore(db)
        drifts = DriftDetector().detect_all(await store.list_balance_totals())

    if not drifts:
        logger.info("모든 고객 잔액 일관됨")
        return 0

    for drift in drifts:
        logger.info(f"  - {drift.description}")
    logger.warning(f"drift 발견: {len(drifts)}명 (python -m jobs recalibrate 로 보정)")
    return 2


async def _recalibrate_with_notifier(db_path: Path, notifications: NotificationConfig) -> int:
    if not notifications.enabled:
        return await run_recalibrate(db_path)
    async with SlackNotifier(notifications.slack_webhook_url) as notifier:
        return await run_recalibrate(db_path, notifier)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("jobs")

    try:
        settings = get_settings(args.config)
    except SettingsLoadError as e:
        logger.error(f"설정 로드 실패: {e}")
        return 1

    db_path = args.db or settings.db_path
    logger.info(f"대상 DB: {db_path} (mode={settings.mode.value})")

    if args.command == "recalibrate":
        return asyncio.run(_recalibrate_with_notifier(db_path, settings.config.notifications))
    return asyncio.run(run_check(db_path))


if __name__ == "__main__":
    sys.exit(main())
