"""起動時のスキーマ互換性検証を行うサービス。"""

import asyncio
import logging
import threading
from datetime import UTC, datetime
from pathlib import Path

from schemawatch.config import SchemaWatchConfig
from schemawatch.models.errors import (
    AcquisitionError,
    BaselineLoadError,
    BaselineSaveError,
    SchemaIncompatibleError,
)
from schemawatch.models.runtime import CompatibilityMode, ValidationState
from schemawatch.models.schema import SchemaSnapshot
from schemawatch.models.validation import ValidationResult
from schemawatch.services.introspection import SchemaAcquirer
from schemawatch.storage.baseline import BaselineStore
from schemawatch.validators.schema import SchemaValidator

logger = logging.getLogger(__name__)

# ログに出すエラーの最大件数
_MAX_LOGGED_ERRORS = 5


def _retrieve_exception(task: "asyncio.Task[ValidationResult | None]") -> None:
    # 待機者が全員キャンセルされていても "exception was never retrieved" を出さない
    if not task.cancelled():
        task.exception()


async def _await_task(task: "asyncio.Task[ValidationResult | None]") -> ValidationResult | None:
    return await asyncio.shield(task)


class RuntimeValidationService:
    """ベースラインとサーバースキーマの比較をプロセス内で一度だけ実行し、結果を保持する。

    最初の呼び出しが検証タスクを開始し、以降の呼び出しはすべて同じタスクの
    完了を待って同じ結果を受け取る。取得に失敗しても同一インスタンス内で
    再試行はしない。

    検証タスクは最初の呼び出し元のイベントループで動く。別スレッドの別ループ
    から呼ばれた場合は、そのループ上でタスクの完了を待ち合わせる。

    状態は単純なthreading.Lockで保護する。読み書きとも参照の差し替えのみで
    ロック保持は一瞬のため、読み取り専用の共有ロックは用いない。
    """

    def __init__(
        self,
        acquirer: SchemaAcquirer,
        store: BaselineStore,
        validator: SchemaValidator | None = None,
        mode: CompatibilityMode | None = None,
    ) -> None:
        self._acquirer = acquirer
        self._store = store
        self._validator = validator or SchemaValidator()
        self._mode: CompatibilityMode = mode if mode is not None else SchemaWatchConfig().schema_validation
        # 他スレッド（UI等）からの参照もあるためthreading.Lockで保護する
        self._state_lock = threading.Lock()
        self._state = ValidationState()
        # 検証タスクの生成は複数スレッドから競合しうる
        self._gate_lock = threading.Lock()
        self._run: asyncio.Task[ValidationResult | None] | None = None
        self._run_loop: asyncio.AbstractEventLoop | None = None
        self._baseline_path: Path | None = None
        self._background_tasks: set[asyncio.Task[None]] = set()
        self._ignore_logged = False

    @property
    def mode(self) -> CompatibilityMode:
        return self._mode

    @property
    def state(self) -> ValidationState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: ValidationState) -> None:
        with self._state_lock:
            self._state = state

    async def validate_on_startup(self, baseline_path: Path) -> ValidationResult | None:
        """起動時検証を実行する（プロセス内で一度だけ）。

        Args:
            baseline_path: ベースラインスキーマのファイルパス。

        Returns:
            比較を行った場合はその結果。ignoreモード、またはベースラインを
            新規作成した場合はNone。

        Raises:
            SchemaIncompatibleError: strictモードで検証に失敗した場合。
            AcquisitionError: strictモードでサーバーからスキーマを取得できなかった場合。
                warnモードではログに出してNoneを返す。
        """
        if self._mode == "ignore":
            if not self._ignore_logged:
                logger.info("Schema validation disabled (SUWAYOMI_SCHEMA_VALIDATION=ignore)")
                self._ignore_logged = True
            return None

        try:
            result = await self._wait_for_run(Path(baseline_path))
        except AcquisitionError as e:
            if self._mode == "strict":
                raise
            logger.warning("Schema validation failed but continuing (warn mode): %s", e)
            return None

        if result is not None and not result.is_valid:
            if self._mode == "strict":
                raise SchemaIncompatibleError(result)
            logger.warning(
                "Schema validation failed but continuing (warn mode): %d errors",
                len(result.errors),
            )
        return result

    async def _wait_for_run(self, baseline_path: Path) -> ValidationResult | None:
        current_loop = asyncio.get_running_loop()
        with self._gate_lock:
            if self._run is None:
                self._baseline_path = baseline_path
                self._run_loop = current_loop
                self._run = current_loop.create_task(self._run_once(baseline_path))
                self._run.add_done_callback(_retrieve_exception)
            elif baseline_path != self._baseline_path:
                logger.debug(
                    "Schema validation already started with baseline %s; ignoring %s",
                    self._baseline_path,
                    baseline_path,
                )
            run, run_loop = self._run, self._run_loop

        assert run is not None
        if run.done():
            return run.result()
        if run_loop is current_loop:
            # 待機側のキャンセルが共有タスクへ波及しないようにする
            return await asyncio.shield(run)
        assert run_loop is not None
        future = asyncio.run_coroutine_threadsafe(_await_task(run), run_loop)
        return await asyncio.wrap_future(future)

    def validate_in_background(self, baseline_path: Path) -> "asyncio.Task[None]":
        """起動時検証をバックグラウンドタスクで実行する。

        エラーはログに出すのみで呼び出し元には伝播しない。タスクは shutdown で
        キャンセルされる。
        """
        task = asyncio.create_task(self._validate_quietly(Path(baseline_path)))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _validate_quietly(self, baseline_path: Path) -> None:
        try:
            await self.validate_on_startup(baseline_path)
        except asyncio.CancelledError:
            logger.info("Background schema validation cancelled")
            raise
        except Exception as e:
            logger.warning("Background schema validation failed: %s", e)
            logger.warning("Application will continue, but API calls may fail")

    async def shutdown(self) -> None:
        """未完了のバックグラウンド検証をキャンセルし、終了を待つ。"""
        pending: list[asyncio.Task[object]] = [t for t in self._background_tasks if not t.done()]
        if self._run is not None and not self._run.done():
            pending.append(self._run)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def last_result(self) -> tuple[ValidationResult, datetime | None]:
        """直近の検証結果とその時刻を返す。比較未実施の場合は空の結果を返す。"""
        state = self.state
        return state.result or ValidationResult(), state.validated_at

    def is_valid(self) -> bool:
        """直近の比較が成功していればTrue。比較未実施の場合はFalse。"""
        state = self.state
        return state.result is not None and state.result.is_valid

    def report(self) -> str:
        """直近の検証結果の人間可読なレポートを返す。"""
        state = self.state
        if state.result is None:
            if state.status == "baseline_created":
                return "Schema validation skipped (baseline created)"
            return "Schema validation has not been performed yet"
        return state.result.report()

    async def _run_once(self, baseline_path: Path) -> ValidationResult | None:
        self._set_state(ValidationState(status="validating"))
        logger.info("Validating GraphQL schema (mode: %s)...", self._mode)
        try:
            try:
                expected = await self._store.load(baseline_path)
            except BaselineLoadError as e:
                logger.warning("%s; introspecting from server to create a baseline", e)
                await self._create_baseline(baseline_path)
                return None

            actual = await self._acquirer.acquire()
            result = self._validator.validate(expected, actual)
        except Exception as e:
            self._set_state(ValidationState(status="failed", error=str(e), validated_at=datetime.now(UTC)))
            if isinstance(e, AcquisitionError):
                logger.error("Schema validation aborted: %s", e)
            raise

        self._set_state(
            ValidationState(
                status="valid" if result.is_valid else "invalid",
                result=result,
                validated_at=datetime.now(UTC),
            )
        )
        self._log_result(result)
        return result

    async def _create_baseline(self, baseline_path: Path) -> SchemaSnapshot:
        snapshot = await self._acquirer.acquire()
        try:
            await self._store.save(snapshot, baseline_path)
        except BaselineSaveError as e:
            logger.warning("Could not save baseline schema: %s", e)
        else:
            logger.info("Baseline schema saved to %s", baseline_path)

        self._set_state(ValidationState(status="baseline_created", validated_at=datetime.now(UTC)))
        logger.info("Schema validation skipped (baseline created)")
        return snapshot

    @staticmethod
    def _log_result(result: ValidationResult) -> None:
        if result.is_valid:
            logger.info("Schema validation passed")
            if result.warnings:
                logger.warning("%d schema warnings found:", len(result.warnings))
                for warning in result.warnings:
                    logger.warning("  %s", warning)
            return

        logger.error("Schema validation failed")
        logger.error("Errors: %d, Warnings: %d", len(result.errors), len(result.warnings))
        for error in result.errors[:_MAX_LOGGED_ERRORS]:
            logger.error("  %s", error)
        if len(result.errors) > _MAX_LOGGED_ERRORS:
            logger.error("  ... and %d more errors", len(result.errors) - _MAX_LOGGED_ERRORS)
