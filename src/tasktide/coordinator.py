"""
画面単位の状態コーディネーター

画面ごとに購読のライフサイクルを保持し、スナップショット到着時に
派生値を同期的に再計算してリスナー（表示側）へ通知する。

状態遷移（ソースごと）:
    idle -> subscribing -> {ready, error}
    ready -> ready（新しいスナップショットごと）
    任意 -> idle（teardown。購読は必ず解除）

- 必須ソースがすべて初回スナップショットか終端エラーを返すまで画面全体は subscribing
- 遅いソースが他のソースの表示を妨げないよう、状態はソースごとに公開する
- teardown 後・再マウント後に届いた古い世代のスナップショットは破棄する

関連クラス:
  - context.AppContext: サインアウト時に teardown
  - sync.Subscription: 解除ハンドル
  - views.dashboard_view / views.ChatView: 具体的な画面構成
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from src.sync import Subscription

from .context import AppContext
from .exceptions import AuthMissing, SubscriptionFailure, TaskTideError

SubscribeFn = Callable[
    [str, Callable[[List[Any]], None], Callable[[SubscriptionFailure], None]], Subscription
]
DeriveFn = Callable[[Mapping[str, Any], datetime], Any]
Runner = Callable[[Callable[[], None]], None]


class SourceStatus(str, Enum):
    IDLE = "idle"
    SUBSCRIBING = "subscribing"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class SourceState:
    """1データソースの状態"""

    status: SourceStatus = SourceStatus.IDLE
    data: Any = None
    error: Optional[TaskTideError] = None
    updates: int = 0

    @property
    def loading(self) -> bool:
        return self.status is SourceStatus.SUBSCRIBING


@dataclass(frozen=True)
class LiveSource:
    """購読で更新されるソース"""

    name: str
    subscribe: SubscribeFn
    required: bool = True


@dataclass(frozen=True)
class OneShotSource:
    """1回きりの外部呼び出し（手動で再実行可能）"""

    name: str
    fetch: Callable[[], Any]
    required: bool = False


def local_now() -> datetime:
    return datetime.now().astimezone()


def run_in_background(job: Callable[[], None]) -> None:
    threading.Thread(target=job, daemon=True).start()


class ViewStateCoordinator:
    """画面の購読・派生値・読み込み状態を管理するクラス"""

    def __init__(
        self,
        context: AppContext,
        live: Sequence[LiveSource],
        derive: Optional[DeriveFn] = None,
        one_shots: Sequence[OneShotSource] = (),
        clock: Callable[[], datetime] = local_now,
        runner: Runner = run_in_background,
        name: str = "view",
    ):
        """
        初期化

        Args:
            context: 認証コンテキスト
            live: 購読ソース
            derive: ソースのデータから派生値を計算する純粋関数
            one_shots: ワンショットソース
            clock: 派生値計算に使う現在時刻
            runner: ワンショットの実行方法（既定はデーモンスレッド）
            name: ログ用の画面名
        """
        names = [source.name for source in live] + [source.name for source in one_shots]
        if len(set(names)) != len(names):
            raise ValueError("Source names must be unique")

        self.context = context
        self.name = name
        self.logger = logging.getLogger(__name__)
        self._live = {source.name: source for source in live}
        self._one_shots = {source.name: source for source in one_shots}
        self._derive = derive
        self._clock = clock
        self._runner = runner

        self._lock = threading.RLock()
        self._generation = 0
        self._mounted = False
        self._remove_sign_out_hook: Optional[Callable[[], None]] = None
        self._auth_error: Optional[AuthMissing] = None
        self._handles: Dict[str, Subscription] = {}
        self._states: Dict[str, SourceState] = {name: SourceState() for name in names}
        self._derived: Any = None
        self._derived_version = 0
        self._listeners: List[Callable[["ViewStateCoordinator"], None]] = []

    # ------------------------------------------------------------------
    # 公開状態

    @property
    def mounted(self) -> bool:
        with self._lock:
            return self._mounted

    @property
    def derived(self) -> Any:
        with self._lock:
            return self._derived

    @property
    def derived_version(self) -> int:
        """派生値を再計算した回数"""
        with self._lock:
            return self._derived_version

    @property
    def auth_error(self) -> Optional[AuthMissing]:
        with self._lock:
            return self._auth_error

    def source(self, name: str) -> SourceState:
        with self._lock:
            return self._states[name]

    def sources(self) -> Dict[str, SourceState]:
        with self._lock:
            return dict(self._states)

    @property
    def status(self) -> SourceStatus:
        """画面全体の状態"""
        with self._lock:
            if self._auth_error is not None:
                return SourceStatus.ERROR
            if not self._mounted:
                return SourceStatus.IDLE
            required = [
                self._states[name]
                for name, source in {**self._live, **self._one_shots}.items()
                if source.required
            ]
            if any(state.status in (SourceStatus.IDLE, SourceStatus.SUBSCRIBING) for state in required):
                return SourceStatus.SUBSCRIBING
            if any(state.status is SourceStatus.ERROR for state in required):
                return SourceStatus.ERROR
            return SourceStatus.READY

    def add_listener(self, listener: Callable[["ViewStateCoordinator"], None]) -> Callable[[], None]:
        """状態変化の通知先を登録。戻り値は登録解除関数"""
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # ライフサイクル

    def mount(self) -> bool:
        """購読とワンショットを開始。未サインインなら何も呼ばずFalse"""
        with self._lock:
            if self._mounted:
                return True
            user = self.context.user
            if user is None:
                self._auth_error = AuthMissing()
                self.logger.info("%s: not signed in, skipping subscriptions", self.name)
                self._emit_locked()
                return False
            self._auth_error = None
            self._mounted = True
            self._generation += 1
            generation = self._generation
            self._remove_sign_out_hook = self.context.on_sign_out(self.teardown)

        self.logger.info("%s: mounting for %s", self.name, user.uid)
        for name in self._live:
            self._open(name, user.uid, generation)
        for name in self._one_shots:
            self._start_one_shot(name, generation)
        return True

    def teardown(self) -> None:
        """全購読を1回だけ解除し、idle に戻す"""
        with self._lock:
            if not self._mounted:
                return
            self._mounted = False
            self._generation += 1
            handles = list(self._handles.values())
            self._handles.clear()
            self._states = {name: SourceState() for name in self._states}
            self._derived = None
            remove_hook, self._remove_sign_out_hook = self._remove_sign_out_hook, None
        if remove_hook is not None:
            remove_hook()
        for handle in handles:
            handle.unsubscribe()
        self.logger.info("%s: torn down (%d subscriptions released)", self.name, len(handles))

    def retry(self, name: str) -> None:
        """失敗した購読を張り直す（自動再試行はしない）"""
        with self._lock:
            if not self._mounted:
                return
            if name not in self._live:
                raise KeyError(name)
            user = self.context.user
            generation = self._generation
            handle = self._handles.pop(name, None)
        if handle is not None:
            handle.unsubscribe()
        if user is None:
            return
        self._open(name, user.uid, generation)

    def refresh_one_shot(self, name: str) -> None:
        """ワンショットを手動で再実行"""
        with self._lock:
            if not self._mounted:
                return
            if name not in self._one_shots:
                raise KeyError(name)
            generation = self._generation
        self._start_one_shot(name, generation)

    def recompute(self) -> None:
        """ローカル状態の変更に合わせて派生値を再計算"""
        with self._lock:
            if not self._mounted:
                return
            self._recompute_locked()
            self._emit_locked()

    # ------------------------------------------------------------------
    # 内部処理

    def _open(self, name: str, owner_id: str, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._states[name] = replace(self._states[name], status=SourceStatus.SUBSCRIBING, error=None)
        self._emit()

        def on_snapshot(records: List[Any]) -> None:
            self._handle_snapshot(generation, name, records)

        def on_error(error: SubscriptionFailure) -> None:
            self._handle_error(generation, name, error)

        try:
            handle = self._live[name].subscribe(owner_id, on_snapshot, on_error)
        except TaskTideError as exc:
            self.logger.error("%s: failed to subscribe to %s: %s", self.name, name, exc)
            self._handle_error(generation, name, exc)
            return

        with self._lock:
            stale = generation != self._generation
            if not stale:
                self._handles[name] = handle
        if stale:
            handle.unsubscribe()

    def _handle_snapshot(self, generation: int, name: str, records: List[Any]) -> None:
        with self._lock:
            if generation != self._generation or not self._mounted:
                self.logger.debug("%s: discarding stale snapshot for %s", self.name, name)
                return
            previous = self._states[name]
            self._states[name] = SourceState(
                status=SourceStatus.READY,
                data=list(records),
                error=None,
                updates=previous.updates + 1,
            )
            self._recompute_locked()
            self._emit_locked()

    def _handle_error(self, generation: int, name: str, error: TaskTideError) -> None:
        with self._lock:
            if generation != self._generation or not self._mounted:
                return
            previous = self._states[name]
            self._states[name] = replace(previous, status=SourceStatus.ERROR, error=error)
            self.logger.warning("%s: source %s failed: %s", self.name, name, error)
            self._emit_locked()

    def _start_one_shot(self, name: str, generation: int) -> None:
        with self._lock:
            self._states[name] = replace(self._states[name], status=SourceStatus.SUBSCRIBING, error=None)
        self._emit()
        fetch = self._one_shots[name].fetch

        def job() -> None:
            try:
                result = fetch()
            except TaskTideError as exc:
                self._handle_error(generation, name, exc)
                return
            except Exception as exc:
                self.logger.exception("%s: one-shot %s crashed: %s", self.name, name, exc)
                self._handle_error(generation, name, TaskTideError(str(exc)))
                return
            with self._lock:
                if generation != self._generation or not self._mounted:
                    return
                previous = self._states[name]
                self._states[name] = SourceState(
                    status=SourceStatus.READY, data=result, updates=previous.updates + 1
                )
                self._emit_locked()

        self._runner(job)

    def _recompute_locked(self) -> None:
        if self._derive is None:
            return
        data = {name: self._states[name].data for name in self._live}
        self._derived = self._derive(data, self._clock())
        self._derived_version += 1

    def _emit(self) -> None:
        with self._lock:
            self._emit_locked()

    def _emit_locked(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as exc:
                self.logger.exception("%s: listener raised: %s", self.name, exc)
