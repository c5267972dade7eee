# app/services/notifier.py

import logging
from threading import RLock
from typing import Callable, Dict, List

from ..schemas.game import GameRecord

logger = logging.getLogger(__name__)

Listener = Callable[[GameRecord], None]


class ChangeNotifier:
    """
    ゲームコード単位の購読管理。
    ストアが書き込みに成功するたびに publish され、購読者へ新しいスナップショットを渡す。
    同期ルート（スレッドプール）から呼ばれるのでロックで保護する。
    """

    def __init__(self):
        # code -> listeners
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = RLock()

    def subscribe(self, code: str, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.setdefault(code, []).append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(code)
                if listeners and listener in listeners:
                    listeners.remove(listener)
                    if not listeners:
                        del self._listeners[code]

        return unsubscribe

    def publish(self, code: str, record: GameRecord) -> None:
        with self._lock:
            listeners = list(self._listeners.get(code, []))

        for listener in listeners:
            try:
                listener(record)
            except Exception:
                # 購読者側の例外はログに残して次へ
                logger.exception("change listener failed for game %s", code)

    def listener_count(self, code: str) -> int:
        with self._lock:
            return len(self._listeners.get(code, []))


notifier = ChangeNotifier()
