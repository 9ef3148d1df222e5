import asyncio
import inspect
from collections import defaultdict
from typing import Any, Callable, Dict, List, Set

import structlog

logger = structlog.get_logger(__name__)

Handler = Callable[[Any], Any]


class EventBus:
    """
    Внутрипроцессная шина доменных событий.

    emit работает по принципу fire-and-forget: синхронные обработчики
    вызываются сразу, корутины ставятся задачами в текущий цикл событий.
    Ошибки обработчиков логируются и не доходят до отправителя.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        # Цикл событий держит задачи по слабой ссылке
        self._tasks: Set["asyncio.Future"] = set()

    def on(self, event_name: str, handler: Handler) -> None:
        self._handlers[event_name].append(handler)

    def off(self, event_name: str, handler: Handler) -> None:
        if handler in self._handlers.get(event_name, []):
            self._handlers[event_name].remove(handler)

    def emit(self, event_name: str, payload: Any) -> None:
        for handler in list(self._handlers.get(event_name, [])):
            try:
                result = handler(payload)
            except Exception:
                logger.exception(
                    "event_handler_failed", event_name=event_name
                )
                continue

            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
                task.add_done_callback(
                    lambda t, name=event_name: self._on_task_done(name, t)
                )

    @staticmethod
    def _on_task_done(event_name: str, task: "asyncio.Future") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "event_handler_failed",
                event_name=event_name,
                error=str(exc),
            )


PROPERTY_CREATED = "property.created"

events = EventBus()


def log_property_created(property_) -> None:
    """Обработчик по умолчанию: фиксирует появление нового объекта."""
    logger.info(
        "property_created",
        property_id=property_.id,
        title=property_.title,
        listing_price=str(property_.listing_price),
    )
