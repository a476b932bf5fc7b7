import logging
from typing import List

from checkout_service.application.interfaces import NotificationSink
from checkout_service.domain.exceptions import NotificationNotFoundError
from checkout_service.domain.models import Notification

logger = logging.getLogger(__name__)


async def notify_quietly(sink: NotificationSink, user_id: str, message: str) -> bool:
    """Уведомление после commit: сбой логируется и не ломает основной сценарий"""
    try:
        notification = await sink.notify(user_id, message)
    except Exception as e:
        logger.warning(f"Ошибка отправки уведомления пользователю {user_id}: {e}")
        return False

    if notification:
        logger.info(f"Отправлено уведомление '{message}' для {user_id}")
        return True
    logger.info(f"Не отправлено уведомление '{message}' для {user_id}")
    return False


class ListNotificationsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        async with self._uow() as uow:
            return await uow.notifications.list_by_user(user_id, unread_only=unread_only)


class CountUnreadNotificationsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> int:
        async with self._uow() as uow:
            return await uow.notifications.count_unread(user_id)


class MarkNotificationReadUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, notification_id: str) -> None:
        async with self._uow() as uow:
            if not await uow.notifications.mark_as_read(notification_id):
                raise NotificationNotFoundError(f"Уведомление {notification_id} не найдено")
            await uow.commit()


class MarkAllNotificationsReadUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> int:
        async with self._uow() as uow:
            updated = await uow.notifications.mark_all_as_read(user_id)
            await uow.commit()
        logger.info(f"Отмечено прочитанными {updated} уведомлений пользователя {user_id}")
        return updated


class DeleteNotificationUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, notification_id: str) -> None:
        async with self._uow() as uow:
            if not await uow.notifications.delete(notification_id):
                raise NotificationNotFoundError(f"Уведомление {notification_id} не найдено")
            await uow.commit()
        logger.info(f"Уведомление {notification_id} удалено")


class DeleteAllNotificationsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> int:
        async with self._uow() as uow:
            deleted = await uow.notifications.delete_all_by_user(user_id)
            await uow.commit()
        logger.info(f"Удалено {deleted} уведомлений пользователя {user_id}")
        return deleted
