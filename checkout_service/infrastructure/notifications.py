import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from checkout_service.application.interfaces import NotificationSink
from checkout_service.domain.exceptions import DomainException
from checkout_service.domain.models import Notification

logger = logging.getLogger(__name__)


class SQLNotificationSink(NotificationSink):
    """Запись уведомлений в БД; ошибки не пробрасываются вызывающему"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def notify(self, user_id: str, message: str) -> Optional[Notification]:
        try:
            async with self._uow() as uow:
                if not await uow.users.get_by_id(user_id):
                    logger.warning(f"Уведомление не создано: пользователь {user_id} не существует")
                    return None

                notification = Notification(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    message=message,
                    is_read=False,
                    created_at=datetime.now(timezone.utc)
                )
                await uow.notifications.create(notification)
                await uow.commit()
                return notification
        except (SQLAlchemyError, DomainException) as e:
            logger.error(f"Ошибка создания уведомления для {user_id}: {e}")
            return None
