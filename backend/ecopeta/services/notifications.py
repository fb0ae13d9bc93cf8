import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ecopeta.database.session import SessionLocal
from ecopeta.models.notification import Notification

logger = logging.getLogger("uvicorn.error")


def send_notification(
    user_id: int,
    title: str,
    message: str,
    type: str = "pickup",
    related_id: Optional[int] = None,
) -> bool:
    """Store an in-app notification for ``user_id`` in its own session.

    Call it after the main operation has committed. Failures are logged and
    reported through the return value only.
    """
    db = SessionLocal()
    try:
        db.add(Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            related_id=related_id,
        ))
        db.commit()
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to send notification to user %s", user_id)
        return False
    finally:
        db.close()
