"""User repository - Database operations for users"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Appointment, Notification, RecurringAppointment, Service, User, WaitlistEntry


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def list_users(
        db: Session, tenant_id: int, role: Optional[str] = None, active_only: bool = False
    ) -> list[User]:
        query = db.query(User).filter(User.tenant_id == tenant_id)
        if role:
            query = query.filter(User.role == role.upper())
        if active_only:
            query = query.filter(User.is_active.is_(True))
        return query.order_by(User.name.asc()).all()

    @staticmethod
    def get_in_tenant(db: Session, user_id: int, tenant_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id, User.tenant_id == tenant_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def create(db: Session, user: User) -> User:
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def save(db: Session, user: User) -> User:
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def delete_with_bookings(db: Session, user: User) -> None:
        """Remove the user together with every appointment they take part in"""
        try:
            db.query(Appointment).filter(
                or_(Appointment.client_id == user.id, Appointment.provider_id == user.id)
            ).delete(synchronize_session=False)
            db.query(RecurringAppointment).filter(
                or_(
                    RecurringAppointment.client_id == user.id,
                    RecurringAppointment.provider_id == user.id,
                )
            ).delete(synchronize_session=False)
            db.query(WaitlistEntry).filter(WaitlistEntry.client_id == user.id).delete(
                synchronize_session=False
            )
            db.query(WaitlistEntry).filter(WaitlistEntry.provider_id == user.id).update(
                {WaitlistEntry.provider_id: None}, synchronize_session=False
            )
            db.query(Service).filter(Service.provider_id == user.id).update(
                {Service.provider_id: None}, synchronize_session=False
            )
            db.query(Notification).filter(Notification.user_id == user.id).delete(
                synchronize_session=False
            )
            db.delete(user)
            db.commit()
        except Exception:
            db.rollback()
            raise
