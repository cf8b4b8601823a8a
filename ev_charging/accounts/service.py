from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ev_charging.models import User, EVOwner

class AccountDirectory:
    def __init__(self, db: Session):
        self.db = db

    def get_owner_by_id(self, owner_id: str) -> Optional[EVOwner]:
        return self.db.query(EVOwner).filter(EVOwner.id == owner_id).first()

    def get_owner_by_nic(self, nic: str) -> Optional[EVOwner]:
        """NIC lookups ignore case"""
        return self.db.query(EVOwner).filter(func.lower(EVOwner.nic) == nic.strip().lower()).first()

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
