"""User lookup and registration by internal id or device id."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session

from quantara.exceptions import ValidationError
from quantara.tables import User, new_id


class UserDirectory:
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def by_device(self, device_id: str) -> Optional[User]:
        return self.session.scalars(select(User).where(User.device_id == device_id)).first()

    def register(self, device_id: str, name: Optional[str] = None) -> User:
        """Return the user owning ``device_id``, creating it if needed.

        The insert ignores a conflicting device id, so concurrent first syncs
        from one device converge on a single row.
        """
        stmt = (
            insert(User)
            .values(id=new_id(), device_id=device_id, name=name)
            .on_conflict_do_nothing(index_elements=["device_id"])
        )
        self.session.execute(stmt)
        return self.by_device(device_id)

    def resolve(
        self,
        user_id: Optional[str],
        device_id: Optional[str],
        create: bool = True,
    ) -> User:
        """Resolve the owner of a request.

        A known ``user_id`` wins. Otherwise the device id is looked up and,
        when ``create`` is set, a user is created for it.

        Raises:
            ValidationError: if neither identifier leads to a user.
        """
        if user_id:
            user = self.get(user_id)
            if user is not None:
                return user
            if not device_id:
                raise ValidationError("user_id", f"unknown user {user_id}")

        if device_id:
            user = self.register(device_id) if create else self.by_device(device_id)
            if user is not None:
                return user
            raise ValidationError("device_id", f"no user registered for device {device_id}")

        raise ValidationError("user_id", "user_id or device_id required")
