import datetime
import logging
from typing import List, Optional, Protocol, runtime_checkable

import databases
import sqlalchemy

from formstore.database import acquire, form_table, forminstance_table
from formstore.errors import (
    FormNotFoundError,
    InvalidInputError,
    InvalidUserIDError,
    is_foreign_key_violation,
)
from formstore.models.form import Form, FormInstance


logger = logging.getLogger(__name__)

FORM_COLUMNS = (
    form_table.c.id,
    form_table.c.user_id,
    form_table.c.name,
    form_table.c.description,
    form_table.c.created_at,
    form_table.c.updated_at,
    form_table.c.form_version,
)


@runtime_checkable
class FormsStoreInterface(Protocol):
    async def insert_form(self, user_id: int, name: str, description: Optional[str], fields: str) -> Form: ...
    async def get_form(self, form_id: int) -> Form: ...
    async def get_forms_by_user(self, user_id: int) -> List[Form]: ...
    async def get_form_instances(self, form_id: int) -> List[FormInstance]: ...
    async def update_form_name(self, form_id: int, name: str) -> None: ...
    async def update_form_description(self, form_id: int, description: Optional[str]) -> None: ...
    async def delete_form(self, form_id: int) -> None: ...


def utcnow() -> datetime.datetime:
    # naive UTC, matching what CURRENT_TIMESTAMP writes for server defaults
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def to_form(row) -> Form:
    return Form(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        description=row.description,
        created_at=row.created_at,
        updated_at=row.updated_at,
        form_version=row.form_version,
    )


class FormsStore:
    """Persistence for forms and their field snapshots.

    The database handle is injected so callers decide its lifecycle and
    tests can hand in a substitute.
    """

    def __init__(self, database: databases.Database):
        self.database = database

    async def insert_form(
        self, user_id: int, name: str, description: Optional[str], fields: str
    ) -> Form:
        """Create a form together with its first FormInstance.

        Both rows are written in one transaction. An unknown ``user_id`` is
        reported as InvalidUserIDError.
        """
        if user_id < 1:
            raise InvalidUserIDError(user_id)
        if not name or not fields:
            raise InvalidInputError("name and fields must not be empty")

        now = utcnow()
        form_query = (
            form_table.insert()
            .values(
                user_id=user_id,
                name=name,
                description=description,
                created_at=now,
                updated_at=now,
            )
            .returning(*FORM_COLUMNS)
        )

        async with acquire(self.database) as connection:
            async with connection.transaction():
                try:
                    row = await connection.fetch_one(form_query)
                except Exception as e:
                    if is_foreign_key_violation(e):
                        logger.warning("Rejected form for unknown user", extra={"user_id": user_id})
                        raise InvalidUserIDError(user_id) from e
                    raise

                instance_query = (
                    forminstance_table.insert()
                    .values(
                        form_id=row.id,
                        fields=fields,
                        form_version=row.form_version,
                        created_at=now,
                    )
                    .returning(forminstance_table.c.id, forminstance_table.c.created_at)
                )
                instance = await connection.fetch_one(instance_query)

        logger.debug(
            "Created form",
            extra={"form_id": row.id, "instance_id": instance.id, "user_id": user_id},
        )
        return to_form(row)

    async def get_form(self, form_id: int) -> Form:
        query = sqlalchemy.select(*FORM_COLUMNS).where(form_table.c.id == form_id)
        async with acquire(self.database) as connection:
            row = await connection.fetch_one(query)

        if row is None:
            raise FormNotFoundError(form_id)
        return to_form(row)

    async def get_forms_by_user(self, user_id: int) -> List[Form]:
        # no ORDER BY: callers get whatever order the database returns
        query = sqlalchemy.select(*FORM_COLUMNS).where(form_table.c.user_id == user_id)
        async with acquire(self.database) as connection:
            rows = await connection.fetch_all(query)
        return [to_form(row) for row in rows]

    async def get_form_instances(self, form_id: int) -> List[FormInstance]:
        query = (
            forminstance_table.select()
            .where(forminstance_table.c.form_id == form_id)
            .order_by(forminstance_table.c.id)
        )
        async with acquire(self.database) as connection:
            rows = await connection.fetch_all(query)
        return [
            FormInstance(
                id=row.id,
                form_id=row.form_id,
                fields=row.fields,
                created_at=row.created_at,
                form_version=row.form_version,
            )
            for row in rows
        ]

    async def update_form_name(self, form_id: int, name: str) -> None:
        await self._update(form_id, name=name)

    async def update_form_description(self, form_id: int, description: Optional[str]) -> None:
        await self._update(form_id, description=description)

    async def _update(self, form_id: int, **values) -> None:
        # RETURNING yields no row when nothing matched; that is the not-found signal
        query = (
            form_table.update()
            .where(form_table.c.id == form_id)
            .values(
                **values,
                updated_at=utcnow(),
                form_version=form_table.c.form_version + 1,
            )
            .returning(form_table.c.id)
        )
        async with acquire(self.database) as connection:
            row = await connection.fetch_one(query)

        if row is None:
            raise FormNotFoundError(form_id)
        logger.debug("Updated form", extra={"form_id": form_id, "columns": sorted(values)})

    async def delete_form(self, form_id: int) -> None:
        query = form_table.delete().where(form_table.c.id == form_id).returning(form_table.c.id)
        async with acquire(self.database) as connection:
            row = await connection.fetch_one(query)

        if row is None:
            raise FormNotFoundError(form_id)
        logger.debug("Deleted form", extra={"form_id": form_id})
