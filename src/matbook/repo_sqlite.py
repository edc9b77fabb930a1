from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from matbook.errors import NotFoundError
from matbook.models import Base, SubmissionModel
from matbook.storage import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    SubmissionPage,
    escape_like,
    total_pages,
)
from matbook.utils import dumps_json, loads_json, new_submission_id, now_utc, to_iso

logger = logging.getLogger(__name__)


class SQLiteSubmissionRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def create_submission(self, data: dict[str, Any]) -> dict[str, str]:
        submission_id = new_submission_id()
        created_at = to_iso(now_utc())
        with self._Session() as session:
            row = SubmissionModel(
                id=submission_id,
                data=dumps_json(data),
                created_at=created_at,
            )
            session.add(row)
            session.commit()
        logger.info("Created submission %s", submission_id)
        return {"id": submission_id, "createdAt": created_at}

    def get_submission(self, submission_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(SubmissionModel, submission_id)
            return self._to_dict(row) if row else None

    def list_submissions(
        self,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        sort_order: str = "desc",
        search: str | None = None,
    ) -> SubmissionPage:
        query = select(SubmissionModel)
        count_query = select(func.count()).select_from(SubmissionModel)
        if search:
            condition = SubmissionModel.data.like(f"%{escape_like(search)}%", escape="\\")
            query = query.where(condition)
            count_query = count_query.where(condition)

        if sort_order == "asc":
            query = query.order_by(SubmissionModel.created_at.asc(), SubmissionModel.id.asc())
        else:
            query = query.order_by(SubmissionModel.created_at.desc(), SubmissionModel.id.desc())
        query = query.limit(limit).offset((page - 1) * limit)

        with self._Session() as session:
            total = session.scalar(count_query) or 0
            rows = session.scalars(query).all()
            items = [self._to_dict(row) for row in rows]
        return {"items": items, "total": total, "total_pages": total_pages(total, limit)}

    def update_submission(self, submission_id: str, data: dict[str, Any]) -> None:
        with self._Session() as session:
            row = session.get(SubmissionModel, submission_id)
            if not row:
                raise NotFoundError()
            row.data = dumps_json(data)
            session.commit()
        logger.info("Updated submission %s", submission_id)

    def delete_submission(self, submission_id: str) -> None:
        with self._Session() as session:
            row = session.get(SubmissionModel, submission_id)
            if not row:
                raise NotFoundError()
            session.delete(row)
            session.commit()
        logger.info("Deleted submission %s", submission_id)

    @staticmethod
    def _to_dict(row: SubmissionModel) -> dict[str, Any]:
        data = loads_json(row.data)
        return {
            "id": row.id,
            "data": data if data is not None else {},
            "createdAt": row.created_at,
        }


class SQLiteStorage:
    def __init__(self, db_path: Path) -> None:
        self._engine = create_engine(f"sqlite:///{db_path}", future=True)
        self._Session = sessionmaker(self._engine, expire_on_commit=False)
        Base.metadata.create_all(self._engine)
        self.submissions = SQLiteSubmissionRepo(self._Session)

    def close(self) -> None:
        self._engine.dispose()
