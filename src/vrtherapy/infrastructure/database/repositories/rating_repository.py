"""
Scene Rating Repository

SQLAlchemy implementation of rating storage.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vrtherapy.domain.models import SceneRating
from vrtherapy.domain.repositories import RatingRepository
from vrtherapy.infrastructure.database.models import SceneRatingModel
from vrtherapy.infrastructure.database.repositories.base import BaseRepository


def rating_to_domain(row: SceneRatingModel) -> SceneRating:
    return SceneRating(
        id=row.id,
        session_id=row.session_id,
        user_id=row.user_id,
        scene_id=row.scene_id,
        image_id=row.image_id,
        rate=row.rate,
        submitted_at=row.submitted_at,
    )


class SqlRatingRepository(BaseRepository[SceneRatingModel], RatingRepository):
    """Ratings backed by the scene_ratings table."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(SceneRatingModel, session)

    async def create(self, rating: SceneRating) -> SceneRating:
        row = SceneRatingModel(
            id=rating.id,
            session_id=rating.session_id,
            user_id=rating.user_id,
            scene_id=rating.scene_id,
            image_id=rating.image_id,
            rate=rating.rate,
            submitted_at=rating.submitted_at,
        )
        await self._insert(row)
        return rating_to_domain(row)

    async def list_for_session(self, session_id: UUID) -> Sequence[SceneRating]:
        rows = await self._find_all(
            SceneRatingModel.session_id == session_id,
            order_by=(SceneRatingModel.submitted_at.asc(), SceneRatingModel.id),
        )
        return [rating_to_domain(row) for row in rows]
